"""Common exceptions for the ADILOK system."""


class AdilokError(Exception):
    """Base exception for all ADILOK errors."""

    pass


class ConfigurationError(AdilokError):
    """Configuration file or rule error."""

    pass


class NormalizationError(AdilokError):
    """Inbound payload could not be turned into an event."""

    def __init__(self, channel: str, detail: str):
        self.channel = channel
        self.detail = detail
        super().__init__(f"Invalid {channel} message: {detail}")


class ActionError(AdilokError):
    """Matched rule carries an action that cannot be executed."""

    def __init__(self, action: str, bit: int):
        self.action = action
        self.bit = bit
        super().__init__(f"Unknown action {action!r} for bit {bit}")


class HardwareError(AdilokError):
    """GPIO backend error."""

    pass


class CommunicationError(AdilokError):
    """Feed connection error."""

    pass
