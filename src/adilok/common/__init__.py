"""Common components shared across modules."""

from .exceptions import *

__all__ = [
    "AdilokError",
    "ConfigurationError",
    "NormalizationError",
    "ActionError",
    "HardwareError",
    "CommunicationError",
]
