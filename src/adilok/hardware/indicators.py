import asyncio
import logging
from typing import Dict, Optional

from ..core.config import SystemDefaults
from .lines import OutputLine

logger = logging.getLogger(__name__)


class StatusIndicators:
    """Message received, acknowledge and error status lines"""

    def __init__(
        self,
        received: OutputLine,
        acknowledge: OutputLine,
        error: OutputLine,
        pulse_seconds: float = SystemDefaults.DEFAULT_INDICATOR_PULSE_MS / 1000,
    ):
        self.received = received
        self.acknowledge = acknowledge
        self.error = error
        self.pulse_seconds = pulse_seconds
        self._pending: Dict[str, asyncio.TimerHandle] = {}

    def _pulse(self, line: OutputLine) -> None:
        handle = self._pending.pop(line.name, None)
        if handle is not None:
            handle.cancel()
        line.on()
        loop = asyncio.get_running_loop()
        self._pending[line.name] = loop.call_later(
            self.pulse_seconds, self._release, line
        )

    def _release(self, line: OutputLine) -> None:
        self._pending.pop(line.name, None)
        line.off()

    def pulse_received(self) -> None:
        self._pulse(self.received)

    def pulse_acknowledge(self) -> None:
        self._pulse(self.acknowledge)

    def set_error(self, active: bool, reason: Optional[str] = None) -> None:
        if active and not self.error.value and reason:
            logger.warning(f"Error indicator on: {reason}")
        self.error.write(active)

    @property
    def error_active(self) -> bool:
        return self.error.value

    def reset(self) -> None:
        """Cancel pending pulses and switch the pulse lines off"""
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()
        self.received.off()
        self.acknowledge.off()
