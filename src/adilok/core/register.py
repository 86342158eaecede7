"""In-memory state of the shift register output bits."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np

from .config import SystemDefaults

logger = logging.getLogger(__name__)


@dataclass
class PendingPulse:
    """Scheduled clear of a pulsed bit"""

    bit: int
    handle: asyncio.TimerHandle

    def cancel(self) -> None:
        self.handle.cancel()


@dataclass
class RegisterState:
    """Bookkeeping for the bit register"""

    bits: np.ndarray  # bool (N,)
    pending: Dict[int, PendingPulse] = field(default_factory=dict)


class BitRegister:
    """Ordered output bits of the shift register chain.

    All mutations are expected to run on the event loop thread. A pulse
    schedules its clear with ``loop.call_later``; any later mutation of
    the same bit replaces the pending clear (last writer wins).
    """

    def __init__(
        self,
        bit_count: int,
        initial_pattern: str = "",
        pulse_seconds: float = SystemDefaults.DEFAULT_PULSE_MS / 1000,
    ):
        bits = np.zeros(bit_count, dtype=bool)
        for i, char in enumerate(initial_pattern[:bit_count]):
            bits[i] = char == "1"
        self._state = RegisterState(bits=bits)
        self.pulse_seconds = pulse_seconds
        logger.info(f"Initialized bit register with {bit_count} bits: {self.to_string()}")

    def __len__(self) -> int:
        return len(self._state.bits)

    def __getitem__(self, bit: int) -> bool:
        return bool(self._state.bits[bit])

    @property
    def pending_pulses(self) -> Dict[int, PendingPulse]:
        return dict(self._state.pending)

    def snapshot(self) -> np.ndarray:
        """Copy of the current bits, safe to read while the register changes"""
        return self._state.bits.copy()

    def _write(self, bit: int, value: bool) -> bool:
        """Write a bit, superseding any pending pulse on it"""
        pending = self._state.pending.pop(bit, None)
        if pending is not None:
            pending.cancel()
            logger.debug(f"Pending pulse on bit {bit} superseded")

        changed = bool(self._state.bits[bit]) != value
        self._state.bits[bit] = value
        return changed

    def set(self, bit: int) -> bool:
        return self._write(bit, True)

    def clear(self, bit: int) -> bool:
        return self._write(bit, False)

    def toggle(self, bit: int) -> bool:
        return self._write(bit, not self._state.bits[bit])

    def pulse(self, bit: int, duration: Optional[float] = None) -> bool:
        """Set a bit and clear it again after ``duration`` seconds"""
        duration = self.pulse_seconds if duration is None else duration
        changed = self._write(bit, True)

        loop = asyncio.get_running_loop()
        handle = loop.call_later(duration, self._expire, bit)
        self._state.pending[bit] = PendingPulse(bit=bit, handle=handle)
        return changed

    def _expire(self, bit: int) -> None:
        self._state.pending.pop(bit, None)
        self._state.bits[bit] = False

    def cancel_pending(self) -> None:
        """Drop all scheduled pulse clears"""
        for pending in self._state.pending.values():
            pending.cancel()
        self._state.pending.clear()

    def to_string(self) -> str:
        return "".join("1" if b else "0" for b in self._state.bits)
