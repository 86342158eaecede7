"""Serial transmission of the bit register to the shift register chain."""

import asyncio
import logging
import time
from typing import Optional

from ..core.config import SystemDefaults
from ..core.register import BitRegister
from .lines import OutputLine

logger = logging.getLogger(__name__)


def _hold(seconds: float) -> None:
    """Busy-wait for sub-millisecond pulse widths"""
    if seconds <= 0:
        return
    end = time.perf_counter() + seconds
    while time.perf_counter() < end:
        pass


class ShiftTransmitter:
    """Clocks the register bits into the chain and latches them.

    The highest bit is shifted first so that bit 0 ends up in the first
    output stage of the first register.
    """

    def __init__(
        self,
        register: BitRegister,
        clock: OutputLine,
        data: OutputLine,
        strobe: OutputLine,
        hold_seconds: float = SystemDefaults.DEFAULT_CLOCK_HOLD_US / 1_000_000,
        period_seconds: float = SystemDefaults.DEFAULT_TRANSMIT_PERIOD_MS / 1000,
    ):
        self.register = register
        self.clock = clock
        self.data = data
        self.strobe = strobe
        self.hold_seconds = hold_seconds
        self.period_seconds = period_seconds
        self.transmit_count = 0
        self.error_count = 0
        self._running = False
        self._task: Optional[asyncio.Task] = None

    def transmit(self) -> None:
        """Send one consistent snapshot of the register"""
        bits = self.register.snapshot()
        for bit in bits[::-1]:
            self.data.write(bool(bit))
            self.clock.on()
            _hold(self.hold_seconds)
            self.clock.off()
            self.data.off()

        self.strobe.on()
        _hold(self.hold_seconds)
        self.strobe.off()
        self.transmit_count += 1

    async def run(self) -> None:
        """Transmit on a fixed period until stopped"""
        self._running = True
        logger.info(
            f"Transmitting {len(self.register)} bits every {self.period_seconds * 1000:.0f} ms"
        )
        while self._running:
            try:
                self.transmit()
            except Exception as e:
                self.error_count += 1
                logger.error(f"Error transmitting bits: {e}")
            await asyncio.sleep(self.period_seconds)

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(
            f"Transmitter stopped after {self.transmit_count} transmissions "
            f"({self.error_count} errors)"
        )
