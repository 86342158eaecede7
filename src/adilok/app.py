"""Service wiring and command line entry point."""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from .client.feed_client import FeedClient
from .common.exceptions import AdilokError, ConfigurationError
from .console import DebugConsole
from .core.actions import ActionExecutor
from .core.config import SystemConfig, SystemDefaults, load_config
from .core.dispatcher import EventDispatcher
from .core.register import BitRegister
from .core.rules import RuleIndex
from .hardware.indicators import StatusIndicators
from .hardware.lines import OutputLines, create_lines
from .hardware.transmitter import ShiftTransmitter

logger = logging.getLogger(__name__)


class AdilokService:
    """Owns the register, the rule table and the hardware lines"""

    def __init__(
        self,
        config: SystemConfig,
        lines: Optional[OutputLines] = None,
        live: bool = True,
        debug: bool = False,
    ):
        self.config = config
        self.live = live
        self.debug = debug
        timing = config.timing

        self.lines = lines or create_lines(config.hardware)
        self.register = BitRegister(
            config.bits, config.initial_pattern, pulse_seconds=timing.pulse_seconds
        )
        self.indicators = StatusIndicators(
            self.lines.received,
            self.lines.acknowledge,
            self.lines.error,
            pulse_seconds=timing.indicator_pulse_seconds,
        )
        self.rules = RuleIndex.from_config(config.rules, config.bits)
        self.transmitter = ShiftTransmitter(
            self.register,
            self.lines.clock,
            self.lines.data,
            self.lines.strobe,
            hold_seconds=timing.clock_hold_seconds,
            period_seconds=timing.transmit_period_seconds,
        )
        on_change = self.transmitter.transmit if timing.transmit_on_change else None
        self.dispatcher = EventDispatcher(
            self.rules,
            ActionExecutor(self.register, self.indicators),
            self.indicators,
            on_change=on_change,
        )
        self.feed = FeedClient(config.broker, timing, self.dispatcher, self.indicators)
        self.console = DebugConsole(self.register, on_change=on_change)
        self._tasks: List[asyncio.Task] = []
        self._stopped = asyncio.Event()

    async def start(self) -> None:
        self.indicators.set_error(True)
        self.transmitter.transmit()
        self._tasks.append(self.transmitter.start())

        if self.live:
            await self.feed.start()
            self._tasks.append(asyncio.create_task(self.feed.watch()))

        if self.debug:
            console_task = asyncio.create_task(self.console.run())
            console_task.add_done_callback(lambda _task: self._stopped.set())
            self._tasks.append(console_task)

    async def run(self) -> None:
        """Run until stopped by a signal or the console closing"""
        await self.start()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._stopped.set)
            except (NotImplementedError, RuntimeError):
                pass
        try:
            await self._stopped.wait()
        finally:
            await self.stop()

    def request_stop(self) -> None:
        self._stopped.set()

    async def stop(self) -> None:
        logger.info("Shutting down...")
        await self.feed.stop()
        await self.transmitter.stop()
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Task failed during shutdown: {e}")
        self._tasks.clear()
        self.register.cancel_pending()
        self.indicators.reset()
        self.lines.close()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Train running message receiver driving shift registers"
    )
    parser.add_argument(
        "config",
        nargs="?",
        default=SystemDefaults.DEFAULT_CONFIG_FILE,
        help="Configuration file (JSON or YAML)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--debug", action="store_true", help="Toggle bits by hand, no feed"
    )
    mode.add_argument(
        "--livedebug", action="store_true", help="Feed and bit console together"
    )
    parser.add_argument(
        "--backend",
        choices=["auto", "gpio", "mock"],
        default=None,
        help="Override the hardware backend",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with argument parsing"""
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info("ADILOK - Train running message receiver for Raspberry PI")
    logger.info("Data: Traffic Management Finland, https://rata.digitraffic.fi/ (CC BY 4.0)")
    logger.warning("Only for non-safety critical purposes!")

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logger.critical(str(e))
        return 1
    if args.backend:
        config.hardware.backend = args.backend

    try:
        service = AdilokService(
            config,
            live=not args.debug,
            debug=args.debug or args.livedebug,
        )
        logger.info("Starting...")
        await service.run()
    except AdilokError as e:
        logger.critical(str(e))
        return 1
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
