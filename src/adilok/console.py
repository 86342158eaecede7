"""Interactive console for toggling bits by hand."""

import asyncio
import logging
import sys
import threading
from typing import Callable, Optional, TextIO

from .core.register import BitRegister

logger = logging.getLogger(__name__)


def format_bits(register: BitRegister) -> str:
    """Two rows: bit state (* set, - clear) and the bit number modulo 10"""
    states = "".join("*" if register[i] else "-" for i in range(len(register)))
    numbers = "".join(str(i % 10) for i in range(len(register)))
    return f"{states}\n{numbers}\n"


class DebugConsole:
    def __init__(
        self,
        register: BitRegister,
        on_change: Optional[Callable[[], None]] = None,
        stdin: TextIO = sys.stdin,
        stdout: TextIO = sys.stdout,
    ):
        self.register = register
        self.on_change = on_change
        self.stdin = stdin
        self.stdout = stdout
        self._reader: Optional[threading.Thread] = None

    def _print(self, text: str = "") -> None:
        print(text, file=self.stdout, flush=True)

    def handle_line(self, line: str) -> bool:
        """Toggle the bit typed on the line; returns True on valid input"""
        line = line.strip()
        if not line.isdecimal():
            self._print("\nIncorrect input!\n")
            return False

        bit = int(line)
        if bit >= len(self.register):
            self._print(f"\nNo bit {bit}!\n")
            return False

        self.register.toggle(bit)
        logger.debug(f"Toggled bit {bit} from console")
        if self.on_change is not None:
            self.on_change()
        return True

    def _read_lines(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
        """Hand input lines to the loop until end of input ("")"""
        while True:
            try:
                line = self.stdin.readline()
            except (OSError, ValueError) as e:
                logger.debug(f"Console input closed: {e}")
                line = ""
            try:
                loop.call_soon_threadsafe(queue.put_nowait, line)
            except RuntimeError:
                # loop already closed
                return
            if not line:
                return

    async def run(self) -> None:
        """Read bit numbers until end of input"""
        loop = asyncio.get_running_loop()
        self._print()
        self._print("Debug mode")
        self._print(f"Type bit number (0-{len(self.register) - 1}) to toggle the bit.")
        self._print("Press Ctrl+C to exit the program.")
        self._print()
        self._print(format_bits(self.register))

        # Kept out of the loop executor; a blocked readline never delays shutdown
        lines: asyncio.Queue = asyncio.Queue()
        self._reader = threading.Thread(
            target=self._read_lines, args=(loop, lines), name="adilok-console", daemon=True
        )
        self._reader.start()

        while True:
            self.stdout.write("Bit: ")
            self.stdout.flush()
            line = await lines.get()
            if not line:
                break
            self.handle_line(line)
            self._print(format_bits(self.register))
