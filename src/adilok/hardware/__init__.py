"""Output lines and the shift register protocol"""

from .lines import OutputLine, OutputLines, GpioOutputLine, MockOutputLine, create_lines
from .indicators import StatusIndicators
from .transmitter import ShiftTransmitter

__all__ = [
    "OutputLine",
    "OutputLines",
    "GpioOutputLine",
    "MockOutputLine",
    "create_lines",
    "StatusIndicators",
    "ShiftTransmitter",
]
