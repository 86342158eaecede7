from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Tuple
import logging
import time

from ..common.exceptions import HardwareError
from ..core.config import HardwareConfig

logger = logging.getLogger(__name__)


class OutputLine(ABC):
    """Abstract digital output line"""

    name: str

    @abstractmethod
    def write(self, value: bool) -> None:
        """Drive the line high or low"""
        pass

    @property
    @abstractmethod
    def value(self) -> bool:
        """Current level of the line"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the line"""
        pass

    def on(self) -> None:
        self.write(True)

    def off(self) -> None:
        self.write(False)


class GpioOutputLine(OutputLine):
    """Raspberry Pi GPIO output via gpiozero"""

    def __init__(self, name: str, pin: int, initial_value: bool = False):
        try:
            from gpiozero import DigitalOutputDevice

            logger.debug("Successfully imported gpiozero")
        except ImportError as e:
            logger.error(f"Failed to import GPIO library: {e}")
            raise HardwareError("gpiozero is required for the gpio backend") from e

        self.name = name
        self.pin = pin
        try:
            self._device = DigitalOutputDevice(pin, initial_value=initial_value)
        except Exception as e:
            logger.error(f"Failed to open GPIO {pin} for {name}: {e}")
            raise HardwareError(f"Cannot open GPIO {pin} for {name}: {e}") from e
        logger.debug(f"Opened GPIO {pin} for {name}")

    def write(self, value: bool) -> None:
        if value:
            self._device.on()
        else:
            self._device.off()

    @property
    def value(self) -> bool:
        return bool(self._device.value)

    def close(self) -> None:
        try:
            self._device.close()
        except Exception as e:
            logger.error(f"Error closing GPIO {self.pin}: {e}")


class MockOutputLine(OutputLine):
    """Output line for development without hardware, records every write"""

    def __init__(self, name: str, pin: int = -1, initial_value: bool = False):
        self.name = name
        self.pin = pin
        self._value = initial_value
        self.history: List[Tuple[float, bool]] = []

    def write(self, value: bool) -> None:
        self._value = bool(value)
        self.history.append((time.monotonic(), self._value))

    @property
    def value(self) -> bool:
        return self._value

    def close(self) -> None:
        self.history.clear()


@dataclass
class OutputLines:
    """The six lines driven by the service"""

    clock: OutputLine
    data: OutputLine
    strobe: OutputLine
    received: OutputLine
    acknowledge: OutputLine
    error: OutputLine

    def all(self) -> Dict[str, OutputLine]:
        return {
            "clock": self.clock,
            "data": self.data,
            "strobe": self.strobe,
            "received": self.received,
            "acknowledge": self.acknowledge,
            "error": self.error,
        }

    def close(self) -> None:
        for line in self.all().values():
            line.close()


def is_raspberry_pi() -> bool:
    try:
        with open("/proc/cpuinfo", "r") as f:
            return any(
                "Raspberry Pi" in line for line in f if line.startswith("Model")
            )
    except OSError:
        return False


def create_lines(config: HardwareConfig) -> OutputLines:
    """Factory function to open the output lines for the configured backend"""
    backend = config.backend
    if backend == "auto":
        if is_raspberry_pi():
            logger.debug("Detected Raspberry Pi hardware")
            backend = "gpio"
        else:
            logger.warning("Not running on Raspberry Pi hardware")
            backend = "mock"

    if backend == "gpio":
        line_class = GpioOutputLine
    elif backend == "mock":
        line_class = MockOutputLine
        logger.info("Using mock output lines")
    else:
        raise ValueError(f"Unknown hardware backend: {backend}")

    # Error line starts high until the first valid message arrives
    lines = {
        name: line_class(name, pin, initial_value=(name == "error"))
        for name, pin in config.pins().items()
    }
    logger.info(
        "Output lines: "
        + ", ".join(f"{name}={pin}" for name, pin in config.pins().items())
    )
    return OutputLines(**lines)
