from typing import List, Optional

import pytest

from adilok.core.actions import ActionExecutor
from adilok.core.dispatcher import EventDispatcher
from adilok.core.register import BitRegister
from adilok.core.rules import RuleIndex
from adilok.hardware.lines import MockOutputLine, OutputLines

from .payloads import PULSE_SECONDS


class RecordingIndicators:
    """Status lines stand-in counting indicator activity"""

    def __init__(self):
        self.received = 0
        self.acknowledged = 0
        self.error = True
        self.error_history: List[bool] = []

    def pulse_received(self) -> None:
        self.received += 1

    def pulse_acknowledge(self) -> None:
        self.acknowledged += 1

    def set_error(self, active: bool, reason: Optional[str] = None) -> None:
        self.error = active
        self.error_history.append(active)


@pytest.fixture
def indicators():
    return RecordingIndicators()


@pytest.fixture
def mock_lines():
    """Six mock output lines, error line initially high"""
    return OutputLines(
        clock=MockOutputLine("clock", 2),
        data=MockOutputLine("data", 3),
        strobe=MockOutputLine("strobe", 4),
        received=MockOutputLine("received", 14),
        acknowledge=MockOutputLine("acknowledge", 15),
        error=MockOutputLine("error", 18, initial_value=True),
    )


@pytest.fixture
def make_dispatcher(indicators):
    """Build a register and dispatcher from a bit count and raw rules"""

    def factory(bits: int, rules: list, initial_pattern: str = ""):
        register = BitRegister(bits, initial_pattern, pulse_seconds=PULSE_SECONDS)
        index = RuleIndex.from_config(rules, bits)
        dispatcher = EventDispatcher(
            index, ActionExecutor(register, indicators), indicators
        )
        return register, dispatcher

    return factory
