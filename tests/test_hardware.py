"""Tests for output lines, status indicators and the shift transmitter."""

import asyncio
from typing import List, Tuple

import pytest

from adilok.core.config import HardwareConfig
from adilok.core.register import BitRegister
from adilok.hardware import lines as lines_module
from adilok.hardware.indicators import StatusIndicators
from adilok.hardware.lines import MockOutputLine, OutputLine, create_lines
from adilok.hardware.transmitter import ShiftTransmitter


class TraceLine(OutputLine):
    """Line writing into a trace shared by several lines"""

    def __init__(self, name: str, trace: List[Tuple[str, bool]]):
        self.name = name
        self._trace = trace
        self._value = False

    def write(self, value: bool) -> None:
        self._value = value
        self._trace.append((self.name, value))

    @property
    def value(self) -> bool:
        return self._value

    def close(self) -> None:
        pass


def clocked_bits(trace) -> List[bool]:
    """Data line level at every rising clock edge"""
    data = False
    bits = []
    for name, value in trace:
        if name == "data":
            data = value
        elif name == "clock" and value:
            bits.append(data)
    return bits


@pytest.fixture
def trace():
    return []


def make_transmitter(register, trace):
    return ShiftTransmitter(
        register,
        TraceLine("clock", trace),
        TraceLine("data", trace),
        TraceLine("strobe", trace),
        hold_seconds=0,
    )


class TestShiftTransmitter:
    def test_highest_bit_is_sent_first(self, trace):
        register = BitRegister(5, "11010")
        make_transmitter(register, trace).transmit()
        assert clocked_bits(trace) == [False, True, False, True, True]

    def test_strobe_latches_after_all_bits(self, trace):
        register = BitRegister(3, "101")
        make_transmitter(register, trace).transmit()
        assert trace[-2:] == [("strobe", True), ("strobe", False)]
        assert ("strobe", True) not in trace[:-2]

    def test_per_bit_sequence(self, trace):
        register = BitRegister(1, "1")
        make_transmitter(register, trace).transmit()
        assert trace == [
            ("data", True),
            ("clock", True),
            ("clock", False),
            ("data", False),
            ("strobe", True),
            ("strobe", False),
        ]

    def test_transmission_uses_snapshot(self, trace):
        register = BitRegister(4, "0000")

        class MutatingClock(TraceLine):
            def write(self, value):
                super().write(value)
                if value:
                    register.set(0)

        transmitter = ShiftTransmitter(
            register,
            MutatingClock("clock", trace),
            TraceLine("data", trace),
            TraceLine("strobe", trace),
            hold_seconds=0,
        )
        transmitter.transmit()
        assert clocked_bits(trace) == [False, False, False, False]
        assert register[0]

    @pytest.mark.asyncio
    async def test_periodic_transmission(self, trace):
        register = BitRegister(2)
        transmitter = make_transmitter(register, trace)
        transmitter.period_seconds = 0.01
        transmitter.start()
        await asyncio.sleep(0.055)
        await transmitter.stop()
        assert transmitter.transmit_count >= 3

    @pytest.mark.asyncio
    async def test_failures_counted_and_reported(self, trace, caplog):
        class BrokenStrobe(TraceLine):
            def write(self, value: bool) -> None:
                raise OSError("line busy")

        transmitter = ShiftTransmitter(
            BitRegister(1),
            TraceLine("clock", trace),
            TraceLine("data", trace),
            BrokenStrobe("strobe", trace),
            hold_seconds=0,
            period_seconds=0.01,
        )
        with caplog.at_level("INFO", logger="adilok.hardware.transmitter"):
            transmitter.start()
            await asyncio.sleep(0.035)
            await transmitter.stop()

        assert transmitter.transmit_count == 0
        assert transmitter.error_count >= 2
        assert "Error transmitting bits: line busy" in caplog.text
        assert (
            f"Transmitter stopped after 0 transmissions ({transmitter.error_count} errors)"
            in caplog.text
        )

    @pytest.mark.asyncio
    async def test_pulse_expiry_reaches_hardware(self, trace):
        register = BitRegister(1, pulse_seconds=0.02)
        transmitter = make_transmitter(register, trace)
        transmitter.period_seconds = 0.01
        register.pulse(0)
        transmitter.start()
        await asyncio.sleep(0.06)
        await transmitter.stop()

        sent = clocked_bits(trace)
        assert sent[0] is True
        assert sent[-1] is False


class TestStatusIndicators:
    @pytest.mark.asyncio
    async def test_pulse_received(self, mock_lines):
        indicators = StatusIndicators(
            mock_lines.received, mock_lines.acknowledge, mock_lines.error, pulse_seconds=0.02
        )
        indicators.pulse_received()
        assert mock_lines.received.value
        await asyncio.sleep(0.05)
        assert not mock_lines.received.value

    @pytest.mark.asyncio
    async def test_repeated_pulses_extend(self, mock_lines):
        indicators = StatusIndicators(
            mock_lines.received, mock_lines.acknowledge, mock_lines.error, pulse_seconds=0.04
        )
        indicators.pulse_acknowledge()
        await asyncio.sleep(0.025)
        indicators.pulse_acknowledge()
        await asyncio.sleep(0.025)
        assert mock_lines.acknowledge.value
        await asyncio.sleep(0.04)
        assert not mock_lines.acknowledge.value

    def test_error_level(self, mock_lines):
        indicators = StatusIndicators(
            mock_lines.received, mock_lines.acknowledge, mock_lines.error
        )
        assert indicators.error_active
        indicators.set_error(False)
        assert not mock_lines.error.value
        indicators.set_error(True, "test")
        assert mock_lines.error.value


class TestLineFactory:
    def test_mock_backend(self):
        lines = create_lines(HardwareConfig(backend="mock"))
        assert all(isinstance(line, MockOutputLine) for line in lines.all().values())
        assert lines.error.value
        assert not lines.clock.value
        assert lines.strobe.pin == 4

    def test_auto_without_raspberry_pi(self, monkeypatch):
        monkeypatch.setattr(lines_module, "is_raspberry_pi", lambda: False)
        lines = create_lines(HardwareConfig(backend="auto"))
        assert isinstance(lines.data, MockOutputLine)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_lines(HardwareConfig(backend="serial"))

    def test_mock_line_records_writes(self):
        line = MockOutputLine("x")
        line.on()
        line.off()
        assert [value for _, value in line.history] == [True, False]
