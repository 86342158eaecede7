"""Configuration loading and defaults for the ADILOK service."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Union
import json
import logging

import yaml

from ..common.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class SystemDefaults:
    """Hardware, protocol and feed constants"""

    # Register chain
    DEFAULT_BIT_COUNT: ClassVar[int] = 8
    MAX_BIT_COUNT: ClassVar[int] = 4096

    # Timing
    DEFAULT_PULSE_MS: ClassVar[int] = 100
    DEFAULT_INDICATOR_PULSE_MS: ClassVar[int] = 100
    DEFAULT_TRANSMIT_PERIOD_MS: ClassVar[int] = 100
    DEFAULT_CLOCK_HOLD_US: ClassVar[float] = 1.0
    DEFAULT_WATCHDOG_SECONDS: ClassVar[float] = 60.0
    DEFAULT_WATCHDOG_CHECK_SECONDS: ClassVar[float] = 2.0

    # BCM pin numbers
    DEFAULT_CLOCK_PIN: ClassVar[int] = 2
    DEFAULT_DATA_PIN: ClassVar[int] = 3
    DEFAULT_STROBE_PIN: ClassVar[int] = 4
    DEFAULT_RECEIVED_PIN: ClassVar[int] = 14
    DEFAULT_ACKNOWLEDGE_PIN: ClassVar[int] = 15
    DEFAULT_ERROR_PIN: ClassVar[int] = 18

    # Feed
    DEFAULT_BROKER_HOST: ClassVar[str] = "rata-mqtt.digitraffic.fi"
    DEFAULT_BROKER_PORT: ClassVar[int] = 9001
    DEFAULT_TRANSPORT: ClassVar[str] = "websockets"
    DEFAULT_WS_PATH: ClassVar[str] = "/"
    DEFAULT_KEEPALIVE_SECONDS: ClassVar[int] = 30
    DEFAULT_TRAIN_TRACKING_TOPIC: ClassVar[str] = "train-tracking/#"
    DEFAULT_ROUTE_SET_TOPIC: ClassVar[str] = "routesets/#"
    DEFAULT_RECONNECT_MIN_SECONDS: ClassVar[int] = 1
    DEFAULT_RECONNECT_MAX_SECONDS: ClassVar[int] = 60

    DEFAULT_CONFIG_FILE: ClassVar[str] = "config.json"


HARDWARE_BACKENDS = ("auto", "gpio", "mock")


@dataclass
class HardwareConfig:
    """GPIO backend and pin assignment"""

    backend: str = "auto"
    clock: int = SystemDefaults.DEFAULT_CLOCK_PIN
    data: int = SystemDefaults.DEFAULT_DATA_PIN
    strobe: int = SystemDefaults.DEFAULT_STROBE_PIN
    received: int = SystemDefaults.DEFAULT_RECEIVED_PIN
    acknowledge: int = SystemDefaults.DEFAULT_ACKNOWLEDGE_PIN
    error: int = SystemDefaults.DEFAULT_ERROR_PIN

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HardwareConfig":
        return cls(
            backend=str(data.get("backend", "auto")),
            clock=data.get("clock", SystemDefaults.DEFAULT_CLOCK_PIN),
            data=data.get("data", SystemDefaults.DEFAULT_DATA_PIN),
            strobe=data.get("strobe", SystemDefaults.DEFAULT_STROBE_PIN),
            received=data.get("received", SystemDefaults.DEFAULT_RECEIVED_PIN),
            acknowledge=data.get(
                "acknowledge", SystemDefaults.DEFAULT_ACKNOWLEDGE_PIN
            ),
            error=data.get("error", SystemDefaults.DEFAULT_ERROR_PIN),
        )

    def pins(self) -> Dict[str, int]:
        return {
            "clock": self.clock,
            "data": self.data,
            "strobe": self.strobe,
            "received": self.received,
            "acknowledge": self.acknowledge,
            "error": self.error,
        }

    def validate(self) -> None:
        """Validate backend name and pin assignment"""
        if self.backend not in HARDWARE_BACKENDS:
            raise ConfigurationError(
                f"Hardware backend must be one of {', '.join(HARDWARE_BACKENDS)}"
            )
        pins = self.pins()
        for name, pin in pins.items():
            if not isinstance(pin, int) or isinstance(pin, bool) or not 0 <= pin <= 27:
                raise ConfigurationError(f"Invalid GPIO pin for {name}: {pin}")
        if len(set(pins.values())) != len(pins):
            raise ConfigurationError("GPIO pins must be unique")


@dataclass
class TimingConfig:
    """Pulse, transmission and watchdog timing"""

    pulse_ms: float = SystemDefaults.DEFAULT_PULSE_MS
    indicator_pulse_ms: float = SystemDefaults.DEFAULT_INDICATOR_PULSE_MS
    transmit_period_ms: float = SystemDefaults.DEFAULT_TRANSMIT_PERIOD_MS
    clock_hold_us: float = SystemDefaults.DEFAULT_CLOCK_HOLD_US
    watchdog_seconds: float = SystemDefaults.DEFAULT_WATCHDOG_SECONDS
    watchdog_check_seconds: float = SystemDefaults.DEFAULT_WATCHDOG_CHECK_SECONDS
    transmit_on_change: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimingConfig":
        return cls(
            pulse_ms=data.get("pulseMs", SystemDefaults.DEFAULT_PULSE_MS),
            indicator_pulse_ms=data.get(
                "indicatorPulseMs", SystemDefaults.DEFAULT_INDICATOR_PULSE_MS
            ),
            transmit_period_ms=data.get(
                "transmitPeriodMs", SystemDefaults.DEFAULT_TRANSMIT_PERIOD_MS
            ),
            clock_hold_us=data.get(
                "clockHoldUs", SystemDefaults.DEFAULT_CLOCK_HOLD_US
            ),
            watchdog_seconds=data.get(
                "watchdogSeconds", SystemDefaults.DEFAULT_WATCHDOG_SECONDS
            ),
            watchdog_check_seconds=data.get(
                "watchdogCheckSeconds", SystemDefaults.DEFAULT_WATCHDOG_CHECK_SECONDS
            ),
            transmit_on_change=bool(data.get("transmitOnChange", False)),
        )

    @property
    def pulse_seconds(self) -> float:
        return self.pulse_ms / 1000

    @property
    def indicator_pulse_seconds(self) -> float:
        return self.indicator_pulse_ms / 1000

    @property
    def transmit_period_seconds(self) -> float:
        return self.transmit_period_ms / 1000

    @property
    def clock_hold_seconds(self) -> float:
        return self.clock_hold_us / 1_000_000

    def validate(self) -> None:
        """Validate timing values"""
        for name in (
            "pulse_ms",
            "indicator_pulse_ms",
            "transmit_period_ms",
            "watchdog_seconds",
            "watchdog_check_seconds",
        ):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value <= 0:
                raise ConfigurationError(f"Invalid {name}: {value}")
        if not isinstance(self.clock_hold_us, (int, float)) or self.clock_hold_us < 0:
            raise ConfigurationError(f"Invalid clock_hold_us: {self.clock_hold_us}")
        if self.watchdog_check_seconds > self.watchdog_seconds:
            logger.warning(
                "Watchdog check interval is longer than the watchdog timeout"
            )


@dataclass
class BrokerConfig:
    """MQTT feed connection settings"""

    host: str = SystemDefaults.DEFAULT_BROKER_HOST
    port: int = SystemDefaults.DEFAULT_BROKER_PORT
    transport: str = SystemDefaults.DEFAULT_TRANSPORT
    ws_path: str = SystemDefaults.DEFAULT_WS_PATH
    use_tls: bool = False
    username: Optional[str] = None
    password: Optional[str] = None
    client_id: Optional[str] = None
    keepalive_seconds: int = SystemDefaults.DEFAULT_KEEPALIVE_SECONDS
    train_tracking_topic: str = SystemDefaults.DEFAULT_TRAIN_TRACKING_TOPIC
    route_set_topic: str = SystemDefaults.DEFAULT_ROUTE_SET_TOPIC
    subscribe_route_sets: bool = True
    reconnect_min_seconds: int = SystemDefaults.DEFAULT_RECONNECT_MIN_SECONDS
    reconnect_max_seconds: int = SystemDefaults.DEFAULT_RECONNECT_MAX_SECONDS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BrokerConfig":
        topics = data.get("topics") or {}
        return cls(
            host=data.get("host", SystemDefaults.DEFAULT_BROKER_HOST),
            port=data.get("port", SystemDefaults.DEFAULT_BROKER_PORT),
            transport=data.get("transport", SystemDefaults.DEFAULT_TRANSPORT),
            ws_path=data.get("wsPath", SystemDefaults.DEFAULT_WS_PATH),
            use_tls=bool(data.get("useTls", False)),
            username=data.get("username"),
            password=data.get("password"),
            client_id=data.get("clientId"),
            keepalive_seconds=data.get(
                "keepaliveSeconds", SystemDefaults.DEFAULT_KEEPALIVE_SECONDS
            ),
            train_tracking_topic=topics.get(
                "trainTracking", SystemDefaults.DEFAULT_TRAIN_TRACKING_TOPIC
            ),
            route_set_topic=topics.get(
                "routeSet", SystemDefaults.DEFAULT_ROUTE_SET_TOPIC
            ),
            subscribe_route_sets=bool(data.get("subscribeRouteSets", True)),
            reconnect_min_seconds=data.get(
                "reconnectMinSeconds", SystemDefaults.DEFAULT_RECONNECT_MIN_SECONDS
            ),
            reconnect_max_seconds=data.get(
                "reconnectMaxSeconds", SystemDefaults.DEFAULT_RECONNECT_MAX_SECONDS
            ),
        )

    def validate(self) -> None:
        """Validate broker settings"""
        if not self.host:
            raise ConfigurationError("Broker host is required")
        if not isinstance(self.port, int) or not 1 <= self.port <= 65535:
            raise ConfigurationError(f"Invalid broker port: {self.port}")
        if self.transport not in ("tcp", "websockets"):
            raise ConfigurationError("Broker transport must be 'tcp' or 'websockets'")
        if self.reconnect_min_seconds > self.reconnect_max_seconds:
            raise ConfigurationError(
                "reconnectMinSeconds must not exceed reconnectMaxSeconds"
            )


@dataclass
class SystemConfig:
    """Complete service configuration"""

    bits: int = SystemDefaults.DEFAULT_BIT_COUNT
    initial_pattern: str = ""
    rules: List[Dict[str, Any]] = field(default_factory=list)
    hardware: HardwareConfig = field(default_factory=HardwareConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    broker: BrokerConfig = field(default_factory=BrokerConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemConfig":
        """Build a configuration from the parsed config file"""
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be an object")

        rules = data.get("rules") or []
        if not isinstance(rules, list):
            raise ConfigurationError("'rules' must be a list")

        try:
            config = cls(
                bits=data.get("bits") or 0,
                initial_pattern=data.get("initialPattern") or "",
                rules=rules,
                hardware=HardwareConfig.from_dict(data.get("hardware") or {}),
                timing=TimingConfig.from_dict(data.get("timing") or {}),
                broker=BrokerConfig.from_dict(data.get("broker") or {}),
            )
        except AttributeError as e:
            raise ConfigurationError(f"Invalid configuration section: {e}") from e

        config.validate()
        return config

    def validate(self) -> None:
        """Validate all configuration sections"""
        if (
            not isinstance(self.bits, int)
            or isinstance(self.bits, bool)
            or not 0 <= self.bits <= SystemDefaults.MAX_BIT_COUNT
        ):
            raise ConfigurationError(
                f"'bits' must be an integer between 0 and {SystemDefaults.MAX_BIT_COUNT}"
            )
        if not isinstance(self.initial_pattern, str):
            raise ConfigurationError("'initialPattern' must be a string")
        if len(self.initial_pattern) > self.bits:
            logger.warning(
                f"Initial pattern has {len(self.initial_pattern)} positions, "
                f"only the first {self.bits} are used"
            )
        self.hardware.validate()
        self.timing.validate()
        self.broker.validate()


def load_config(path: Union[str, Path]) -> SystemConfig:
    """Read and validate a JSON or YAML configuration file"""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot parse config file {path}: {e}") from e

    config = SystemConfig.from_dict(data)
    logger.debug(f"Loaded configuration from {path}: {config.bits} bits")
    return config
