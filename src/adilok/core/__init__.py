"""Rule engine and bit register"""

from ..common.exceptions import ActionError, ConfigurationError, NormalizationError
from .config import SystemConfig, SystemDefaults, load_config
from .register import BitRegister, PendingPulse
from .rules import Action, RouteType, Rule, RuleIndex, location_key
from .events import (
    Channel,
    Event,
    RouteSection,
    RouteSetEvent,
    TrackingType,
    TrainTrackingEvent,
    normalize,
)
from .matching import matches_route_set, matches_train_tracking
from .actions import ActionExecutor, ActionResult
from .dispatcher import EventDispatcher

__all__ = [
    # Configuration
    "SystemConfig",
    "SystemDefaults",
    "load_config",
    # Register
    "BitRegister",
    "PendingPulse",
    # Rules
    "Action",
    "RouteType",
    "Rule",
    "RuleIndex",
    "location_key",
    # Events
    "Channel",
    "Event",
    "RouteSection",
    "RouteSetEvent",
    "TrackingType",
    "TrainTrackingEvent",
    "normalize",
    # Evaluation
    "matches_route_set",
    "matches_train_tracking",
    "ActionExecutor",
    "ActionResult",
    "EventDispatcher",
    # Exceptions
    "ActionError",
    "ConfigurationError",
    "NormalizationError",
]
