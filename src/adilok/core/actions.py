import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from ..common.exceptions import ActionError
from .events import Event, TrackingType, TrainTrackingEvent
from .register import BitRegister
from .rules import Action, Rule

logger = logging.getLogger(__name__)


class Acknowledger(Protocol):
    def pulse_acknowledge(self) -> None: ...


@dataclass
class ActionResult:
    """Outcome of executing one matched rule"""

    rule: Rule
    action: Optional[Action]
    changed: bool = False
    error: Optional[ActionError] = None


def _tracking_type(event: Event) -> Optional[TrackingType]:
    if isinstance(event, TrainTrackingEvent):
        return event.type
    return None


class ActionExecutor:
    """Applies the action of a matched rule to the bit register"""

    def __init__(self, register: BitRegister, indicators: Acknowledger):
        self.register = register
        self.indicators = indicators

    def execute(self, event: Event, rule: Rule) -> ActionResult:
        logger.info(f"  Action: {rule.action}, bit {rule.bit}")
        try:
            action = Action.parse(rule.action, rule.bit)
        except ActionError as e:
            logger.error(f"  {e}")
            self.indicators.pulse_acknowledge()
            return ActionResult(rule=rule, action=None, error=e)

        changed = self._apply(action, event, rule.bit)
        self.indicators.pulse_acknowledge()
        return ActionResult(rule=rule, action=action, changed=changed)

    def _apply(self, action: Action, event: Event, bit: int) -> bool:
        register = self.register

        if action is Action.AUTO:
            return register.set(bit) if event.is_active else register.clear(bit)
        if action is Action.AUTOINV:
            return register.clear(bit) if event.is_active else register.set(bit)
        if action is Action.SET:
            return register.set(bit)
        if action is Action.CLEAR:
            return register.clear(bit)
        if action is Action.TOGGLE:
            return register.toggle(bit)
        if action is Action.PULSE:
            return register.pulse(bit)
        if action is Action.PULSEOCCUPY:
            if _tracking_type(event) is TrackingType.OCCUPY:
                return register.pulse(bit)
            return False
        if action is Action.PULSERELEASE:
            if _tracking_type(event) is TrackingType.RELEASE:
                return register.pulse(bit)
            return False
        raise AssertionError(f"Unhandled action {action}")
