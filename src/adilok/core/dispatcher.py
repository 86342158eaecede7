"""Routes normalized events through the rule table."""

import logging
import time
from typing import Callable, List, Optional, Protocol, Union

from ..common.exceptions import NormalizationError
from .actions import ActionExecutor, ActionResult
from .events import Channel, Event, RouteSetEvent, TrainTrackingEvent, normalize
from .matching import matches_route_set, matches_train_tracking
from .rules import RuleIndex, location_key

logger = logging.getLogger(__name__)


class StatusLines(Protocol):
    def pulse_received(self) -> None: ...

    def pulse_acknowledge(self) -> None: ...

    def set_error(self, active: bool, reason: Optional[str] = None) -> None: ...


class EventDispatcher:
    """Normalizes feed messages and executes the matching rules"""

    def __init__(
        self,
        rules: RuleIndex,
        executor: ActionExecutor,
        indicators: StatusLines,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self.rules = rules
        self.executor = executor
        self.indicators = indicators
        self.on_change = on_change
        self.last_message_received = time.monotonic()
        self.message_count = 0
        self.error_count = 0

    def touch(self) -> None:
        """Mark feed activity for the liveness watchdog"""
        self.last_message_received = time.monotonic()

    def seconds_since_last_message(self) -> float:
        return time.monotonic() - self.last_message_received

    def handle_message(
        self, channel: Channel, payload: Union[bytes, str]
    ) -> List[ActionResult]:
        """Process one raw feed message; never raises"""
        self.touch()
        try:
            event = normalize(channel, payload)
        except NormalizationError as e:
            self.error_count += 1
            self.indicators.set_error(True)
            logger.error(str(e))
            return []

        self.message_count += 1
        self.indicators.pulse_received()
        self.indicators.set_error(False)

        try:
            results = self.dispatch(event)
        except Exception as e:
            self.error_count += 1
            logger.exception(f"Error dispatching {channel.value} message: {e}")
            return []

        if self.on_change is not None and any(r.changed for r in results):
            self.on_change()
        return results

    def dispatch(self, event: Event) -> List[ActionResult]:
        if isinstance(event, TrainTrackingEvent):
            return self._dispatch_train_tracking(event)
        if isinstance(event, RouteSetEvent):
            return self._dispatch_route_set(event)
        raise TypeError(f"Unsupported event type: {type(event).__name__}")

    def _candidate_keys(self, station: str, section: Optional[str]) -> List[str]:
        keys = [location_key(station)]
        if section:
            keys.append(location_key(station, section))
        return keys

    def _dispatch_train_tracking(self, event: TrainTrackingEvent) -> List[ActionResult]:
        results = []
        logged = False
        for key in self._candidate_keys(event.station, event.track_section):
            for rule in self.rules.lookup(key):
                if not matches_train_tracking(rule, event):
                    continue
                if not logged:
                    logger.info(event.summary())
                    logged = True
                results.append(self.executor.execute(event, rule))
        return results

    def _dispatch_route_set(self, event: RouteSetEvent) -> List[ActionResult]:
        results = []
        logged = False
        for index, section in enumerate(event.sections):
            keys = self._candidate_keys(section.station_code, section.section_id)
            for key in keys:
                for rule in self.rules.lookup(key):
                    if not matches_route_set(rule, event, index):
                        continue
                    if not logged:
                        logger.info(event.summary())
                        logged = True
                    logger.info(f"  Section {section.station_code}/{section.section_id}")
                    results.append(self.executor.execute(event, rule))
        return results
