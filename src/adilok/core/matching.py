"""Predicates deciding whether a rule applies to an event."""

from .events import RouteSetEvent, TrainTrackingEvent
from .rules import ROUTE_SET_RULE_TYPES, Rule


def matches_train_tracking(rule: Rule, event: TrainTrackingEvent) -> bool:
    """Check the optional rule filters against a train-tracking event.

    Both section filters compare the event's neighbouring section with
    ``rule.to_station``; rule tables in use rely on this.
    """
    if rule.is_route_set_rule:
        return False

    if rule.from_station and event.previous_station != rule.from_station:
        return False

    if rule.from_section and event.previous_track_section != rule.to_station:
        return False

    if rule.to_station and event.next_station != rule.to_station:
        return False

    if rule.to_section and event.next_track_section != rule.to_station:
        return False

    if rule.type and event.type.value != rule.type:
        return False

    return True


def matches_route_set(rule: Rule, event: RouteSetEvent, index: int) -> bool:
    """Check a route-set rule at section ``index`` of the route"""
    if not rule.is_route_set_rule:
        return False

    if ROUTE_SET_RULE_TYPES[rule.type] != event.route_type:
        return False

    previous, following = event.window(index)

    if rule.from_station and (
        not previous or previous[-1].station_code != rule.from_station
    ):
        return False

    if rule.to_station and (
        not following or following[0].station_code != rule.to_station
    ):
        return False

    if rule.from_section and (
        not previous or previous[-1].section_id != rule.from_section
    ):
        return False

    if rule.to_section and (
        not following or following[0].section_id != rule.to_section
    ):
        return False

    return True
