"""Tests for the rule predicates."""

import pytest

from adilok.core.events import normalize_route_set, normalize_train_tracking
from adilok.core.matching import matches_route_set, matches_train_tracking
from adilok.core.rules import Rule

from .payloads import route_set, tracking


def rule(**fields) -> Rule:
    fields.setdefault("station", "HKI")
    fields.setdefault("action", "SET")
    fields.setdefault("bit", 0)
    return Rule.model_validate(fields)


@pytest.fixture
def event():
    return normalize_train_tracking(
        tracking(
            station="HKI",
            trackSection="HKI_1",
            type="OCCUPY",
            previousStation="PSL",
            nextStation="ILA",
            previousTrackSection="PSL_2",
            nextTrackSection="ILA_3",
        )
    )


class TestTrainTracking:
    def test_rule_without_filters_matches(self, event):
        assert matches_train_tracking(rule(), event)

    def test_type_filter(self, event):
        assert matches_train_tracking(rule(type="OCCUPY"), event)
        assert not matches_train_tracking(rule(type="RELEASE"), event)

    def test_from_and_to(self, event):
        assert matches_train_tracking(rule(**{"from": "PSL", "to": "ILA"}), event)
        assert not matches_train_tracking(rule(**{"from": "ILA"}), event)
        assert not matches_train_tracking(rule(to="PSL"), event)

    @pytest.mark.parametrize("marker", ["ROUTESET", "ROUTESET_S", "ROUTESET_C"])
    def test_route_set_rules_never_match(self, event, marker):
        assert not matches_train_tracking(rule(type=marker), event)

    def test_from_section_compares_against_to(self):
        event = normalize_train_tracking(
            tracking(station="HKI", previousTrackSection="ILA", nextStation="ILA")
        )
        assert matches_train_tracking(rule(fromSection="anything", to="ILA"), event)

        event = normalize_train_tracking(
            tracking(station="HKI", previousTrackSection="PSL_2", nextStation="ILA")
        )
        assert not matches_train_tracking(rule(fromSection="PSL_2", to="ILA"), event)

    def test_to_section_compares_against_to(self):
        event = normalize_train_tracking(
            tracking(station="HKI", nextTrackSection="ILA", nextStation="ILA")
        )
        assert matches_train_tracking(rule(toSection="ILA_3", to="ILA"), event)

    def test_section_filter_without_to_needs_missing_section(self):
        with_section = normalize_train_tracking(
            tracking(station="HKI", previousTrackSection="PSL_2")
        )
        without_section = normalize_train_tracking(tracking(station="HKI"))
        assert not matches_train_tracking(rule(fromSection="PSL_2"), with_section)
        assert matches_train_tracking(rule(fromSection="PSL_2"), without_section)


@pytest.fixture
def route():
    return normalize_route_set(route_set("T", ("X", "X1"), ("Y", "Y1"), ("Z", "Z1")))


class TestRouteSet:
    def test_to_station_at_each_index(self, route):
        r = rule(station="X", type="ROUTESET", to="Y", bit=2)
        assert matches_route_set(r, route, 0)
        assert not matches_route_set(r, route, 1)
        assert not matches_route_set(r, route, 2)

    def test_route_type_must_match(self, route):
        assert matches_route_set(rule(type="ROUTESET"), route, 1)
        assert not matches_route_set(rule(type="ROUTESET_S"), route, 1)
        assert not matches_route_set(rule(type="ROUTESET_C"), route, 1)

        shunting = normalize_route_set(route_set("S", ("X", "X1")))
        cancel = normalize_route_set(route_set("C", ("X", "X1")))
        assert matches_route_set(rule(type="ROUTESET_S"), shunting, 0)
        assert matches_route_set(rule(type="ROUTESET_C"), cancel, 0)

    @pytest.mark.parametrize("marker", [None, "OCCUPY", "RELEASE"])
    def test_non_route_set_rules_never_match(self, route, marker):
        assert not matches_route_set(rule(type=marker), route, 1)

    def test_empty_previous_disqualifies_from_filters(self, route):
        assert not matches_route_set(rule(type="ROUTESET", **{"from": "X"}), route, 0)
        assert not matches_route_set(rule(type="ROUTESET", fromSection="X1"), route, 0)

    def test_empty_next_disqualifies_to_filters(self, route):
        assert not matches_route_set(rule(type="ROUTESET", to="Z"), route, 2)
        assert not matches_route_set(rule(type="ROUTESET", toSection="Z1"), route, 2)

    def test_from_uses_nearest_previous_section(self, route):
        assert matches_route_set(rule(type="ROUTESET", **{"from": "Y"}), route, 2)
        assert not matches_route_set(rule(type="ROUTESET", **{"from": "X"}), route, 2)
        assert matches_route_set(rule(type="ROUTESET", fromSection="Y1"), route, 2)

    def test_to_section_uses_nearest_next_section(self, route):
        assert matches_route_set(rule(type="ROUTESET", toSection="Y1"), route, 0)
        assert not matches_route_set(rule(type="ROUTESET", toSection="Z1"), route, 0)
