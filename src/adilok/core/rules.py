"""Rule table: rule model, action kinds and the location key index."""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..common.exceptions import ActionError, ConfigurationError

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"


class Action(str, Enum):
    """What a matched rule does to its bit"""

    AUTO = "AUTO"
    AUTOINV = "AUTOINV"
    SET = "SET"
    CLEAR = "CLEAR"
    TOGGLE = "TOGGLE"
    PULSE = "PULSE"
    PULSEOCCUPY = "PULSEOCCUPY"
    PULSERELEASE = "PULSERELEASE"

    @classmethod
    def parse(cls, value: str, bit: int) -> "Action":
        try:
            return cls(value)
        except ValueError:
            raise ActionError(value, bit) from None


class RouteType(str, Enum):
    """Route-set message kinds"""

    TRAIN = "T"
    SHUNTING = "S"
    CANCEL = "C"


# Rule ``type`` markers selecting route-set matching
ROUTE_SET_RULE_TYPES: Dict[str, RouteType] = {
    "ROUTESET": RouteType.TRAIN,
    "ROUTESET_S": RouteType.SHUNTING,
    "ROUTESET_C": RouteType.CANCEL,
}


def location_key(station: str, section: Optional[str] = None) -> str:
    """Index key for a station, or a station and section"""
    if section:
        return f"{station}{KEY_SEPARATOR}{section}"
    return station


class Rule(BaseModel):
    """A single rule from the configuration file"""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
        coerce_numbers_to_str=True,
    )

    station: str = Field(min_length=1)
    section: Optional[str] = Field(
        None, validation_alias=AliasChoices("trackSection", "section")
    )
    type: Optional[str] = None
    from_station: Optional[str] = Field(
        None, validation_alias=AliasChoices("from", "from_station")
    )
    from_section: Optional[str] = Field(
        None, validation_alias=AliasChoices("fromSection", "from_section")
    )
    to_station: Optional[str] = Field(
        None, validation_alias=AliasChoices("to", "to_station")
    )
    to_section: Optional[str] = Field(
        None, validation_alias=AliasChoices("toSection", "to_section")
    )
    action: str = Field(min_length=1)
    bit: int = Field(ge=0)

    @field_validator(
        "section", "type", "from_station", "from_section", "to_station", "to_section",
        mode="before",
    )
    @classmethod
    def empty_as_unset(cls, v: Any) -> Any:
        if v == "":
            return None
        return v

    @property
    def key(self) -> str:
        return location_key(self.station, self.section)

    @property
    def is_route_set_rule(self) -> bool:
        return self.type in ROUTE_SET_RULE_TYPES


class RuleIndex:
    """Rules grouped by location key, in declaration order"""

    def __init__(self):
        self._rules: Dict[str, List[Rule]] = {}

    @classmethod
    def from_config(cls, raw_rules: List[Dict[str, Any]], bit_count: int) -> "RuleIndex":
        """Build the index, skipping rules that fail validation"""
        index = cls()
        for position, raw in enumerate(raw_rules):
            try:
                index.add(cls.parse_rule(raw, bit_count))
            except ConfigurationError as e:
                logger.error(f"Incorrect rule #{position} in config: {e}")
        logger.info(f"{index.rule_count} rules in use.")
        return index

    @staticmethod
    def parse_rule(raw: Any, bit_count: int) -> Rule:
        if not isinstance(raw, dict):
            raise ConfigurationError(f"rule must be an object, got {raw!r}")
        try:
            rule = Rule.model_validate(raw)
        except ValidationError as e:
            fields = ", ".join(
                ".".join(str(part) for part in err["loc"]) or "rule"
                for err in e.errors()
            )
            raise ConfigurationError(f"invalid or missing {fields}") from e
        if rule.bit >= bit_count:
            raise ConfigurationError(
                f"bit {rule.bit} out of range (register has {bit_count} bits)"
            )
        return rule

    def add(self, rule: Rule) -> None:
        self._rules.setdefault(rule.key, []).append(rule)

    def lookup(self, key: str) -> List[Rule]:
        return list(self._rules.get(key, ()))

    @property
    def rule_count(self) -> int:
        return sum(len(rules) for rules in self._rules.values())
