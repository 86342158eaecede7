"""Inbound telegram models and normalization."""

import logging
from enum import Enum
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..common.exceptions import NormalizationError
from .rules import RouteType

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    """Feed channels carrying events"""

    TRAIN_TRACKING = "train-tracking"
    ROUTE_SET = "route-set"


class TrackingType(str, Enum):
    OCCUPY = "OCCUPY"
    RELEASE = "RELEASE"


class _Telegram(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
        coerce_numbers_to_str=True,
    )


class TrainTrackingEvent(_Telegram):
    """Occupy or release of a track section by a train"""

    timestamp: Optional[str] = None
    train_number: Optional[str] = Field(None, alias="trainNumber")
    station: str
    track_section: Optional[str] = Field(None, alias="trackSection")
    type: TrackingType
    previous_station: Optional[str] = Field(None, alias="previousStation")
    next_station: Optional[str] = Field(None, alias="nextStation")
    previous_track_section: Optional[str] = Field(None, alias="previousTrackSection")
    next_track_section: Optional[str] = Field(None, alias="nextTrackSection")

    @property
    def is_active(self) -> bool:
        return self.type == TrackingType.OCCUPY

    def summary(self) -> str:
        text = (
            f"{self.train_number} {self.station} {self.track_section} {self.type.value}"
            f"\n  {self.previous_station or ''} -> {self.station} -> {self.next_station or ''}"
        )
        if self.previous_track_section or self.next_track_section:
            text += (
                f"\n  {self.previous_track_section or ''} -> {self.track_section}"
                f" -> {self.next_track_section or ''}"
            )
        return text


class RouteSection(_Telegram):
    station_code: str = Field(alias="stationCode")
    section_id: str = Field(alias="sectionId")


class RouteSetEvent(_Telegram):
    """Route set for a train over an ordered list of sections"""

    message_time: Optional[str] = Field(None, alias="messageTime")
    train_number: Optional[str] = Field(None, alias="trainNumber")
    route_type: RouteType = Field(alias="routeType")
    sections: List[RouteSection] = Field(alias="routesections")

    @property
    def is_active(self) -> bool:
        return self.route_type in (RouteType.TRAIN, RouteType.SHUNTING)

    def window(self, index: int) -> Tuple[List[RouteSection], List[RouteSection]]:
        """Sections strictly before and strictly after ``index``"""
        return self.sections[:index], self.sections[index + 1 :]

    def summary(self) -> str:
        route = " -> ".join(
            f"{s.station_code}/{s.section_id}" for s in self.sections
        )
        return f"{self.train_number} ROUTESET {self.route_type.value}\n  {route}"


Event = Union[TrainTrackingEvent, RouteSetEvent]

_MODELS = {
    Channel.TRAIN_TRACKING: TrainTrackingEvent,
    Channel.ROUTE_SET: RouteSetEvent,
}


def normalize(channel: Channel, payload: Union[bytes, str]) -> Event:
    """Decode a raw feed payload into an event

    Raises NormalizationError for undecodable or incomplete payloads.
    """
    model = _MODELS[channel]
    try:
        return model.model_validate_json(payload)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        detail = f"{location}: {first['msg']}" if location else first["msg"]
        raise NormalizationError(channel.value, detail) from e


def normalize_train_tracking(payload: Union[bytes, str]) -> TrainTrackingEvent:
    return normalize(Channel.TRAIN_TRACKING, payload)


def normalize_route_set(payload: Union[bytes, str]) -> RouteSetEvent:
    return normalize(Channel.ROUTE_SET, payload)
