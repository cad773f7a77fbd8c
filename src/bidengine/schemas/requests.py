"""Service request and fleet snapshot payload schemas, and the parse step into typed domain values."""

from __future__ import annotations

import math
import re
from dataclasses import asdict
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import InputValidationError
from ..models.domain import (
    FleetUtilization,
    Location,
    ServiceRequest,
    StreamRequest,
    StreamType,
    TruckSpec,
    UnitBreakdown,
    UnitType,
)

FREQUENCY_LABELS: Dict[str, float] = {
    "weekly": 1.0,
    "onceweekly": 1.0,
    "twiceweekly": 2.0,
    "threetimesweekly": 3.0,
    "biweekly": 0.5,
    "everyotherweek": 0.5,
    "daily": 5.0,
}

STREAM_ALIASES: Dict[str, StreamType] = {
    "trash": StreamType.TRASH,
    "garbage": StreamType.TRASH,
    "refuse": StreamType.TRASH,
    "recycling": StreamType.RECYCLING,
    "recycle": StreamType.RECYCLING,
    "yardwaste": StreamType.YARD_WASTE,
    "yard": StreamType.YARD_WASTE,
}

UNIT_TYPE_ALIASES: Dict[str, UnitType] = {
    "singlefamily": UnitType.SINGLE_FAMILY,
    "sfh": UnitType.SINGLE_FAMILY,
    "house": UnitType.SINGLE_FAMILY,
    "townhome": UnitType.TOWNHOME,
    "townhouse": UnitType.TOWNHOME,
    "condo": UnitType.CONDO,
    "condominium": UnitType.CONDO,
    "mixedresidential": UnitType.MIXED_RESIDENTIAL,
    "mixed": UnitType.MIXED_RESIDENTIAL,
    "unknown": UnitType.UNKNOWN,
}


def _compact(value: str) -> str:
    return re.sub(r"[^a-z]", "", value.lower())


def _coerce_number(value: Any) -> Any:
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if cleaned == "":
            return None
        try:
            value = float(cleaned)
        except ValueError as exc:
            raise ValueError(f"Unable to parse number from value '{value}'") from exc
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("must be a finite number")
    return value


class StreamPayload(BaseModel):
    type: StreamType
    frequency_per_week: float = Field(1.0, ge=0)

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> StreamType:
        if isinstance(value, StreamType):
            return value
        stream_type = STREAM_ALIASES.get(_compact(str(value)))
        if stream_type is None:
            raise ValueError(f"Unknown stream type '{value}'")
        return stream_type

    @field_validator("frequency_per_week", mode="before")
    @classmethod
    def _parse_frequency(cls, value: Any) -> Any:
        if value is None:
            return 1.0
        if isinstance(value, str) and _compact(value) in FREQUENCY_LABELS:
            return FREQUENCY_LABELS[_compact(value)]
        return _coerce_number(value)


class LocationPayload(BaseModel):
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @model_validator(mode="before")
    @classmethod
    def _accept_short_keys(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"address": data}
        if isinstance(data, Mapping):
            data = dict(data)
            if "lat" in data and "latitude" not in data:
                data["latitude"] = data.pop("lat")
            for key in ("lng", "lon"):
                if key in data and "longitude" not in data:
                    data["longitude"] = data.pop(key)
        return data

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _parse_coordinate(cls, value: Any) -> Any:
        return _coerce_number(value)

    @model_validator(mode="after")
    def _both_or_neither(self) -> "LocationPayload":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self


class UnitBreakdownPayload(BaseModel):
    single_family: int = Field(0, ge=0)
    townhome: int = Field(0, ge=0)
    condo: int = Field(0, ge=0)

    @field_validator("single_family", "townhome", "condo", mode="before")
    @classmethod
    def _parse_count(cls, value: Any) -> Any:
        return _coerce_number(value) or 0


class ServiceRequestPayload(BaseModel):
    """Raw service request as received from upstream parsing."""

    homes: int = Field(..., gt=0)
    unit_type: UnitType = UnitType.UNKNOWN
    unit_breakdown: Optional[UnitBreakdownPayload] = None
    streams: List[StreamPayload] = Field(..., min_length=1)
    location: LocationPayload = Field(default_factory=LocationPayload)
    is_walkout: bool = False
    is_gated: bool = False
    has_special_containers: bool = False
    special_requirements: List[str] = Field(default_factory=list)
    community_type: Optional[str] = None
    access_type: Optional[str] = None

    @field_validator("homes", mode="before")
    @classmethod
    def _parse_homes(cls, value: Any) -> Any:
        value = _coerce_number(value)
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    @field_validator("unit_type", mode="before")
    @classmethod
    def _parse_unit_type(cls, value: Any) -> UnitType:
        if value is None or value == "":
            return UnitType.UNKNOWN
        if isinstance(value, UnitType):
            return value
        unit_type = UNIT_TYPE_ALIASES.get(_compact(str(value)))
        if unit_type is None:
            raise ValueError(f"Unknown unit type '{value}'")
        return unit_type

    @field_validator("streams", mode="before")
    @classmethod
    def _parse_streams(cls, value: Any) -> Any:
        # {"trash": 1, "recycling": "weekly"} shorthand
        if isinstance(value, Mapping):
            return [{"type": key, "frequency_per_week": frequency} for key, frequency in value.items()]
        return value

    @field_validator("special_requirements", mode="before")
    @classmethod
    def _parse_requirements(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> "ServiceRequestPayload":
        seen: set[StreamType] = set()
        for stream in self.streams:
            if stream.type in seen:
                raise ValueError(f"Duplicate stream type '{stream.type.value}'")
            seen.add(stream.type)
        if self.unit_breakdown is not None:
            breakdown = self.unit_breakdown
            total = breakdown.single_family + breakdown.townhome + breakdown.condo
            if total != self.homes:
                raise ValueError(f"Unit breakdown totals {total} but homes is {self.homes}")
        return self

    def to_domain(self) -> ServiceRequest:
        community_type = self.community_type
        if community_type is None and self.unit_type in (
            UnitType.SINGLE_FAMILY,
            UnitType.TOWNHOME,
            UnitType.CONDO,
        ):
            community_type = self.unit_type.value
        breakdown = None
        if self.unit_breakdown is not None:
            breakdown = UnitBreakdown(
                single_family=self.unit_breakdown.single_family,
                townhome=self.unit_breakdown.townhome,
                condo=self.unit_breakdown.condo,
            )
        return ServiceRequest(
            homes=self.homes,
            unit_type=self.unit_type,
            streams=tuple(StreamRequest(type=s.type, frequency_per_week=s.frequency_per_week) for s in self.streams),
            location=Location(
                address=self.location.address,
                latitude=self.location.latitude,
                longitude=self.location.longitude,
            ),
            unit_breakdown=breakdown,
            is_walkout=self.is_walkout,
            is_gated=self.is_gated,
            has_special_containers=self.has_special_containers,
            special_requirements=tuple(item.strip() for item in self.special_requirements if item.strip()),
            community_type=community_type,
            access_type=self.access_type,
        )


class FleetUtilizationPayload(BaseModel):
    """Caller-supplied snapshot of committed fleet load."""

    model_config = ConfigDict(extra="forbid")

    current_trucks: int = Field(..., ge=0)
    hours_per_truck_committed: float = Field(..., ge=0, le=TruckSpec().max_route_hours_per_day)
    stops_per_truck: int = Field(0, ge=0)
    utilization_percent: float = Field(0.0, ge=0, le=100)

    @field_validator("current_trucks", "hours_per_truck_committed", "stops_per_truck", "utilization_percent", mode="before")
    @classmethod
    def _parse_numbers(cls, value: Any) -> Any:
        return _coerce_number(value)

    def to_domain(self) -> FleetUtilization:
        return FleetUtilization(
            current_trucks=self.current_trucks,
            hours_per_truck_committed=self.hours_per_truck_committed,
            stops_per_truck=self.stops_per_truck,
            utilization_percent=self.utilization_percent,
        )


def _format_errors(exc: ValidationError) -> list[str]:
    messages: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = str(error.get("msg", "invalid value"))
        messages.append(f"{location}: {message}" if location else message)
    return messages


def parse_service_request(payload: Union[Mapping[str, Any], ServiceRequestPayload]) -> ServiceRequest:
    """Validate raw request data and build a typed ``ServiceRequest``.

    Raises ``InputValidationError`` listing every problem found.
    """

    if isinstance(payload, ServiceRequestPayload):
        return payload.to_domain()
    try:
        model = ServiceRequestPayload.model_validate(dict(payload))
    except ValidationError as exc:
        raise InputValidationError(_format_errors(exc)) from exc
    return model.to_domain()


def validate_service_request(request: ServiceRequest) -> ServiceRequest:
    """Check a request built in code rather than parsed from raw data."""

    errors: list[str] = []
    if request.homes <= 0:
        errors.append("homes: must be greater than 0")
    if not request.streams:
        errors.append("streams: at least one stream is required")
    seen: set[StreamType] = set()
    for stream in request.streams:
        if stream.type in seen:
            errors.append(f"Duplicate stream type '{stream.type.value}'")
        seen.add(stream.type)
        if not math.isfinite(stream.frequency_per_week) or stream.frequency_per_week < 0:
            errors.append(f"streams: invalid frequency for '{stream.type.value}'")
    breakdown = request.unit_breakdown
    if breakdown is not None and breakdown.total != request.homes:
        errors.append(f"Unit breakdown totals {breakdown.total} but homes is {request.homes}")
    if errors:
        raise InputValidationError(errors)
    return request


def parse_fleet_utilization(
    payload: Union[Mapping[str, Any], FleetUtilization, None],
) -> Optional[FleetUtilization]:
    """Validate a fleet snapshot; ``None`` means no snapshot was supplied."""

    if payload is None:
        return None
    data = asdict(payload) if isinstance(payload, FleetUtilization) else dict(payload)
    try:
        model = FleetUtilizationPayload.model_validate(data)
    except ValidationError as exc:
        raise InputValidationError(_format_errors(exc)) from exc
    return model.to_domain()
