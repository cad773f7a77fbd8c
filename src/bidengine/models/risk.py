"""Structured risk flags and their display text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Union


@dataclass(slots=True, frozen=True)
class AdditionalTrucksRequired:
    trucks: int


@dataclass(slots=True, frozen=True)
class HighFleetUtilization:
    load_percent: float


@dataclass(slots=True, frozen=True)
class BenchmarkExceeded:
    variance_percent: float


@dataclass(slots=True, frozen=True)
class CondoContainerPricing:
    containers: int
    units: int


@dataclass(slots=True, frozen=True)
class WalkoutPremiumApplied:
    percent: float


@dataclass(slots=True, frozen=True)
class GatedAccessSurcharge:
    amount_per_unit: float


@dataclass(slots=True, frozen=True)
class SpecialContainerSurcharge:
    amount_per_unit: float


@dataclass(slots=True, frozen=True)
class RearAlleyAccess:
    pass


@dataclass(slots=True, frozen=True)
class StrictServiceExpectations:
    pass


@dataclass(slots=True, frozen=True)
class UnknownUnitType:
    pass


@dataclass(slots=True, frozen=True)
class MixedResidentialEstimated:
    single_family: int
    townhome: int


@dataclass(slots=True, frozen=True)
class LowProfitMargin:
    margin_percent: float


@dataclass(slots=True, frozen=True)
class LongDriveTime:
    minutes: float


@dataclass(slots=True, frozen=True)
class RouteEstimateDegraded:
    source: str


RiskFlag = Union[
    AdditionalTrucksRequired,
    HighFleetUtilization,
    BenchmarkExceeded,
    CondoContainerPricing,
    WalkoutPremiumApplied,
    GatedAccessSurcharge,
    SpecialContainerSurcharge,
    RearAlleyAccess,
    StrictServiceExpectations,
    UnknownUnitType,
    MixedResidentialEstimated,
    LowProfitMargin,
    LongDriveTime,
    RouteEstimateDegraded,
]


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


_FORMATTERS: dict[type, Callable[..., str]] = {
    AdditionalTrucksRequired: lambda f: f"Requires {_plural(f.trucks, 'additional truck')}",
    HighFleetUtilization: lambda f: f"High fleet utilization ({f.load_percent:.1f}%)",
    BenchmarkExceeded: lambda f: f"Price deviates {f.variance_percent:+.1f}% from market benchmark",
    CondoContainerPricing: lambda f: f"Condo pricing: {_plural(f.containers, 'container')} for {f.units} units",
    WalkoutPremiumApplied: lambda f: f"Walk-out premium applied ({f.percent:.0f}%)",
    GatedAccessSurcharge: lambda f: f"Gated community access surcharge (${f.amount_per_unit:.2f}/unit)",
    SpecialContainerSurcharge: lambda f: f"Special container surcharge (${f.amount_per_unit:.2f}/unit)",
    RearAlleyAccess: lambda f: "Rear alley access may require smaller vehicles",
    StrictServiceExpectations: lambda f: "Zero-tolerance service expectations require close oversight",
    UnknownUnitType: lambda f: "Unknown unit type - priced as single-family",
    MixedResidentialEstimated: lambda f: (
        f"Mixed residential split estimated ({f.single_family} single-family / {f.townhome} townhome)"
    ),
    LowProfitMargin: lambda f: f"Low profit margin ({f.margin_percent:.1f}%)",
    LongDriveTime: lambda f: f"Long drive time to service area ({f.minutes:.0f} min)",
    RouteEstimateDegraded: lambda f: f"Route estimate from {f.source} - verify drive time",
}


def format_risk_flag(flag: RiskFlag) -> str:
    """Render a risk flag as display text."""

    formatter = _FORMATTERS.get(type(flag))
    if formatter is None:
        raise TypeError(f"Unsupported risk flag: {flag!r}")
    return formatter(flag)


def risk_flag_kind(flag: RiskFlag) -> str:
    return type(flag).__name__


def dedupe_flags(flags: Iterable[RiskFlag]) -> list[RiskFlag]:
    """Drop repeated flags while keeping first-seen order."""

    seen: set[RiskFlag] = set()
    unique: list[RiskFlag] = []
    for flag in flags:
        if flag in seen:
            continue
        seen.add(flag)
        unique.append(flag)
    return unique


def is_risk_flag(value: object) -> bool:
    return type(value) in _FORMATTERS
