"""Serialize evaluation results into JSON-ready dicts and text summaries."""

from __future__ import annotations

import json
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any

from ...models.domain import EvaluationResult, RouteCostBreakdown, UnitTypePricing
from ...models.risk import format_risk_flag, is_risk_flag, risk_flag_kind

_DERIVED_FIELDS: dict[type, tuple[str, ...]] = {
    UnitTypePricing: ("final_price_per_unit", "monthly_revenue"),
    RouteCostBreakdown: ("disposal_cost", "total_route_cost"),
}


def to_jsonable(value: Any) -> Any:
    """Convert dataclasses, enums and risk flags into plain JSON types."""

    if is_risk_flag(value):
        payload = {"kind": risk_flag_kind(value), "message": format_risk_flag(value)}
        payload.update({item.name: to_jsonable(getattr(value, item.name)) for item in fields(value)})
        return payload
    if is_dataclass(value) and not isinstance(value, type):
        payload = {item.name: to_jsonable(getattr(value, item.name)) for item in fields(value)}
        for name in _DERIVED_FIELDS.get(type(value), ()):
            payload[name] = to_jsonable(getattr(value, name))
        return payload
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(to_jsonable(key)): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def evaluation_to_json(result: EvaluationResult) -> dict:
    return to_jsonable(result)


def evaluation_to_json_text(result: EvaluationResult) -> str:
    return json.dumps(evaluation_to_json(result), sort_keys=True, indent=2)


def evaluation_summary(result: EvaluationResult) -> str:
    recommendation = result.recommendation
    fleet = result.fleet_analysis
    lines = [
        recommendation.summary,
        f"Confidence: {recommendation.confidence.value}",
        f"Quoted price: ${result.quoted_price_per_unit:.2f}/unit "
        f"(${recommendation.monthly_revenue:,.2f}/month)",
        f"Monthly cost: ${recommendation.monthly_cost:,.2f}",
        f"Fleet load: {fleet.fleet_load_percent:.1f}% "
        f"({fleet.total_trips_needed} trips, {fleet.total_hours_needed:.1f} truck-hours/week)",
        f"Drive: {result.route_estimate.distance_miles:.1f} mi / "
        f"{result.route_estimate.duration_minutes:.0f} min ({result.route_estimate.source.value})",
        f"Market position: {recommendation.market_position.value}, proximity: {recommendation.proximity.value}",
    ]
    if recommendation.conditions:
        lines.append("Conditions:")
        lines.extend(f"  - {item}" for item in recommendation.conditions)
    if recommendation.risk_flags:
        lines.append("Risk flags:")
        lines.extend(f"  - {format_risk_flag(flag)}" for flag in recommendation.risk_flags)
    if recommendation.market_risks:
        lines.append("Market risks:")
        lines.extend(f"  - {item}" for item in recommendation.market_risks)
    if recommendation.competitive_advantages:
        lines.append("Advantages:")
        lines.extend(f"  - {item}" for item in recommendation.competitive_advantages)
    lines.append("Reasoning:")
    lines.extend(f"  - {item}" for item in recommendation.reasoning)
    return "\n".join(lines)
