"""Combine capacity, cost and pricing results into a bid recommendation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ...models.domain import (
    Confidence,
    FleetAnalysisResult,
    MarketPosition,
    PricingBreakdown,
    PricingInsight,
    Proximity,
    RecommendationResult,
    RecommendationType,
    RouteEstimate,
    RouteSource,
)
from ...models.risk import (
    AdditionalTrucksRequired,
    HighFleetUtilization,
    LongDriveTime,
    LowProfitMargin,
    RiskFlag,
    RouteEstimateDegraded,
    dedupe_flags,
)

HIGH_UTILIZATION_PERCENT = 85.0
LOW_MARGIN_PERCENT = 15.0
LONG_DRIVE_MINUTES = 45.0
CLOSE_ROUTE_MINUTES = 15.0
MODERATE_ROUTE_MINUTES = 30.0
MARKET_BAND_PERCENT = 5.0
ABOVE_MARKET_RISK_PERCENT = 10.0
HEALTHY_MARGIN_PERCENT = 20.0


def calculate_margin(revenue: float, cost: float) -> float:
    """Profit margin as a percent of revenue, with fixed values when revenue is not positive."""

    if revenue <= 0:
        return -100.0 if cost > 0 else 0.0
    return (revenue - cost) / revenue * 100


@dataclass(slots=True, frozen=True)
class ScoreBand:
    """Points awarded when a value is below ``upper`` (``None`` matches anything)."""

    upper: Optional[float]
    points: int


@dataclass(slots=True, frozen=True)
class ScoreBands:
    """Serviceability score thresholds.

    Margin bands reward higher values and are expressed as lower bounds; fleet-load and
    drive-time bands reward lower values and are expressed as upper bounds.
    """

    margin: tuple[tuple[float, int], ...] = ((25.0, 40), (15.0, 35), (5.0, 20))
    fleet_load: tuple[ScoreBand, ...] = (ScoreBand(85.0, 30), ScoreBand(100.0, 15), ScoreBand(None, 0))
    drive_minutes: tuple[ScoreBand, ...] = (ScoreBand(30.0, 20), ScoreBand(45.0, 10), ScoreBand(None, 0))
    historical_match_bonus: int = 10
    bid_threshold: int = 60
    bid_min_margin: float = 10.0

    def __post_init__(self) -> None:
        lower_bounds = [bound for bound, _ in self.margin]
        points = [value for _, value in self.margin]
        if lower_bounds != sorted(lower_bounds, reverse=True) or points != sorted(points, reverse=True):
            raise ValueError("Margin score bands must be monotonic")
        for bands in (self.fleet_load, self.drive_minutes):
            uppers = [band.upper for band in bands if band.upper is not None]
            if uppers != sorted(uppers) or [b.points for b in bands] != sorted((b.points for b in bands), reverse=True):
                raise ValueError("Score bands must be monotonic")

    def margin_points(self, margin: float) -> int:
        for lower, points in self.margin:
            if margin >= lower:
                return points
        return 0

    @staticmethod
    def _upper_band_points(bands: Sequence[ScoreBand], value: float) -> int:
        for band in bands:
            if band.upper is None or value < band.upper:
                return band.points
        return 0

    def fleet_points(self, load_percent: float) -> int:
        return self._upper_band_points(self.fleet_load, load_percent)

    def drive_points(self, minutes: float) -> int:
        return self._upper_band_points(self.drive_minutes, minutes)


DEFAULT_SCORE_BANDS = ScoreBands()


@dataclass(slots=True)
class SynthesisInputs:
    fleet_analysis: FleetAnalysisResult
    pricing: PricingBreakdown
    route_estimate: RouteEstimate
    monthly_revenue: float
    monthly_cost: float
    insight: Optional[PricingInsight] = None
    extra_flags: list[RiskFlag] = field(default_factory=list)


def _confidence(score: int, margin: float) -> Confidence:
    if score >= 80 and margin > 20:
        return Confidence.HIGH
    if score >= 50 and margin > 5:
        return Confidence.MEDIUM
    return Confidence.LOW


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def market_position(variance_percent: float) -> MarketPosition:
    """Where the quoted price sits against the market benchmark."""

    if variance_percent < -MARKET_BAND_PERCENT:
        return MarketPosition.BELOW
    if variance_percent > MARKET_BAND_PERCENT:
        return MarketPosition.PREMIUM
    return MarketPosition.COMPETITIVE


def proximity_rating(drive_minutes: float) -> Proximity:
    if drive_minutes <= CLOSE_ROUTE_MINUTES:
        return Proximity.CLOSE
    if drive_minutes <= MODERATE_ROUTE_MINUTES:
        return Proximity.MODERATE
    return Proximity.FAR


def competitive_advantages(pricing: PricingBreakdown, margin: float, proximity: Proximity) -> list[str]:
    advantages: list[str] = []
    if pricing.add_ons_applied.walkout:
        advantages.append("Specialized walk-out service capability")
    if margin > HEALTHY_MARGIN_PERCENT:
        advantages.append("Competitive pricing with healthy margins")
    if proximity is Proximity.CLOSE:
        advantages.append("Short drive from existing routes")
    return advantages


def market_risks(variance_percent: float, margin: float, proximity: Proximity) -> list[str]:
    risks: list[str] = []
    if variance_percent > ABOVE_MARKET_RISK_PERCENT:
        risks.append("Pricing above market average: competitive pressure")
    if margin < LOW_MARGIN_PERCENT:
        risks.append("Low margins limit pricing flexibility")
    if proximity is Proximity.FAR:
        risks.append("Long drive from existing routes raises service cost")
    return risks


def synthesize_recommendation(
    inputs: SynthesisInputs, bands: ScoreBands = DEFAULT_SCORE_BANDS
) -> RecommendationResult:
    """Score serviceability and decide whether to bid.

    Every figure quoted in the reasoning comes from the values used for scoring.
    """

    fleet = inputs.fleet_analysis
    revenue = _finite(inputs.monthly_revenue)
    cost = _finite(inputs.monthly_cost)
    margin = calculate_margin(revenue, cost)
    profit = revenue - cost
    drive_minutes = inputs.route_estimate.duration_minutes
    load = fleet.fleet_load_percent
    matches = len(inputs.insight.matches) if inputs.insight is not None else 0

    margin_points = bands.margin_points(margin)
    fleet_points = bands.fleet_points(load)
    drive_points = bands.drive_points(drive_minutes)
    bonus = bands.historical_match_bonus if matches > 0 else 0
    score = max(0, min(100, margin_points + fleet_points + drive_points + bonus))

    reasoning = [
        f"Profit margin {margin:.1f}% on ${revenue:,.2f}/month revenue: {margin_points} pts",
        f"Fleet load {load:.1f}% of available hours: {fleet_points} pts",
        f"Drive time {drive_minutes:.0f} min to service area: {drive_points} pts",
    ]
    if bonus:
        noun = "match" if matches == 1 else "matches"
        reasoning.append(f"{matches} historical {noun}: +{bonus} pts")
    else:
        reasoning.append("No historical matches: +0 pts")
    reasoning.append(f"Serviceability score: {score}/100")
    if fleet.additional_trucks_needed > 0:
        reasoning.append(f"Fleet short by {fleet.additional_trucks_needed} truck(s) at {load:.1f}% load")
    else:
        reasoning.append(f"Current fleet can absorb {fleet.total_hours_needed:.1f} truck-hours/week")

    conditions: list[str] = []
    flags: list[RiskFlag] = []
    if fleet.additional_trucks_needed > 0:
        noun = "truck" if fleet.additional_trucks_needed == 1 else "trucks"
        conditions.append(f"Requires {fleet.additional_trucks_needed} additional {noun}")
        conditions.extend(fleet.recommendations)
        flags.append(AdditionalTrucksRequired(trucks=fleet.additional_trucks_needed))
    if load > HIGH_UTILIZATION_PERCENT:
        flags.append(HighFleetUtilization(load_percent=round(load, 1)))
    if margin < LOW_MARGIN_PERCENT:
        conditions.append("Negotiate higher pricing for better margins")
        flags.append(LowProfitMargin(margin_percent=round(margin, 1)))
    if drive_minutes > LONG_DRIVE_MINUTES:
        conditions.append("Route optimization needed due to distance")
        flags.append(LongDriveTime(minutes=round(drive_minutes, 1)))
    if inputs.route_estimate.source is not RouteSource.COLLABORATOR:
        flags.append(RouteEstimateDegraded(source=inputs.route_estimate.source.value))
    flags.extend(inputs.pricing.risk_flags)
    flags.extend(inputs.extra_flags)

    should_bid = score >= bands.bid_threshold and margin > bands.bid_min_margin and fleet.additional_trucks_needed == 0
    if should_bid:
        recommendation_type = RecommendationType.BID_WITH_CONDITIONS if conditions else RecommendationType.BID
    else:
        recommendation_type = RecommendationType.DO_NOT_BID

    headline = {
        RecommendationType.BID: "RECOMMEND BID",
        RecommendationType.BID_WITH_CONDITIONS: "BID WITH CONDITIONS",
        RecommendationType.DO_NOT_BID: "DO NOT BID",
    }[recommendation_type]
    summary = (
        f"{headline}: score {score}/100, margin {margin:.1f}%, "
        f"${profit:,.2f}/month profit on ${revenue:,.2f} revenue"
    )
    variance = _finite(inputs.pricing.benchmark_validation.variance_percent)
    proximity = proximity_rating(drive_minutes)

    return RecommendationResult(
        should_bid=should_bid,
        recommendation_type=recommendation_type,
        confidence=_confidence(score, margin),
        serviceability_score=score,
        reasoning=reasoning,
        conditions=conditions,
        risk_flags=dedupe_flags(flags),
        profit_margin_percent=margin,
        monthly_profit=profit,
        monthly_revenue=revenue,
        monthly_cost=cost,
        summary=summary,
        market_position=market_position(variance),
        proximity=proximity,
        competitive_advantages=competitive_advantages(inputs.pricing, margin, proximity),
        market_risks=market_risks(variance, margin, proximity),
    )
