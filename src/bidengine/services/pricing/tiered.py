"""Community-size tier pricing and the operational modifiers applied on top of a base price."""

from __future__ import annotations

from typing import Optional

from ...models.domain import (
    Confidence,
    FleetAnalysisResult,
    PricingInsight,
    PricingModifiers,
    TieredPricingResult,
)

# (max homes inclusive, price per home, label); last tier is open-ended
PRICING_TIERS: tuple[tuple[Optional[int], float, str], ...] = (
    (50, 32.50, "Small community"),
    (100, 29.50, "Medium community"),
    (200, 27.50, "Large community"),
    (500, 25.50, "Very large community"),
    (None, 23.50, "Enterprise community"),
)

COMPLEXITY_MULTIPLIER = 1.10
COMPLEX_STREAM_COUNT = 2
VOLUME_DISCOUNT = 0.05
VOLUME_DISCOUNT_MIN_HOMES = 200
ROUTE_PAIRING_DISCOUNT = 0.08
TRUCK_CONSTRAINT_PENALTY = 0.15


def tier_for(homes: int) -> tuple[float, str]:
    for max_homes, price, label in PRICING_TIERS:
        if max_homes is None or homes <= max_homes:
            return price, label
    raise AssertionError("pricing tiers must end with an open-ended tier")


def determine_modifiers(
    homes: int, stream_count: int, fleet_analysis: FleetAnalysisResult, has_nearby_route: bool
) -> PricingModifiers:
    return PricingModifiers(
        complexity_multiplier=COMPLEXITY_MULTIPLIER if stream_count > COMPLEX_STREAM_COUNT else 1.0,
        volume_discount=VOLUME_DISCOUNT if homes > VOLUME_DISCOUNT_MIN_HOMES else 0.0,
        route_pairing_discount=ROUTE_PAIRING_DISCOUNT if has_nearby_route else 0.0,
        truck_constraint_penalty=TRUCK_CONSTRAINT_PENALTY if fleet_analysis.additional_trucks_needed > 0 else 0.0,
    )


def apply_modifiers(price: float, modifiers: PricingModifiers) -> tuple[float, list[str]]:
    """Apply the modifiers in fixed order: complexity, volume, pairing, then truck penalty.

    The penalty comes last so stacked discounts never cancel it out.
    """

    lines: list[str] = []
    if modifiers.complexity_multiplier != 1.0:
        price *= modifiers.complexity_multiplier
        lines.append(
            f"Multi-stream complexity: +{(modifiers.complexity_multiplier - 1) * 100:.0f}% = ${price:.2f}"
        )
    if modifiers.volume_discount:
        price *= 1 - modifiers.volume_discount
        lines.append(f"Volume discount: -{modifiers.volume_discount * 100:.0f}% = ${price:.2f}")
    if modifiers.route_pairing_discount:
        price *= 1 - modifiers.route_pairing_discount
        lines.append(f"Route pairing discount: -{modifiers.route_pairing_discount * 100:.0f}% = ${price:.2f}")
    if modifiers.truck_constraint_penalty:
        price *= 1 + modifiers.truck_constraint_penalty
        lines.append(
            f"Truck constraint penalty: +{modifiers.truck_constraint_penalty * 100:.0f}% = ${price:.2f}"
        )
    return price, lines


def calculate_tiered_pricing(
    homes: int,
    stream_count: int,
    fleet_analysis: FleetAnalysisResult,
    has_nearby_route: bool,
    insight: Optional[PricingInsight] = None,
) -> TieredPricingResult:
    tier_price, label = tier_for(homes)
    breakdown = [f"{label} base rate ({homes} homes): ${tier_price:.2f}"]

    base_price = tier_price
    if insight is not None and insight.confidence is Confidence.HIGH and insight.matches:
        base_price = (tier_price + insight.suggested_price_per_home) / 2
        breakdown.append(
            f"Blended with similar customers (${insight.suggested_price_per_home:.2f}): ${base_price:.2f}"
        )

    modifiers = determine_modifiers(homes, stream_count, fleet_analysis, has_nearby_route)
    final_price, lines = apply_modifiers(base_price, modifiers)
    breakdown.extend(lines)
    breakdown.append(f"Final price per home: ${final_price:.2f}")

    return TieredPricingResult(
        base_price=base_price,
        tier_label=label,
        modifiers=modifiers,
        final_price=final_price,
        breakdown=breakdown,
        monthly_revenue=final_price * homes,
    )
