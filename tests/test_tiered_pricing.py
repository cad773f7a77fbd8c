import pytest

from src.bidengine.models.domain import (
    Confidence,
    FleetAnalysisResult,
    PricingInsight,
    PricingModifiers,
)
from src.bidengine.services.pricing.tiered import (
    PRICING_TIERS,
    apply_modifiers,
    calculate_tiered_pricing,
    determine_modifiers,
    tier_for,
)


def _fleet(additional_trucks: int = 0) -> FleetAnalysisResult:
    return FleetAnalysisResult(
        required_trips=[],
        total_trips_needed=2,
        total_hours_needed=15.5,
        available_hours=187.5,
        committed_hours=140.0,
        fleet_load_percent=83.0,
        buffered_load_percent=120.0 if additional_trucks else 92.0,
        additional_trucks_needed=additional_trucks,
        can_service_with_current_fleet=additional_trucks == 0,
    )


def _insight(confidence: Confidence, price: float = 30.0) -> PricingInsight:
    return PricingInsight(
        suggested_price_per_home=price,
        estimated_labor_hours=4.0,
        estimated_disposal_weight=2.0,
        confidence=confidence,
        reasoning=[],
        matches=[object()] if confidence is not Confidence.LOW else [],
    )


@pytest.mark.parametrize(
    "homes,price,label",
    [
        (1, 32.50, "Small community"),
        (50, 32.50, "Small community"),
        (51, 29.50, "Medium community"),
        (200, 27.50, "Large community"),
        (500, 25.50, "Very large community"),
        (501, 23.50, "Enterprise community"),
        (10_000, 23.50, "Enterprise community"),
    ],
)
def test_tier_boundaries(homes, price, label):
    assert tier_for(homes) == (price, label)


def test_tier_price_never_increases_with_size():
    prices = [tier_for(homes)[0] for homes in range(1, 1500)]
    assert prices == sorted(prices, reverse=True)
    assert PRICING_TIERS[-1][0] is None


def test_no_modifiers_for_small_simple_request():
    result = calculate_tiered_pricing(40, 1, _fleet(), has_nearby_route=False)

    assert result.modifiers == PricingModifiers()
    assert result.final_price == pytest.approx(32.50)
    assert result.breakdown == [
        "Small community base rate (40 homes): $32.50",
        "Final price per home: $32.50",
    ]
    assert result.monthly_revenue == pytest.approx(32.50 * 40)


def test_all_modifiers_apply_in_order():
    result = calculate_tiered_pricing(400, 3, _fleet(additional_trucks=1), has_nearby_route=True)

    assert result.final_price == pytest.approx(25.50 * 1.10 * 0.95 * 0.92 * 1.15)
    assert result.modifiers.factor == pytest.approx(1.10 * 0.95 * 0.92 * 1.15)
    assert [line.split(":")[0] for line in result.breakdown[1:-1]] == [
        "Multi-stream complexity",
        "Volume discount",
        "Route pairing discount",
        "Truck constraint penalty",
    ]


def test_volume_discount_starts_above_200_homes():
    assert determine_modifiers(200, 1, _fleet(), False).volume_discount == 0.0
    assert determine_modifiers(201, 1, _fleet(), False).volume_discount == pytest.approx(0.05)


def test_complexity_needs_more_than_two_streams():
    assert determine_modifiers(100, 2, _fleet(), False).complexity_multiplier == 1.0
    assert determine_modifiers(100, 3, _fleet(), False).complexity_multiplier == pytest.approx(1.10)


def test_apply_modifiers_to_arbitrary_price():
    price, lines = apply_modifiers(37.03, PricingModifiers(route_pairing_discount=0.08))

    assert price == pytest.approx(37.03 * 0.92)
    assert lines == [f"Route pairing discount: -8% = ${37.03 * 0.92:.2f}"]


def test_high_confidence_insight_is_blended_with_tier():
    result = calculate_tiered_pricing(150, 2, _fleet(), False, _insight(Confidence.HIGH, 28.0))

    assert result.base_price == pytest.approx((27.50 + 28.0) / 2)
    assert result.final_price == pytest.approx(27.75)
    assert result.breakdown[1].startswith("Blended with similar customers")


@pytest.mark.parametrize("confidence", [Confidence.MEDIUM, Confidence.LOW])
def test_weaker_insight_is_ignored(confidence):
    result = calculate_tiered_pricing(150, 2, _fleet(), False, _insight(confidence, 40.0))

    assert result.base_price == pytest.approx(27.50)
