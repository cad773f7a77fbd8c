import itertools

import pytest

from src.bidengine.errors import ConfigurationInvalid
from src.bidengine.models.domain import Confidence, UnitType
from src.bidengine.models.risk import (
    BenchmarkExceeded,
    CondoContainerPricing,
    MixedResidentialEstimated,
    RearAlleyAccess,
    StrictServiceExpectations,
    UnknownUnitType,
    WalkoutPremiumApplied,
)
from src.bidengine.schemas.requests import parse_service_request
from src.bidengine.services.cache import TTLCache
from src.bidengine.services.pricing.config import PricingEngineConfig, load_pricing_config
from src.bidengine.services.pricing.unit_pricing import (
    CONDO_RECYCLING_CONTAINER_RATE,
    CONDO_TRASH_CONTAINER_RATE,
    calculate_unit_pricing,
    condo_container_pricing,
    validate_benchmark,
)

CONFIG = PricingEngineConfig()


def _request(**overrides):
    payload = {"homes": 150, "unit_type": "single_family", "streams": {"trash": 1, "recycling": 1}}
    payload.update(overrides)
    return parse_service_request(payload)


def test_condo_priced_by_container():
    pricing = calculate_unit_pricing(_request(homes=240, unit_type="condo"), CONFIG)
    bucket = pricing.unit_type_pricing[0]

    assert bucket.unit_type is UnitType.CONDO
    assert bucket.containers_needed == 30
    assert bucket.base_price == pytest.approx((30 * CONDO_TRASH_CONTAINER_RATE + 30 * CONDO_RECYCLING_CONTAINER_RATE) / 240)
    assert CondoContainerPricing(containers=30, units=240) in pricing.risk_flags
    assert pricing.benchmark_validation.is_within_benchmark


def test_condo_containers_round_up():
    price, containers = condo_container_pricing(241, 8)

    assert containers == 31
    assert price == pytest.approx(31 * (75.00 + 57.04) / 241)


def test_single_family_base_price_and_margin():
    pricing = calculate_unit_pricing(_request(), CONFIG)

    assert pricing.average_price_per_unit == pytest.approx(37.03)
    assert pricing.total_monthly_revenue == pytest.approx(37.03 * 150)
    assert pricing.margin_percent == pytest.approx((37.03 - 25.0) / 37.03 * 100)
    assert pricing.confidence is Confidence.HIGH
    assert pricing.confidence_score == 100
    assert pricing.risk_flags == []
    assert any("below target 35%" in warning for warning in pricing.warnings)


@pytest.mark.parametrize("walkout,gated,special", list(itertools.product([False, True], repeat=3)))
def test_premiums_are_additive(walkout, gated, special):
    pricing = calculate_unit_pricing(
        _request(is_walkout=walkout, is_gated=gated, has_special_containers=special), CONFIG
    )
    bucket = pricing.unit_type_pricing[0]

    expected_walkout = 37.03 * 0.33 if walkout else 0.0
    expected_gated = 1.50 if gated else 0.0
    expected_special = 1.00 if special else 0.0
    assert bucket.walkout_premium == pytest.approx(expected_walkout)
    assert bucket.gated_premium == pytest.approx(expected_gated)
    assert bucket.special_container_premium == pytest.approx(expected_special)
    assert bucket.final_price_per_unit == pytest.approx(37.03 + expected_walkout + expected_gated + expected_special)
    assert pricing.add_ons_applied.walkout is walkout


@pytest.mark.parametrize("factor", [1.10, 0.90])
def test_ten_percent_deviation_is_outside_benchmark(factor):
    validation = validate_benchmark(37.03 * factor, 37.03, 0.10)

    assert validation.is_within_benchmark is False
    assert abs(validation.variance_percent) == pytest.approx(10.0)


def test_matching_price_is_within_benchmark():
    for benchmark in (21.31, 37.03, 16.505):
        validation = validate_benchmark(benchmark, benchmark, 0.10)
        assert validation.is_within_benchmark is True
        assert validation.variance_percent == 0.0


def test_small_deviation_is_within_benchmark():
    validation = validate_benchmark(37.03 * 1.05, 37.03, 0.10)

    assert validation.is_within_benchmark is True
    assert "within 10%" in validation.message


def test_walkout_without_evidence_is_penalized():
    pricing = calculate_unit_pricing(_request(is_walkout=True), CONFIG)

    assert WalkoutPremiumApplied(percent=33.0) in pricing.risk_flags
    assert any(isinstance(flag, BenchmarkExceeded) for flag in pricing.risk_flags)
    # 100 - 25 (variance) - 10 (two flags) - 15 (no evidence)
    assert pricing.confidence_score == 50
    assert pricing.confidence is Confidence.LOW
    assert "Walk-out service flagged but not mentioned in requirements" in pricing.warnings


def test_walkout_with_evidence_is_not_penalized_for_speculation():
    pricing = calculate_unit_pricing(
        _request(is_walkout=True, special_requirements=["Backdoor pickup for all homes"]), CONFIG
    )

    assert pricing.confidence_score == 65
    assert pricing.confidence is Confidence.MEDIUM


def test_gated_without_evidence_is_penalized():
    with_evidence = calculate_unit_pricing(
        _request(is_gated=True, special_requirements=["Gate code required"]), CONFIG
    )
    without_evidence = calculate_unit_pricing(_request(is_gated=True), CONFIG)

    assert with_evidence.confidence_score - without_evidence.confidence_score == 10


def test_mixed_residential_without_breakdown_is_estimated():
    pricing = calculate_unit_pricing(_request(homes=100, unit_type="mixed_residential"), CONFIG)

    counts = {item.unit_type: item.unit_count for item in pricing.unit_type_pricing}
    assert counts == {UnitType.SINGLE_FAMILY: 70, UnitType.TOWNHOME: 30}
    assert MixedResidentialEstimated(single_family=70, townhome=30) in pricing.risk_flags
    assert pricing.confidence_score == 85
    assert pricing.benchmark_validation.variance_percent == pytest.approx(0.0)


def test_mixed_residential_with_breakdown():
    request = _request(
        homes=100,
        unit_type="mixed_residential",
        unit_breakdown={"single_family": 40, "townhome": 20, "condo": 40},
    )

    pricing = calculate_unit_pricing(request, CONFIG)

    counts = {item.unit_type: item.unit_count for item in pricing.unit_type_pricing}
    assert counts == {UnitType.SINGLE_FAMILY: 40, UnitType.TOWNHOME: 20, UnitType.CONDO: 40}
    assert not any(isinstance(flag, MixedResidentialEstimated) for flag in pricing.risk_flags)


def test_unknown_unit_type_priced_as_single_family():
    pricing = calculate_unit_pricing(_request(unit_type="unknown"), CONFIG)

    assert pricing.unit_type_pricing[0].unit_type is UnitType.SINGLE_FAMILY
    assert UnknownUnitType() in pricing.risk_flags
    assert pricing.confidence_score == 80


def test_requirement_text_raises_risk_flags():
    pricing = calculate_unit_pricing(
        _request(special_requirements=["Rear alley service", "Zero tolerance for missed pickups"]), CONFIG
    )

    assert RearAlleyAccess() in pricing.risk_flags
    assert StrictServiceExpectations() in pricing.risk_flags
    assert pricing.confidence_score == 90


def test_risk_flags_are_deduplicated():
    pricing = calculate_unit_pricing(
        _request(special_requirements=["rear alley", "Alley access only"]), CONFIG
    )

    assert pricing.risk_flags.count(RearAlleyAccess()) == 1


def test_repeated_pricing_is_served_from_cache():
    cache = TTLCache()
    request = _request(is_gated=True)

    first = calculate_unit_pricing(request, CONFIG, cache)
    second = calculate_unit_pricing(request, CONFIG, cache)

    assert first == second
    assert first is not second
    assert cache.hits == 1

    first.warnings.append("edited by caller")
    first.risk_flags.clear()
    third = calculate_unit_pricing(request, CONFIG, cache)

    assert third == second


def test_pricing_config_defaults():
    config = load_pricing_config()

    assert config.target_margin == 0.35
    assert config.max_margin == 0.45
    assert config.benchmark_tolerance == 0.10
    assert config.placeholder_cost_per_unit == 25.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_margin": 0.2},
        {"target_margin": 0.05},
        {"target_margin": 0.85, "max_margin": 0.9},
        {"max_margin": 0.95},
        {"benchmark_tolerance": 0.0},
        {"placeholder_cost_per_unit": -1},
        {"units_per_container": 0},
    ],
)
def test_invalid_pricing_config_is_rejected(overrides):
    with pytest.raises(ConfigurationInvalid) as excinfo:
        load_pricing_config(overrides)

    assert excinfo.value.errors
