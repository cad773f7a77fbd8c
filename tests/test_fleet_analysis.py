import pytest

from src.bidengine.models.domain import FleetUtilization, LimitingFactor, ServiceStream, StreamType
from src.bidengine.services.fleet.trips import calculate_trip_requirement
from src.bidengine.services.fleet.trucks import DEFAULT_TRUCK_SPEC, TruckFleetModel, build_stream, build_streams
from src.bidengine.services.fleet.utilization import analyze_fleet_requirements
from src.bidengine.models.domain import StreamRequest


def _streams(**frequencies: float) -> list[ServiceStream]:
    return build_streams(StreamRequest(type=StreamType(name), frequency_per_week=freq) for name, freq in frequencies.items())


def test_truck_spec_effective_capacity():
    assert DEFAULT_TRUCK_SPEC.effective_capacity == pytest.approx(150.0)
    fleet = TruckFleetModel()
    assert fleet.available_hours_per_week == pytest.approx(187.5)
    assert fleet.weekly_hours_per_truck == pytest.approx(62.5)


def test_fleet_model_rejects_empty_fleet():
    with pytest.raises(ValueError):
        TruckFleetModel(truck_count=0)


def test_weekly_trash_for_150_homes_is_one_balanced_trip():
    requirement = calculate_trip_requirement(150, build_stream(StreamType.TRASH, 1), DEFAULT_TRUCK_SPEC)

    assert requirement.weekly_volume == pytest.approx(120.0)
    assert requirement.weekly_weight == pytest.approx(2.625)
    assert requirement.trips_needed == 1
    assert requirement.limiting_factor is LimitingFactor.BALANCED
    assert requirement.reason == "Balanced load: 1 trips"
    assert requirement.truck_hours == pytest.approx(6.25 + 1.5)


def test_volume_limited_stream():
    requirement = calculate_trip_requirement(500, build_stream(StreamType.TRASH, 3), DEFAULT_TRUCK_SPEC)

    assert requirement.volume_trips == 8
    assert requirement.weight_trips == 2
    assert requirement.trips_needed == 8
    assert requirement.limiting_factor is LimitingFactor.VOLUME
    assert requirement.reason.startswith("Volume limited: 1200.0 cy requires 8 trips")


def test_weight_limited_stream():
    heavy = ServiceStream(
        type=StreamType.TRASH,
        volume_per_unit_per_week=0.1,
        weight_per_unit_per_week=200.0,
        frequency_per_week=1,
    )
    requirement = calculate_trip_requirement(200, heavy, DEFAULT_TRUCK_SPEC)

    assert requirement.volume_trips == 1
    assert requirement.weight_trips == 2
    assert requirement.trips_needed == 2
    assert requirement.limiting_factor is LimitingFactor.WEIGHT
    assert requirement.reason.startswith("Weight limited: 20.0 tons")


@pytest.mark.parametrize("homes,frequency", [(0, 1), (150, 0)])
def test_empty_stream_contributes_nothing(homes, frequency):
    requirement = calculate_trip_requirement(homes, build_stream(StreamType.RECYCLING, frequency), DEFAULT_TRUCK_SPEC)

    assert requirement.trips_needed == 0
    assert requirement.truck_hours == 0.0


def test_trips_are_the_binding_constraint_for_any_positive_request():
    for homes in (1, 7, 49, 150, 333, 1000, 4321):
        for stream_type in StreamType:
            for frequency in (0.5, 1, 2, 3):
                requirement = calculate_trip_requirement(homes, build_stream(stream_type, frequency), DEFAULT_TRUCK_SPEC)
                assert requirement.trips_needed >= 1
                assert requirement.trips_needed == max(requirement.volume_trips, requirement.weight_trips)


def test_zero_frequency_stream_is_omitted_from_aggregation():
    result = analyze_fleet_requirements(100, _streams(trash=1, recycling=0), TruckFleetModel(), capacity_buffer=0.9)

    assert [item.stream_type for item in result.required_trips] == [StreamType.TRASH]
    assert "Separate trucks required for different waste streams" not in result.constraints


def test_fleet_load_is_non_decreasing_in_homes():
    streams = _streams(trash=2, recycling=1, yard_waste=1)
    fleet = TruckFleetModel()
    loads = [
        analyze_fleet_requirements(homes, streams, fleet, capacity_buffer=0.9).fleet_load_percent
        for homes in range(1, 2000, 37)
    ]
    assert loads == sorted(loads)


@pytest.mark.parametrize("buffer", [0.85, 0.9, 1.0])
def test_additional_trucks_needed_exactly_when_buffered_load_exceeds_capacity(buffer):
    streams = _streams(trash=1, recycling=1)
    fleet = TruckFleetModel()
    for committed_hours in (0.0, 6.0, 9.375, 10.5, 11.25, 12.5):
        utilization = FleetUtilization(current_trucks=3, hours_per_truck_committed=committed_hours)
        for homes in (10, 150, 400, 900, 2500):
            result = analyze_fleet_requirements(homes, streams, fleet, utilization, capacity_buffer=buffer)
            assert result.fleet_load_percent >= 0
            assert (result.additional_trucks_needed == 0) == (result.buffered_load_percent <= 100)
            assert result.can_service_with_current_fleet == (result.additional_trucks_needed == 0)


def test_150_homes_fits_a_fleet_at_75_percent():
    utilization = FleetUtilization(current_trucks=3, hours_per_truck_committed=12.5 * 0.75)
    result = analyze_fleet_requirements(
        150, _streams(trash=1, recycling=1), TruckFleetModel(), utilization, capacity_buffer=0.9
    )

    assert result.total_trips_needed == 2
    assert result.total_hours_needed == pytest.approx(15.5)
    assert result.committed_hours == pytest.approx(140.625)
    assert result.fleet_load_percent == pytest.approx((140.625 + 15.5) / 187.5 * 100)
    assert result.additional_trucks_needed == 0
    assert "Separate trucks required for different waste streams" in result.constraints


def test_large_multi_stream_request_needs_more_trucks():
    utilization = FleetUtilization(current_trucks=3, hours_per_truck_committed=12.5 * 0.9)
    result = analyze_fleet_requirements(
        500, _streams(trash=3, recycling=1, yard_waste=1), TruckFleetModel(), utilization, capacity_buffer=0.9
    )

    assert result.total_hours_needed == pytest.approx(80.5)
    assert result.additional_trucks_needed == 2
    assert "Requires 2 additional trucks" in result.constraints
    assert any("$8,500/month" in item for item in result.recommendations)
    assert any(item.startswith("High fleet utilization") for item in result.constraints)


def test_missing_snapshot_assumes_default_committed_fraction():
    result = analyze_fleet_requirements(
        50, _streams(trash=1), TruckFleetModel(), None, capacity_buffer=0.9, default_committed_fraction=0.75
    )

    assert result.committed_hours == pytest.approx(187.5 * 0.75)
