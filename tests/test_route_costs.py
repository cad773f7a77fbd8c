import pytest

from src.bidengine.models.domain import StreamType
from src.bidengine.services.fleet.trips import calculate_trip_requirement
from src.bidengine.services.fleet.trucks import DEFAULT_TRUCK_SPEC, build_stream
from src.bidengine.services.routing.costs import CostRates, calculate_disposal, calculate_route_costs


def _requirements(homes: int, *stream_types: StreamType):
    return [calculate_trip_requirement(homes, build_stream(stream_type, 1), DEFAULT_TRUCK_SPEC) for stream_type in stream_types]


def test_weekly_costs_for_trash_and_recycling():
    requirements = _requirements(150, StreamType.TRASH, StreamType.RECYCLING)

    costs = calculate_route_costs(requirements, 6.0, 10.0, CostRates())

    assert costs.total_drive_minutes == pytest.approx(40.0)
    assert costs.total_service_minutes == pytest.approx(15.5 * 60)
    assert costs.fuel_cost == pytest.approx(6.0 * 2 * 2 * 0.80)
    assert costs.maintenance_cost == pytest.approx(6.0 * 2 * 2 * 0.12)
    assert costs.labor_cost == pytest.approx((40.0 + 930.0) / 60 * 45.0)
    assert costs.disposal_fees == pytest.approx(2.625 * 82.50)
    assert costs.recycling_revenue == pytest.approx(1.125 * 15.0)
    assert costs.disposal_cost == pytest.approx(2.625 * 82.50 - 1.125 * 15.0)
    assert costs.total_route_cost == pytest.approx(
        costs.fuel_cost + costs.labor_cost + costs.maintenance_cost + costs.disposal_cost
    )


def test_recycling_revenue_lowers_total_below_operating_cost():
    requirements = _requirements(400, StreamType.RECYCLING)

    costs = calculate_route_costs(requirements, 2.0, 5.0, CostRates())

    assert costs.disposal_fees == 0.0
    assert costs.recycling_revenue > 0
    assert costs.total_route_cost < costs.fuel_cost + costs.labor_cost + costs.maintenance_cost


def test_yard_waste_is_charged_at_reduced_rate():
    requirements = _requirements(200, StreamType.YARD_WASTE)

    fees, revenue = calculate_disposal(requirements, CostRates())

    assert fees == pytest.approx(2.5 * 82.50 * 0.55)
    assert revenue == 0.0


def test_no_trips_means_no_cost():
    costs = calculate_route_costs([], 12.0, 20.0, CostRates())

    assert costs.total_route_cost == 0.0
