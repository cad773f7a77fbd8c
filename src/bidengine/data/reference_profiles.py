"""Bundled historical customer profiles used as the default similarity reference set."""

from __future__ import annotations

from ..models.domain import CustomerProfile


def _profile(
    customer_id: str,
    community_type: str,
    homes: int,
    bin_type: str,
    instructions: tuple[str, ...],
    monthly_cost: float,
    labor_hours: float,
    disposal_weight: float,
) -> CustomerProfile:
    return CustomerProfile(
        customer_id=customer_id,
        community_type=community_type,
        homes=homes,
        bin_type=bin_type,
        special_instructions=instructions,
        monthly_cost_per_unit=monthly_cost,
        labor_hours_per_hundred_homes=labor_hours,
        avg_disposal_weight=disposal_weight,
    )


REFERENCE_PROFILES: tuple[CustomerProfile, ...] = (
    _profile("CUST-001", "single_family", 150, "96_gallon", ("garage_access", "narrow_streets"), 28.50, 4.2, 2.1),
    _profile("CUST-002", "single_family", 85, "96_gallon", ("curbside_only",), 31.25, 3.8, 1.9),
    _profile("CUST-003", "condo", 240, "dumpster", ("gated_community", "scheduled_access"), 24.75, 2.1, 1.6),
    _profile("CUST-004", "townhome", 120, "96_gallon", ("mixed_access", "some_garage"), 29.00, 3.9, 2.0),
    _profile("CUST-005", "single_family", 320, "96_gallon", ("large_community", "multiple_entrances"), 25.00, 3.5, 2.2),
    _profile("CUST-006", "single_family", 45, "96_gallon", ("rural_area", "long_driveways"), 34.50, 5.8, 2.4),
    _profile("CUST-007", "condo", 180, "front_loader", ("commercial_dumpsters", "daily_service"), 22.00, 1.8, 1.4),
    _profile("CUST-008", "townhome", 95, "96_gallon", ("narrow_streets", "parking_challenges"), 32.75, 4.5, 1.8),
    _profile("CUST-009", "single_family", 200, "96_gallon", ("standard_curbside",), 26.50, 3.6, 2.0),
    _profile("CUST-010", "single_family", 75, "96_gallon", ("hilly_terrain", "steep_driveways"), 33.00, 4.8, 2.1),
    _profile("CUST-011", "condo", 160, "dumpster", ("high_rise", "loading_dock"), 23.25, 1.9, 1.5),
    _profile("CUST-012", "townhome", 140, "96_gallon", ("mixed_service", "some_rear_access"), 28.75, 4.0, 1.9),
)
