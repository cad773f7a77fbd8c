"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="BIDENGINE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Service Bid Engine"
    data_root: Path = Field(default=Path("data"), description="Root directory for static data files.")
    active_customers_file: Optional[Path] = Field(
        default=None,
        description="Active customer list (CSV, JSON or XLSX) used for nearby-route detection.",
    )
    historical_profiles_file: Optional[Path] = Field(
        default=None,
        description="JSON file of historical customer profiles. Bundled reference table is used when unset.",
    )

    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing drive times.",
    )
    osrm_timeout_seconds: float = Field(default=10.0, gt=0.0)
    osrm_max_retries: int = Field(default=2, ge=0)
    osrm_backoff_seconds: float = Field(default=0.5, ge=0.0)

    route_timeout_seconds: float = Field(default=8.0, gt=0.0)
    loader_timeout_seconds: float = Field(default=5.0, gt=0.0)
    fallback_distance_miles: float = Field(default=15.0, ge=0.0)
    fallback_duration_minutes: float = Field(default=25.0, ge=0.0)
    road_factor: float = Field(default=1.3, ge=1.0)
    average_speed_mph: float = Field(default=35.0, gt=0.0)
    nearby_route_max_minutes: float = Field(default=15.0, ge=0.0)

    depot_name: str = "8401 Westpark Dr. McLean VA 22012"
    depot_latitude: float = Field(default=38.923867, ge=-90.0, le=90.0)
    depot_longitude: float = Field(default=-77.235103, ge=-180.0, le=180.0)

    fleet_truck_count: int = Field(default=3, ge=1)
    working_days_per_week: int = Field(default=5, ge=1, le=7)
    fleet_capacity_buffer: float = Field(default=0.90, gt=0.0, le=1.0)
    default_committed_fraction: float = Field(default=0.75, ge=0.0, le=1.0)
    additional_truck_monthly_cost: float = Field(default=8500.0, ge=0.0)
    weeks_per_month: float = Field(default=4.33, gt=0.0)

    fuel_cost_per_mile: float = Field(default=0.80, ge=0.0)
    labor_cost_per_hour: float = Field(default=45.0, ge=0.0)
    maintenance_cost_per_mile: float = Field(default=0.12, ge=0.0)
    trash_disposal_per_ton: float = Field(default=82.50, ge=0.0)
    yard_waste_disposal_factor: float = Field(default=0.55, ge=0.0)
    recycling_revenue_per_ton: float = Field(default=15.0, ge=0.0)

    target_margin: float = 0.35
    max_margin: float = 0.45
    benchmark_tolerance: float = 0.10
    placeholder_cost_per_unit: float = 25.0
    units_per_container: int = 8

    cache_ttl_seconds: float = Field(default=300.0, gt=0.0)
    cache_max_entries: int = Field(default=256, ge=1)

    service_zone_names: tuple[str, ...] = Field(
        default=(),
        description="Restrict service-zone checks to these zone names. Empty means all bundled zones.",
    )

    @field_validator("data_root", "active_customers_file", "historical_profiles_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Optional[Path]:
        if value is None or value == "":
            return None
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("service_zone_names", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
