"""Pricing policy configuration and its load-time validation."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ...config import settings
from ...errors import ConfigurationInvalid


class PricingEngineConfig(BaseModel):
    """Margins, benchmark tolerance and placeholder cost used by unit pricing."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    target_margin: float = Field(0.35, ge=0.1, le=0.8)
    max_margin: float = Field(0.45, le=0.9)
    benchmark_tolerance: float = Field(0.10, gt=0.0, le=0.5)
    placeholder_cost_per_unit: float = Field(25.0, gt=0.0)
    units_per_container: int = Field(8, ge=1)

    @model_validator(mode="after")
    def _check_margins(self) -> "PricingEngineConfig":
        if self.max_margin < self.target_margin:
            raise ValueError("max_margin must be greater than or equal to target_margin")
        return self


def _format_errors(exc: ValidationError) -> list[str]:
    messages: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "config"
        messages.append(f"{location}: {error.get('msg')}")
    return messages


def load_pricing_config(overrides: Optional[Mapping[str, Any]] = None) -> PricingEngineConfig:
    """Build a validated pricing config from settings defaults plus overrides.

    Raises ``ConfigurationInvalid`` when any field is out of bounds.
    """

    values: dict[str, Any] = {
        "target_margin": settings.target_margin,
        "max_margin": settings.max_margin,
        "benchmark_tolerance": settings.benchmark_tolerance,
        "placeholder_cost_per_unit": settings.placeholder_cost_per_unit,
        "units_per_container": settings.units_per_container,
    }
    values.update(overrides or {})
    try:
        return PricingEngineConfig(**values)
    except ValidationError as exc:
        raise ConfigurationInvalid(_format_errors(exc)) from exc
