"""Data access helpers for loading active customers and historical profiles."""

from __future__ import annotations

import csv
import functools
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from openpyxl import load_workbook

from ..config import settings
from ..models.domain import ActiveCustomer, CustomerProfile
from .reference_profiles import REFERENCE_PROFILES

logger = logging.getLogger(__name__)

_ID_KEYS = ("id", "customer_id", "CusId", "CustomerId")
_ADDRESS_KEYS = ("address", "Address", "service_address")
_LAT_KEYS = ("lat", "latitude", "Latitude")
_LNG_KEYS = ("lng", "lon", "longitude", "Longitude")
_HOMES_KEYS = ("homes", "Homes", "units", "home_count")


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def _first(row: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return value
    return None


def _customer_from_row(row: Mapping[str, Any]) -> Optional[ActiveCustomer]:
    lat = _coerce_float(_first(row, _LAT_KEYS))
    lng = _coerce_float(_first(row, _LNG_KEYS))
    if lat is None or lng is None:
        return None  # ignore records without coordinates
    homes = _coerce_float(_first(row, _HOMES_KEYS)) or 0.0
    address = _first(row, _ADDRESS_KEYS)
    return ActiveCustomer(
        customer_id=str(_first(row, _ID_KEYS) or "").strip(),
        address=str(address).strip() if address is not None else None,
        latitude=lat,
        longitude=lng,
        homes=int(homes),
    )


def _rows_from_csv(path: Path) -> list[dict[str, Any]]:
    with path.open(mode="r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"Customer file '{path}' is missing a header row.")
        return list(reader)


def _rows_from_json(path: Path) -> list[dict[str, Any]]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("customers", [])
    if not isinstance(payload, list):
        raise ValueError(f"Customer file '{path}' must contain a list of customers.")
    return [row for row in payload if isinstance(row, dict)]


def _rows_from_xlsx(path: Path) -> list[dict[str, Any]]:
    wb = load_workbook(path, data_only=True, read_only=True)
    try:
        sheet = wb.active
        rows = sheet.iter_rows(min_row=1, values_only=True)
        header = next(rows, None)
        if header is None:
            raise ValueError(f"Customer workbook '{path}' is empty.")
        names = [str(name).strip() if name is not None else "" for name in header]
        return [dict(zip(names, row)) for row in rows]
    finally:
        wb.close()


_READERS = {
    ".csv": _rows_from_csv,
    ".json": _rows_from_json,
    ".xlsx": _rows_from_xlsx,
}


@functools.lru_cache(maxsize=4)
def load_active_customers(source: Optional[Path] = None) -> tuple[ActiveCustomer, ...]:
    """Load active customers from the configured CSV, JSON or XLSX file.

    Returns an empty tuple when no file is configured.
    """

    path = source or settings.active_customers_file
    if path is None:
        return tuple()
    if not path.exists():
        raise FileNotFoundError(f"Customer file not found: {path}")

    reader = _READERS.get(path.suffix.lower())
    if reader is None:
        raise ValueError(f"Unsupported customer file type: {path.suffix}")

    customers: list[ActiveCustomer] = []
    for row in reader(path):
        customer = _customer_from_row(row)
        if customer is not None:
            customers.append(customer)
    logger.info(f"Loaded {len(customers)} active customers from {path.name}")
    return tuple(customers)


def _profile_from_row(row: Mapping[str, Any]) -> CustomerProfile:
    instructions = row.get("special_instructions") or row.get("specialInstructions") or ()
    return CustomerProfile(
        customer_id=str(row.get("id") or row.get("customer_id")),
        community_type=str(row.get("community_type") or row.get("communityType")),
        homes=int(row["homes"]),
        bin_type=str(row.get("bin_type") or row.get("binType") or ""),
        access_type=row.get("access_type") or row.get("accessType"),
        special_instructions=tuple(str(item) for item in instructions),
        monthly_cost_per_unit=float(row.get("monthly_cost_per_unit", row.get("monthlyCostPerUnit"))),
        labor_hours_per_hundred_homes=float(
            row.get("labor_hours_per_hundred_homes", row.get("laborHoursPerHundredHomes", 0.0))
        ),
        avg_disposal_weight=float(row.get("avg_disposal_weight", row.get("avgDisposalWeight", 0.0))),
    )


@functools.lru_cache(maxsize=4)
def load_historical_profiles(source: Optional[Path] = None) -> tuple[CustomerProfile, ...]:
    """Load historical profiles from a JSON file, or the bundled reference set."""

    path = source or settings.historical_profiles_file
    if path is None:
        return REFERENCE_PROFILES
    if not path.exists():
        raise FileNotFoundError(f"Historical profile file not found: {path}")

    profiles: list[CustomerProfile] = []
    for row in _rows_from_json(path):
        try:
            profiles.append(_profile_from_row(row))
        except (KeyError, ValueError, TypeError) as exc:
            logger.warning(f"Skipping invalid historical profile row: {exc}")
    return tuple(profiles)


def set_active_customer_file(path: Optional[Path]) -> None:
    """Update the active customer file and clear related caches."""

    settings.active_customers_file = path
    load_active_customers.cache_clear()
