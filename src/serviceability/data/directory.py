"""Local pincode directory: validation, exact lookup and substring search."""

from __future__ import annotations

import csv
import functools
import re
from pathlib import Path
from typing import Any, Optional

from ..config import settings
from ..models.domain import PostalRecord

PINCODE_PATTERN = re.compile(r"[1-9][0-9]{5}")
SEARCH_LIMIT = 10

# Curated quick-pick list, kept in display order.
POPULAR_PINCODES: tuple[str, ...] = (
    "110001",
    "400001",
    "560001",
    "600001",
    "700001",
    "380001",
    "411001",
    "302001",
    "500001",
)

REQUIRED_COLUMNS = {"Pincode", "State", "City", "District", "Region", "DeliveryTime", "ShippingCost", "Serviceable"}


def _coerce_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"true", "yes", "1", "y"}


def _coerce_float(value: Optional[str]) -> float:
    if value is None or value.strip() == "":
        return 0.0
    try:
        return float(value.replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


@functools.lru_cache(maxsize=1)
def load_directory(source: Optional[Path] = None) -> dict[str, PostalRecord]:
    """Load the pincode table from the configured CSV file.

    The returned mapping preserves file order and must be treated as read-only.
    """

    csv_path = (source or settings.directory_file)
    if not csv_path.exists():
        raise FileNotFoundError(f"Pincode directory not found: {csv_path}")

    records: dict[str, PostalRecord] = {}
    with csv_path.open(mode="r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"Pincode directory '{csv_path}' is missing a header row.")
        missing_columns = REQUIRED_COLUMNS - set(reader.fieldnames)
        if missing_columns:
            raise ValueError(f"Pincode directory missing columns: {', '.join(sorted(missing_columns))}")
        for row in reader:
            code = (row.get("Pincode") or "").strip()
            if not validate(code):
                continue
            if code in records:
                raise ValueError(f"Duplicate pincode '{code}' in directory '{csv_path}'.")
            records[code] = PostalRecord(
                code=code,
                state=(row.get("State") or "").strip(),
                city=(row.get("City") or "").strip(),
                district=(row.get("District") or "").strip(),
                region=(row.get("Region") or "").strip(),
                delivery_time=(row.get("DeliveryTime") or "").strip(),
                shipping_cost=_coerce_float(row.get("ShippingCost")),
                serviceable=_coerce_bool(row.get("Serviceable")),
            )
    return records


def validate(code: Any) -> bool:
    """Return True for a 6-digit Indian pincode without a leading zero."""
    return isinstance(code, str) and PINCODE_PATTERN.fullmatch(code) is not None


def lookup(code: Any) -> Optional[PostalRecord]:
    if not validate(code):
        return None
    return load_directory().get(code)


def search(query: str) -> list[PostalRecord]:
    """Case-insensitive substring match on city, state and district."""
    needle = (query or "").strip().lower()
    if not needle:
        return []
    results: list[PostalRecord] = []
    for record in load_directory().values():
        if (
            needle in record.city.lower()
            or needle in record.state.lower()
            or needle in record.district.lower()
        ):
            results.append(record)
            if len(results) >= SEARCH_LIMIT:
                break
    return results


def popular_cities() -> list[PostalRecord]:
    table = load_directory()
    return [table[code] for code in POPULAR_PINCODES if code in table]


def unserviceable_codes() -> frozenset[str]:
    return frozenset(code for code, record in load_directory().items() if not record.serviceable)
