"""Report pre-filters applied before aggregation.

The analytics page narrows the report set by reporting period, indicator,
status and (for unit-scoped callers) submitting unit. The filter is pushed down
to the report store as a MongoDB query, so aggregation only sees matching
reports.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import re
from typing import Any

ALL = "all"

PERIOD_RE = re.compile(r"^(semester-(?P<half>[12])|year)-(?P<year>\d{4})$")


@dataclass(frozen=True)
class ReportFilter:
    """Constraints on the report collection; None or "all" means unconstrained.

    Attributes:
        period: `semester-1-YYYY`, `semester-2-YYYY` or `year-YYYY`.
        indicator: Exact indicator type.
        status: Exact status value.
        unit_name: Restrict to one unit's reports.
        search: Case-insensitive substring matched against the report id.
    """
    period: str | None = None
    indicator: str | None = None
    status: str | None = None
    unit_name: str | None = None
    search: str | None = None


def _active(value: str | None) -> bool:
    return value is not None and value.strip() != "" and value != ALL


def parse_period(period: str) -> tuple[datetime, datetime]:
    """Return the half-open `[start, end)` datetime range for a period key.

    Args:
        period: One of `semester-1-2024`, `semester-2-2024`, `year-2024`.

    Raises:
        ValueError: if the period key is not recognised.
    """
    m = PERIOD_RE.match(period.strip().lower())
    if not m:
        raise ValueError(f"Unrecognised period: {period!r}")

    year = int(m.group("year"))
    half = m.group("half")
    if half == "1":
        return datetime(year, 1, 1), datetime(year, 7, 1)
    if half == "2":
        return datetime(year, 7, 1), datetime(year + 1, 1, 1)
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)


def previous_period(period: str) -> str:
    """Return the period key immediately before `period`.

    `semester-1-2024` -> `semester-2-2023`, `semester-2-2024` ->
    `semester-1-2024`, `year-2024` -> `year-2023`.

    Raises:
        ValueError: if the period key is not recognised.
    """
    m = PERIOD_RE.match(period.strip().lower())
    if not m:
        raise ValueError(f"Unrecognised period: {period!r}")

    year = int(m.group("year"))
    half = m.group("half")
    if half == "1":
        return f"semester-2-{year - 1}"
    if half == "2":
        return f"semester-1-{year}"
    return f"year-{year - 1}"


def to_mongo_query(f: ReportFilter) -> dict[str, Any]:
    """Render `f` as a MongoDB query over the report store's document shape."""
    query: dict[str, Any] = {}
    if _active(f.period):
        start, end = parse_period(f.period or "")
        query["created_at"] = {"$gte": start, "$lt": end}
    if _active(f.indicator):
        query["indicator_type"] = f.indicator
    if _active(f.status):
        query["status"] = f.status
    if _active(f.unit_name):
        query["$or"] = [
            {"profiles.sbu_name": f.unit_name},
            {"unit_name": f.unit_name},
        ]
    if _active(f.search):
        query["id"] = {"$regex": re.escape((f.search or "").strip()), "$options": "i"}
    return query
