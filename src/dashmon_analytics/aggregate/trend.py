"""Monthly submission trend: total, approved and rejected counts per bucket.

By default buckets are keyed by month name alone, so the same month of two
different years lands in one bucket. Pass `by_year=True` (or set
`TREND_BY_YEAR`) to key by year and month instead.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from dashmon_analytics.aggregate.grouping import group_and_reduce
from dashmon_analytics.models import (
    APPROVED_STATUSES,
    REJECTED_STATUSES,
    UNKNOWN,
    ReportRecord,
    TrendPoint,
)

# Fixed table; strftime("%b") would follow the process locale
MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass
class _Counts:
    total: int = 0
    approved: int = 0
    rejected: int = 0


def month_label(rec: ReportRecord, by_year: bool = False) -> str:
    """Return the trend bucket label for a record.

    Records without a submission timestamp go to the `UNKNOWN` bucket.
    """
    if rec.created_at is None:
        return UNKNOWN
    label = MONTH_LABELS[rec.created_at.month - 1]
    return f"{label} {rec.created_at.year}" if by_year else label


def _tally(acc: _Counts, rec: ReportRecord) -> _Counts:
    acc.total += 1
    if rec.status in APPROVED_STATUSES:
        acc.approved += 1
    elif rec.status in REJECTED_STATUSES:
        acc.rejected += 1
    return acc


def build_trend(records: Iterable[ReportRecord], by_year: bool = False) -> list[TrendPoint]:
    """Count reports per month bucket, in first-seen bucket order.

    Statuses other than approved/completed and rejected/system_rejected only
    count toward `total`.
    """
    buckets = group_and_reduce(records, lambda r: month_label(r, by_year), _tally, _Counts)
    return [
        TrendPoint(month_label=label, total=c.total, approved=c.approved, rejected=c.rejected)
        for label, c in buckets.items()
    ]
