"""Headline KPI values for the dashboard tiles."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from dashmon_analytics.aggregate.grouping import MeanAccumulator, count_by, mean_by
from dashmon_analytics.models import (
    APPROVED_STATUSES,
    IN_FLIGHT_STATUSES,
    REJECTED_STATUSES,
    ReportRecord,
    ReportStatus,
    SummaryStats,
)


def build_summary(records: Iterable[ReportRecord], now: datetime | None = None) -> SummaryStats:
    """Compute KPI tile values over `records`.

    Args:
        records: Normalized report records.
        now: Naive UTC reference time for the current-month count. Defaults
            to the current time.

    Returns:
        `SummaryStats`; all zeros for an empty collection.
    """
    records = list(records)
    total = len(records)
    if total == 0:
        return SummaryStats()

    now = now or datetime.now(timezone.utc).replace(tzinfo=None)
    by_status = count_by(records, lambda r: r.status)
    approved = sum(by_status.get(s, 0) for s in APPROVED_STATUSES)
    rejected = sum(by_status.get(s, 0) for s in REJECTED_STATUSES)

    scores = mean_by(records, lambda r: "all").get("all", MeanAccumulator())

    active_units = len(count_by(records, lambda r: r.unit_name if r.has_unit else None))

    return SummaryStats(
        total_reports=total,
        approved_reports=approved,
        pending_reports=by_status.get(ReportStatus.PENDING_APPROVAL, 0),
        in_flight_reports=unit_pending_count(records),
        completed_reports=by_status.get(ReportStatus.COMPLETED, 0),
        rejected_reports=rejected,
        this_month_reports=this_month_count(records, now),
        approval_rate=approved / total * 100.0,
        average_score=scores.mean,
        active_units=active_units,
    )


def unit_pending_count(records: Iterable[ReportRecord]) -> int:
    """Reports still moving through the pipeline (queued, processing or awaiting approval).

    Shown on a unit-scoped caller's own tile, where "pending" covers every
    in-flight state rather than only `pending_approval`.
    """
    return sum(1 for r in records if r.status in IN_FLIGHT_STATUSES)


def this_month_count(records: Iterable[ReportRecord], now: datetime) -> int:
    """Reports submitted in the calendar month (and year) of `now`."""
    return sum(
        1
        for r in records
        if r.created_at is not None
        and (r.created_at.year, r.created_at.month) == (now.year, now.month)
    )
