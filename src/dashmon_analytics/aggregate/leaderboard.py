"""Unit leaderboard ranked by mean report score."""
from __future__ import annotations

from typing import Iterable

from dashmon_analytics.aggregate.grouping import mean_by
from dashmon_analytics.models import LeaderboardRow, ReportRecord


def _unit_key(rec: ReportRecord) -> str | None:
    return rec.unit_name if rec.has_unit else None


def build_leaderboard(
    records: Iterable[ReportRecord],
    previous: Iterable[ReportRecord] | None = None,
) -> list[LeaderboardRow]:
    """Rank units by their mean score.

    Only units with at least one scored, unit-tagged record appear. Ties keep
    the order in which the units were first seen (Python's sort is stable).

    Args:
        records: Current-period records.
        previous: Optional prior-period records. When given, each row's
            `delta` is its mean minus the unit's prior mean; units without a
            scored prior record get `delta=None`.

    Returns:
        Rows ordered by rank, ranks running 1..n without gaps.
    """
    current = mean_by(records, _unit_key)
    prior = mean_by(previous, _unit_key) if previous is not None else {}

    ordered = sorted(current.items(), key=lambda item: item[1].mean, reverse=True)

    rows: list[LeaderboardRow] = []
    for position, (unit, acc) in enumerate(ordered, start=1):
        delta = acc.mean - prior[unit].mean if unit in prior else None
        rows.append(
            LeaderboardRow(
                rank=position,
                unit=unit,
                mean_score=acc.mean,
                report_count=acc.count,
                delta=delta,
            )
        )
    return rows
