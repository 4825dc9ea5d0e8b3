"""Cross-indicator comparison: mean score per (indicator, unit).

Each row's `overall_mean` is weighted by record count over every scored
record that fed the row, not an average of the per-unit means.
"""
from __future__ import annotations

from typing import Iterable

import pandas as pd

from dashmon_analytics.aggregate.grouping import MeanAccumulator, mean_by
from dashmon_analytics.models import ComparisonRow, ReportRecord


def _pair_key(rec: ReportRecord) -> tuple[str, str] | None:
    if not (rec.has_indicator and rec.has_unit):
        return None
    return rec.indicator_type, rec.unit_name


def build_comparison(records: Iterable[ReportRecord]) -> list[ComparisonRow]:
    """Pivot (indicator, unit) mean scores into one row per indicator.

    Records missing either the indicator or the unit, and unscored records,
    are left out. Indicators appear in first-seen order.
    """
    pairs = mean_by(records, _pair_key)

    per_indicator: dict[str, dict[str, MeanAccumulator]] = {}
    for (indicator, unit), acc in pairs.items():
        per_indicator.setdefault(indicator, {})[unit] = acc

    rows: list[ComparisonRow] = []
    for indicator, units in per_indicator.items():
        if not units:
            continue
        overall = MeanAccumulator(
            total=sum(a.total for a in units.values()),
            count=sum(a.count for a in units.values()),
        )
        rows.append(
            ComparisonRow(
                indicator=indicator,
                per_unit={unit: acc.mean for unit, acc in units.items()},
                overall_mean=overall.mean,
            )
        )
    return rows


def comparison_units(rows: Iterable[ComparisonRow]) -> list[str]:
    """Union of unit columns across all rows, in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        for unit in row.per_unit:
            seen.setdefault(unit, None)
    return list(seen)


def comparison_frame(rows: list[ComparisonRow], units: list[str] | None = None) -> pd.DataFrame:
    """Return the comparison as a wide DataFrame.

    Columns are `indicator`, one column per unit, then `overall_mean`.
    A unit with no scored record for an indicator is NaN, which stays
    distinguishable from a computed mean of 0.
    """
    columns = units if units is not None else comparison_units(rows)
    data = [
        {
            "indicator": row.indicator,
            **{unit: row.per_unit.get(unit, float("nan")) for unit in columns},
            "overall_mean": row.overall_mean,
        }
        for row in rows
    ]
    return pd.DataFrame(data, columns=["indicator", *columns, "overall_mean"])
