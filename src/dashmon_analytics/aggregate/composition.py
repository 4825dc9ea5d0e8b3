"""Report composition by indicator category."""
from __future__ import annotations

from typing import Iterable

from dashmon_analytics.aggregate.grouping import count_by
from dashmon_analytics.models import CompositionSlice, ReportRecord


def build_composition(records: Iterable[ReportRecord]) -> list[CompositionSlice]:
    """Count reports per indicator.

    Every record is counted; untagged ones fall under the `UNKNOWN` indicator,
    so slice counts always sum to the number of input records.
    """
    counts = count_by(records, lambda r: r.indicator_type)
    return [CompositionSlice(indicator=k, count=v) for k, v in counts.items()]
