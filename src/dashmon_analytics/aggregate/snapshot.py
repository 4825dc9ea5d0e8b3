"""Snapshot assembly and atomic snapshot swapping.

A `Snapshot` is built in full from one report collection. `SnapshotHolder`
keeps the most recent successful snapshot and replaces it as a whole, so a
reader never observes a mix of two refreshes.
"""
from __future__ import annotations

from datetime import datetime, timezone
import logging
import threading
from typing import Any, Callable, Iterable

import pandas as pd
from pydantic import BaseModel

from dashmon_analytics.aggregate.comparison import build_comparison, comparison_units
from dashmon_analytics.aggregate.composition import build_composition
from dashmon_analytics.aggregate.leaderboard import build_leaderboard
from dashmon_analytics.aggregate.summary import build_summary
from dashmon_analytics.aggregate.trend import build_trend
from dashmon_analytics.clean.normalize import normalize_records
from dashmon_analytics.models import Snapshot

log = logging.getLogger(__name__)


def build_snapshot(
    records: Iterable[Any],
    previous: Iterable[Any] | None = None,
    by_year: bool = False,
) -> Snapshot:
    """Compute every aggregate view from one report collection.

    Args:
        records: Raw store documents or `ReportRecord`s, already filtered.
        previous: Optional prior-period collection used for leaderboard deltas.
        by_year: Key the trend by year+month instead of month name.

    Returns:
        Frozen `Snapshot`.
    """
    current = normalize_records(records)
    prior = normalize_records(previous) if previous is not None else None

    # BSON datetimes hold milliseconds; truncate so the stamp round-trips exactly
    now = datetime.now(timezone.utc)
    now = now.replace(microsecond=now.microsecond // 1000 * 1000)

    comparison = build_comparison(current)
    snapshot = Snapshot(
        generated_at=now,
        record_count=len(current),
        leaderboard=build_leaderboard(current, prior),
        comparison=comparison,
        comparison_units=comparison_units(comparison),
        trend=build_trend(current, by_year=by_year),
        composition=build_composition(current),
        summary=build_summary(current, now=now.replace(tzinfo=None)),
    )
    log.info(
        "Built snapshot: %d records, %d ranked units, %d indicators",
        snapshot.record_count,
        len(snapshot.leaderboard),
        len(snapshot.composition),
    )
    return snapshot


def rows_to_frame(rows: Iterable[BaseModel]) -> pd.DataFrame:
    """Return view rows as a pandas DataFrame (one column per model field)."""
    return pd.DataFrame([row.model_dump(mode="python") for row in rows])


class SnapshotHolder:
    """Holds the latest snapshot and swaps it atomically on refresh.

    `current` is None until the first successful refresh. A failed fetch
    leaves the previous snapshot in place and re-raises.
    """

    def __init__(self, by_year: bool = False) -> None:
        self._by_year = by_year
        self._lock = threading.Lock()
        self._snapshot: Snapshot | None = None

    @property
    def current(self) -> Snapshot | None:
        return self._snapshot

    def refresh(
        self,
        fetch: Callable[[], Iterable[Any]],
        fetch_previous: Callable[[], Iterable[Any]] | None = None,
    ) -> Snapshot:
        """Fetch reports, rebuild the snapshot, and publish it.

        Args:
            fetch: Returns the current report collection. Errors propagate.
            fetch_previous: Optional; returns the prior-period collection.

        Returns:
            The newly published snapshot.
        """
        records = list(fetch())
        previous = list(fetch_previous()) if fetch_previous is not None else None
        snapshot = build_snapshot(records, previous, by_year=self._by_year)
        with self._lock:
            self._snapshot = snapshot
        return snapshot


class HolderRegistry:
    """One `SnapshotHolder` per filter key.

    A stale snapshot is only ever served back to the view that produced it,
    so a failed refresh under one role or filter never shows another view's
    data.
    """

    def __init__(self, by_year: bool = False) -> None:
        self._by_year = by_year
        self._lock = threading.Lock()
        self._holders: dict[tuple[Any, ...], SnapshotHolder] = {}

    def holder_for(self, key: tuple[Any, ...]) -> SnapshotHolder:
        with self._lock:
            holder = self._holders.get(key)
            if holder is None:
                holder = SnapshotHolder(by_year=self._by_year)
                self._holders[key] = holder
            return holder

    def __len__(self) -> int:
        return len(self._holders)
