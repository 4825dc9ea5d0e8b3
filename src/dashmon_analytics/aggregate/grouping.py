"""Generic group-and-reduce primitive shared by every aggregate view.

Groups keep first-seen key order (dicts preserve insertion order), which is
the canonical output order for views that do not impose their own sort.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Hashable, Iterable, TypeVar

from dashmon_analytics.models import ReportRecord

K = TypeVar("K", bound=Hashable)
A = TypeVar("A")


def group_and_reduce(
    records: Iterable[ReportRecord],
    key_fn: Callable[[ReportRecord], K | None],
    reduce_fn: Callable[[A, ReportRecord], A],
    initial: Callable[[], A],
) -> dict[K, A]:
    """Group records by `key_fn` and fold each group with `reduce_fn`.

    Args:
        records: Normalized report records, in input order.
        key_fn: Returns the group key, or None to leave the record out.
        reduce_fn: Folds one record into a group's accumulator and returns it.
        initial: Factory for a fresh accumulator.

    Returns:
        Dict of key -> accumulator, ordered by first occurrence of each key.
    """
    groups: dict[K, A] = {}
    for rec in records:
        key = key_fn(rec)
        if key is None:
            continue
        acc = groups[key] if key in groups else initial()
        groups[key] = reduce_fn(acc, rec)
    return groups


@dataclass
class MeanAccumulator:
    """Running (total, count) pair; the mean is only divided out on read."""
    total: float = 0.0
    count: int = 0

    def add(self, value: float) -> "MeanAccumulator":
        self.total += value
        self.count += 1
        return self

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0


def add_score(acc: MeanAccumulator, rec: ReportRecord) -> MeanAccumulator:
    """Reducer feeding a record's score (if any) into a `MeanAccumulator`."""
    if rec.score is not None:
        acc.add(rec.score)
    return acc


def count(acc: int, _rec: ReportRecord) -> int:
    """Reducer counting records."""
    return acc + 1


def mean_by(
    records: Iterable[ReportRecord],
    key_fn: Callable[[ReportRecord], K | None],
) -> dict[K, MeanAccumulator]:
    """Mean score per key over scored records only.

    Unscored records are excluded before grouping, so every returned group
    holds at least one score.
    """
    return group_and_reduce(
        records,
        lambda r: key_fn(r) if r.is_scored else None,
        add_score,
        MeanAccumulator,
    )


def count_by(
    records: Iterable[ReportRecord],
    key_fn: Callable[[ReportRecord], K | None],
) -> dict[K, int]:
    """Number of records per key."""
    return group_and_reduce(records, key_fn, count, int)
