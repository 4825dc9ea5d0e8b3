"""Utilities for loading a Snapshot into MongoDB gold collections.

Each view of a snapshot goes into its own read-optimized collection, upserted
row by row on the view's natural key. Rows that disappeared since the previous
snapshot are removed once every collection holds the new rows, so a collection
mirrors exactly one snapshot after a load completes.

`gold_summary` is written last. Readers that need one consistent set of views
should read its `generated_at` first and filter the other collections on it.
"""

from __future__ import annotations

from typing import Any
import logging

from pymongo.database import Database
from pymongo.errors import PyMongoError

from dashmon_analytics.db import bulk_upsert
from dashmon_analytics.models import ComparisonRow, Snapshot

log = logging.getLogger(__name__)


class GoldLoadError(RuntimeError):
    """A snapshot could not be written to the gold collections."""


GOLD_COLLECTIONS: dict[str, list[str]] = {
    "gold_leaderboard": ["unit", "generated_at"],
    "gold_comparison": ["indicator", "generated_at"],
    "gold_trend": ["month_label", "generated_at"],
    "gold_composition": ["indicator", "generated_at"],
    "gold_summary": ["_kind", "generated_at"],
}


def _comparison_document(row: ComparisonRow) -> dict[str, Any]:
    # unit names are free text; as field names a "." or leading "$" would break
    return {
        "indicator": row.indicator,
        "per_unit": [{"unit": u, "mean": m} for u, m in row.per_unit.items()],
        "overall_mean": row.overall_mean,
    }


def snapshot_documents(snapshot: Snapshot) -> dict[str, list[dict[str, Any]]]:
    """Return the documents to write per gold collection, summary last."""
    stamp = {"generated_at": snapshot.generated_at}
    summary = {
        "_kind": "summary",
        "record_count": snapshot.record_count,
        "comparison_units": snapshot.comparison_units,
        **snapshot.summary.model_dump(),
    }
    return {
        "gold_leaderboard": [{**r.model_dump(), **stamp} for r in snapshot.leaderboard],
        "gold_comparison": [{**_comparison_document(r), **stamp} for r in snapshot.comparison],
        "gold_trend": [{**r.model_dump(), **stamp} for r in snapshot.trend],
        "gold_composition": [{**r.model_dump(), **stamp} for r in snapshot.composition],
        "gold_summary": [{**summary, **stamp}],
    }


def load_snapshot(db: Database[dict[str, Any]], snapshot: Snapshot) -> dict[str, int]:
    """Upsert every view of `snapshot` into its gold collection.

    New rows are keyed on (natural key, generated_at), so they sit beside the
    previous snapshot's rows until the cleanup pass drops the old ones.

    Args:
        db: Target MongoDB database.
        snapshot: Snapshot to persist.

    Returns:
        Mapping of collection name to number of rows written.

    Raises:
        GoldLoadError: if the server rejects a write. Rows already written
            stay in place; the next successful load cleans them up.
    """
    written: dict[str, int] = {}
    try:
        for name, docs in snapshot_documents(snapshot).items():
            log.info("Generating gold collection: %s", name)
            if not docs:
                log.warning("No rows to load for %s", name)
            written[name] = bulk_upsert(db[name], docs, GOLD_COLLECTIONS[name])

        # drop rows from older snapshots
        for name in GOLD_COLLECTIONS:
            db[name].delete_many({"generated_at": {"$ne": snapshot.generated_at}})
    except PyMongoError as exc:
        raise GoldLoadError(f"Unable to load snapshot {snapshot.generated_at.isoformat()}: {exc}") from exc

    log.info(
        "Gold load complete: %s",
        ", ".join(f"{k}={v}" for k, v in written.items()),
    )
    return written
