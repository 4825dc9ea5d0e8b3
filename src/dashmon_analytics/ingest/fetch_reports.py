"""Read report documents from the report store.

Reports are read newest first (matching the dashboard's listing order), with
the caller's filters pushed down as a MongoDB query. A unit-scoped caller
passes its unit name; an admin passes none and sees every report.
"""

from __future__ import annotations

from dataclasses import replace
import logging
from typing import Any, List, cast

import dask.dataframe as dd
import pandas as pd
from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from dashmon_analytics.clean.filters import ReportFilter, to_mongo_query

log = logging.getLogger(__name__)

PROJECTION = {
    "_id": False,
    "id": True,
    "status": True,
    "calculated_score": True,
    "score": True,
    "indicator_type": True,
    "unit_name": True,
    "created_at": True,
    "approved_at": True,
    "profiles.full_name": True,
    "profiles.sbu_name": True,
}


class ReportFetchError(RuntimeError):
    """The report collection could not be read from the store."""


def _scoped(f: ReportFilter | None, unit_name: str | None) -> ReportFilter:
    f = f or ReportFilter()
    if unit_name is not None:
        f = replace(f, unit_name=unit_name)
    return f


def _flatten_profile(doc: dict[str, Any]) -> dict[str, Any]:
    """Lift the joined submitter profile into top-level columns.

    Dask partitions hold scalar columns only; nested dicts do not survive
    string dtype conversion.
    """
    flat = {k: v for k, v in doc.items() if k != "profiles"}
    profile = doc.get("profiles")
    if isinstance(profile, dict):
        flat.setdefault("sbu_name", profile.get("sbu_name"))
        flat.setdefault("full_name", profile.get("full_name"))
    return flat


def fetch_reports(
    collection: Collection[dict[str, Any]],
    f: ReportFilter | None = None,
    unit_name: str | None = None,
    batch_size: int = 5_000,
) -> list[dict[str, Any]]:
    """Return raw report documents matching `f`, newest first.

    Args:
        collection: Report store collection.
        f: Optional period/indicator/status filter.
        unit_name: Restrict to one unit's reports (unit-scoped callers).
        batch_size: Cursor batch size.

    Raises:
        ReportFetchError: if the store cannot be read.
    """
    query = to_mongo_query(_scoped(f, unit_name))
    log.info("Fetching reports from %s with query %s", collection.name, query)
    try:
        cursor = (
            collection.find(query, PROJECTION)
            .sort("created_at", DESCENDING)
            .batch_size(batch_size)
        )
        docs = list(cursor)
    except PyMongoError as exc:
        raise ReportFetchError(f"Unable to read reports from {collection.name}: {exc}") from exc

    log.info("Fetched %d reports", len(docs))
    return docs


def load_reports_ddf(
    collection: Collection[dict[str, Any]],
    f: ReportFilter | None = None,
    unit_name: str | None = None,
    batch_size: int = 50_000,
    rows_per_partition: int = 200_000,
) -> Any:
    """Read matching reports into a Dask DataFrame using batched reads.

    Raises:
        ReportFetchError: if the store cannot be read.
    """
    docs = [_flatten_profile(d) for d in fetch_reports(collection, f, unit_name, batch_size=batch_size)]

    pdf_batches: List[pd.DataFrame] = [
        pd.DataFrame(docs[i : i + batch_size]) for i in range(0, len(docs), batch_size)
    ]

    dd_mod = cast(Any, dd)
    if not pdf_batches:
        return dd_mod.from_pandas(pd.DataFrame(), npartitions=1)

    pdf = pd.concat(pdf_batches, ignore_index=True)
    nparts = max(1, len(pdf) // rows_per_partition)

    log.info("Loaded %d reports into %d Dask partitions", len(pdf), nparts)
    return dd_mod.from_pandas(pdf, npartitions=nparts, sort=False)
