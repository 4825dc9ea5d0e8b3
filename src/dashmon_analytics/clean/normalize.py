"""Normalization of raw report-store documents into `ReportRecord`s.

Store documents come in a few shapes: flat (`unit_name`, `score`) or the
joined shape with the submitter profile nested under `profiles` and the score
under `calculated_score`. Normalization never raises; fields that cannot be
interpreted degrade to the `UNKNOWN` sentinel or to None.
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, time, timezone
import logging
import math
import numbers
from typing import Any

import pandas as pd
from pydantic import ValidationError

from dashmon_analytics.models import UNKNOWN, ReportRecord, ReportStatus

log = logging.getLogger(__name__)

RECORD_COLUMNS = [
    "id",
    "status",
    "unit_name",
    "indicator_type",
    "score",
    "created_at",
    "approved_at",
]


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return bool(pd.api.types.is_scalar(value) and pd.isna(value))


def _coerce_label(value: Any) -> str:
    if _is_missing(value) or not isinstance(value, str):
        return UNKNOWN
    label = " ".join(value.split())
    return label or UNKNOWN


def _coerce_score(value: Any) -> float | None:
    if _is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        score = float(value)
    elif isinstance(value, str):
        try:
            score = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return score if math.isfinite(score) else None


def _coerce_status(value: Any) -> ReportStatus | None:
    if isinstance(value, ReportStatus):
        return value
    if not isinstance(value, str):
        return None
    try:
        return ReportStatus(value.strip().lower())
    except ValueError:
        return None


def _coerce_timestamp(value: Any) -> datetime | None:
    """Return a naive UTC datetime, or None when `value` is not a timestamp."""
    if _is_missing(value):
        return None
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, date):
        ts = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            ts = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def _unit_of(raw: Mapping[str, Any]) -> Any:
    for key in ("unit_name", "sbu_name"):
        if not _is_missing(raw.get(key)):
            return raw.get(key)
    profile = raw.get("profiles")
    if isinstance(profile, Mapping):
        return profile.get("sbu_name")
    return None


def _score_of(raw: Mapping[str, Any]) -> Any:
    # frames carry both columns; an empty calculated_score must not hide score
    calculated = raw.get("calculated_score")
    if not _is_missing(calculated):
        return calculated
    return raw.get("score")


def normalize_record(raw: Any) -> ReportRecord:
    """Convert a raw report into a `ReportRecord`.

    Args:
        raw: A store document (mapping), an existing `ReportRecord`, or any
            other value. Non-mappings become an all-sentinel record.

    Returns:
        Normalized, frozen `ReportRecord`.
    """
    if isinstance(raw, ReportRecord):
        return raw
    if not isinstance(raw, Mapping):
        log.debug("Non-mapping report of type %s degraded to sentinel record", type(raw).__name__)
        return ReportRecord(id="")

    raw_id = raw.get("id", raw.get("_id"))
    try:
        return ReportRecord(
            id="" if _is_missing(raw_id) else str(raw_id),
            status=_coerce_status(raw.get("status")),
            unit_name=_coerce_label(_unit_of(raw)),
            indicator_type=_coerce_label(raw.get("indicator_type")),
            score=_coerce_score(_score_of(raw)),
            created_at=_coerce_timestamp(raw.get("created_at")),
            approved_at=_coerce_timestamp(raw.get("approved_at")),
        )
    except ValidationError as exc:
        log.debug("Report %r degraded to sentinel record: %s", raw_id, exc)
        return ReportRecord(id="" if _is_missing(raw_id) else str(raw_id))


def normalize_records(raws: Any) -> list[ReportRecord]:
    """Normalize an iterable of raw reports, keeping input order."""
    return [normalize_record(r) for r in raws]


def _record_row(rec: ReportRecord) -> dict[str, Any]:
    return {
        "id": rec.id,
        "status": rec.status.value if rec.status is not None else None,
        "unit_name": rec.unit_name,
        "indicator_type": rec.indicator_type,
        "score": rec.score,
        "created_at": rec.created_at,
        "approved_at": rec.approved_at,
    }


def records_to_pandas(records: list[ReportRecord]) -> pd.DataFrame:
    """Return records as a pandas DataFrame with the stable record schema."""
    pdf = pd.DataFrame([_record_row(r) for r in records], columns=RECORD_COLUMNS)
    pdf["score"] = pd.to_numeric(pdf["score"], errors="coerce").astype("float64")
    for col in ("created_at", "approved_at"):
        pdf[col] = pd.to_datetime(pdf[col], errors="coerce")
    return pdf


def normalize_frame(ddf: Any) -> Any:
    """Normalize a Dask DataFrame of raw store documents partition-wise.

    Returns:
        Dask DataFrame with columns `RECORD_COLUMNS`: strings for labels and
        status, float64 `score` (NaN when absent), datetime64 timestamps.
    """
    log.info("Normalizing %d report partitions", ddf.npartitions)

    def _normalize_partition(pdf: pd.DataFrame) -> pd.DataFrame:
        rows = pdf.to_dict(orient="records")
        return records_to_pandas(normalize_records(rows))

    meta = records_to_pandas([])
    return ddf.map_partitions(_normalize_partition, meta=meta)


def frame_to_records(ddf: Any) -> list[ReportRecord]:
    """Materialize a (normalized or raw) Dask DataFrame into records.

    Partition order is preserved, so the result keeps the input order.
    """
    pdf = ddf.compute()
    if pdf.empty:
        return []
    return normalize_records(pdf.to_dict(orient="records"))
