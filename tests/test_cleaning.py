from __future__ import annotations

from datetime import date, datetime

import numpy as np
import pandas as pd
import dask.dataframe as dd

from dashmon_analytics.aggregate.leaderboard import build_leaderboard
from dashmon_analytics.clean.normalize import (
    RECORD_COLUMNS,
    frame_to_records,
    normalize_frame,
    normalize_record,
)
from dashmon_analytics.models import UNKNOWN, ReportStatus


def test_normalize_store_document_with_nested_profile() -> None:
    rec = normalize_record({
        "id": "a1",
        "status": " Approved ",
        "calculated_score": "87.5",
        "indicator_type": "Media  Sosial",
        "created_at": "2024-02-03T10:00:00Z",
        "approved_at": None,
        "profiles": {"full_name": "Budi", "sbu_name": "SBU Jawa Barat"},
    })
    assert rec.id == "a1"
    assert rec.status is ReportStatus.APPROVED
    assert rec.score == 87.5
    assert rec.indicator_type == "Media Sosial"
    assert rec.unit_name == "SBU Jawa Barat"
    assert rec.created_at == datetime(2024, 2, 3, 10, 0)
    assert rec.approved_at is None


def test_normalize_keeps_missing_score_absent_and_zero_as_zero() -> None:
    assert normalize_record({"id": "x", "calculated_score": None}).score is None
    assert normalize_record({"id": "x", "score": float("nan")}).score is None
    assert normalize_record({"id": "x", "score": True}).score is None
    assert normalize_record({"id": "x", "score": "n/a"}).score is None
    assert normalize_record({"id": "x", "score": 0}).score == 0.0


def test_normalize_degrades_malformed_input_to_sentinels() -> None:
    rec = normalize_record({
        "id": 7,
        "status": "archived",
        "indicator_type": 42,
        "profiles": None,
        "created_at": "yesterday",
    })
    assert rec.id == "7"
    assert rec.status is None
    assert rec.unit_name == UNKNOWN
    assert rec.indicator_type == UNKNOWN
    assert rec.created_at is None

    junk = normalize_record(["not", "a", "mapping"])
    assert junk.id == ""
    assert junk.unit_name == UNKNOWN


def test_normalize_accepts_flat_unit_and_date_values() -> None:
    rec = normalize_record({"id": "f", "unit_name": "SBU Bali", "created_at": date(2024, 6, 30)})
    assert rec.unit_name == "SBU Bali"
    assert rec.created_at == datetime(2024, 6, 30)


def test_normalize_frame_has_stable_schema_and_order() -> None:
    pdf = pd.DataFrame([
        {
            "id": "1",
            "status": "completed",
            "calculated_score": 90,
            "indicator_type": "Website",
            "created_at": "2024-03-01T08:00:00",
            "sbu_name": "SBU A",
        },
        {
            "id": "2",
            "status": "queued",
            "calculated_score": np.nan,
            "indicator_type": None,
            "created_at": "2024-01-01T08:00:00",
            "sbu_name": None,
        },
    ])
    ddf = dd.from_pandas(pdf, npartitions=1)

    out = normalize_frame(ddf).compute()
    assert list(out.columns) == RECORD_COLUMNS
    assert out.loc[0, "unit_name"] == "SBU A"
    assert out.loc[1, "indicator_type"] == UNKNOWN
    assert pd.isna(out.loc[1, "score"])

    records = frame_to_records(normalize_frame(ddf))
    assert [r.id for r in records] == ["1", "2"]
    assert records[0].score == 90.0
    assert records[1].score is None
    assert records[1].unit_name == UNKNOWN
    assert records[1].status is ReportStatus.QUEUED


def test_frame_to_records_on_empty_frame() -> None:
    ddf = dd.from_pandas(pd.DataFrame(), npartitions=1)
    assert frame_to_records(normalize_frame(ddf)) == []


def test_normalize_falls_back_to_score_when_calculated_score_is_empty() -> None:
    rec = normalize_record({"id": "a", "calculated_score": None, "score": 80, "unit_name": "A"})
    assert rec.score == 80.0
    assert normalize_record({"id": "b", "calculated_score": 70, "score": 10}).score == 70.0


def test_frame_with_mixed_score_columns_keeps_both_scores() -> None:
    pdf = pd.DataFrame([
        {"id": "1", "calculated_score": 90, "unit_name": "A"},
        {"id": "2", "score": 40, "unit_name": "B"},
    ])
    records = frame_to_records(normalize_frame(dd.from_pandas(pdf, npartitions=1)))
    assert [r.score for r in records] == [90.0, 40.0]
    assert [row.unit for row in build_leaderboard(records)] == ["A", "B"]
