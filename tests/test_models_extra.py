from __future__ import annotations

from datetime import datetime, timezone
import pytest
from pydantic import ValidationError
from dashmon_analytics.models import (
    UNKNOWN,
    LeaderboardRow,
    ReportRecord,
    ReportStatus,
    Snapshot,
    SummaryStats,
)


def test_report_record_defaults_to_sentinels() -> None:
    rec = ReportRecord.model_validate({"id": "r1", "status": "completed"})
    assert rec.status is ReportStatus.COMPLETED
    assert rec.unit_name == UNKNOWN
    assert rec.indicator_type == UNKNOWN
    assert not rec.has_unit and not rec.has_indicator and not rec.is_scored


def test_report_record_is_frozen() -> None:
    rec = ReportRecord(id="r1", score=10)
    with pytest.raises(ValidationError):
        rec.score = 20  # type: ignore[misc]


def test_report_record_rejects_extra_fields() -> None:
    with pytest.raises(ValidationError):
        ReportRecord.model_validate({"id": "r1", "file_name": "laporan.pdf"})


def test_leaderboard_row_rejects_zero_rank() -> None:
    with pytest.raises(ValidationError):
        LeaderboardRow(rank=0, unit="A", mean_score=1.0, report_count=1)


def test_snapshot_validates() -> None:
    Snapshot(
        generated_at=datetime.now(timezone.utc),
        record_count=0,
        leaderboard=[],
        comparison=[],
        comparison_units=[],
        trend=[],
        composition=[],
        summary=SummaryStats(),
    )
