"""Pydantic models for report records and the aggregate views.

`ReportRecord` is the canonical, normalized shape every builder consumes.
The remaining models describe the rows of each aggregate view and the
`Snapshot` that bundles one consistent set of them.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN = "Unknown"


class ReportStatus(str, Enum):
    """Lifecycle states a submitted report can be in."""
    QUEUED = "queued"
    PROCESSING = "processing"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"
    SYSTEM_REJECTED = "system_rejected"
    FAILED = "failed"


APPROVED_STATUSES = frozenset({ReportStatus.APPROVED, ReportStatus.COMPLETED})
REJECTED_STATUSES = frozenset({ReportStatus.REJECTED, ReportStatus.SYSTEM_REJECTED})
IN_FLIGHT_STATUSES = frozenset(
    {ReportStatus.QUEUED, ReportStatus.PROCESSING, ReportStatus.PENDING_APPROVAL}
)


class ReportRecord(BaseModel):
    """Normalized report record.

    Attributes:
        id: Opaque report identifier.
        status: Report status, or None when the stored value is not recognised.
        unit_name: Submitting business unit; `UNKNOWN` when absent.
        indicator_type: Indicator category; `UNKNOWN` when absent.
        score: Calculated score. None until the report has been scored.
        created_at: Submission timestamp.
        approved_at: Approval timestamp, if approved.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)
    id: str
    status: ReportStatus | None = None
    unit_name: str = UNKNOWN
    indicator_type: str = UNKNOWN
    score: float | None = None
    created_at: datetime | None = None
    approved_at: datetime | None = None

    @property
    def has_unit(self) -> bool:
        return self.unit_name != UNKNOWN

    @property
    def has_indicator(self) -> bool:
        return self.indicator_type != UNKNOWN

    @property
    def is_scored(self) -> bool:
        return self.score is not None


class LeaderboardRow(BaseModel):
    """One ranked unit on the leaderboard."""
    model_config = ConfigDict(extra="forbid", frozen=True)
    rank: int = Field(..., ge=1)
    unit: str
    mean_score: float
    report_count: int = Field(..., ge=0)
    delta: float | None = None


class ComparisonRow(BaseModel):
    """Mean score per unit for one indicator, plus the weighted overall mean."""
    model_config = ConfigDict(extra="forbid", frozen=True)
    indicator: str
    per_unit: dict[str, float]
    overall_mean: float


class TrendPoint(BaseModel):
    """Report counts for one month bucket."""
    model_config = ConfigDict(extra="forbid", frozen=True)
    month_label: str
    total: int = Field(..., ge=0)
    approved: int = Field(..., ge=0)
    rejected: int = Field(..., ge=0)


class CompositionSlice(BaseModel):
    """Number of reports filed under one indicator."""
    model_config = ConfigDict(extra="forbid", frozen=True)
    indicator: str
    count: int = Field(..., ge=0)


class SummaryStats(BaseModel):
    """Headline KPI values shown above the charts."""
    model_config = ConfigDict(extra="forbid", frozen=True)
    total_reports: int = Field(0, ge=0)
    approved_reports: int = Field(0, ge=0)
    pending_reports: int = Field(0, ge=0)
    in_flight_reports: int = Field(0, ge=0)
    completed_reports: int = Field(0, ge=0)
    rejected_reports: int = Field(0, ge=0)
    this_month_reports: int = Field(0, ge=0)
    approval_rate: float = Field(0.0, ge=0.0, le=100.0)
    average_score: float = 0.0
    active_units: int = Field(0, ge=0)


class Snapshot(BaseModel):
    """One complete, internally consistent set of aggregate views."""
    model_config = ConfigDict(extra="forbid", frozen=True)
    generated_at: datetime
    record_count: int = Field(..., ge=0)
    leaderboard: list[LeaderboardRow]
    comparison: list[ComparisonRow]
    comparison_units: list[str]
    trend: list[TrendPoint]
    composition: list[CompositionSlice]
    summary: SummaryStats
