from __future__ import annotations

from datetime import datetime
from typing import Any

import pytest

from dashmon_analytics.aggregate.load_gold import GOLD_COLLECTIONS, load_snapshot, snapshot_documents
from dashmon_analytics.aggregate.snapshot import (
    HolderRegistry,
    SnapshotHolder,
    build_snapshot,
    rows_to_frame,
)
from dashmon_analytics.ingest.fetch_reports import ReportFetchError


def _docs() -> list[dict[str, Any]]:
    return [
        {"id": "1", "status": "approved", "calculated_score": 80, "indicator_type": "X",
         "created_at": datetime(2024, 2, 1), "profiles": {"sbu_name": "unitA"}},
        {"id": "2", "status": "approved", "calculated_score": 90, "indicator_type": "X",
         "created_at": datetime(2024, 2, 2), "profiles": {"sbu_name": "unitA"}},
        {"id": "3", "status": "pending_approval", "calculated_score": None, "indicator_type": "Y",
         "created_at": datetime(2024, 1, 9), "profiles": {"sbu_name": "unitB"}},
    ]


class FakeCollection:
    def __init__(self, name: str, events: list[tuple[str, str]]) -> None:
        self.name = name
        self.events = events
        self.ops: list[Any] = []
        self.deleted: list[dict[str, Any]] = []

    def bulk_write(self, ops: list[Any], ordered: bool = True) -> None:
        self.events.append(("upsert", self.name))
        self.ops.extend(ops)

    def delete_many(self, query: dict[str, Any]) -> None:
        self.events.append(("delete", self.name))
        self.deleted.append(query)


class FakeDatabase:
    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}
        self.events: list[tuple[str, str]] = []

    def __getitem__(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection(name, self.events))


def test_build_snapshot_from_store_documents() -> None:
    snap = build_snapshot(_docs())
    assert snap.record_count == 3
    assert [(r.unit, r.mean_score, r.report_count) for r in snap.leaderboard] == [("unitA", 85, 2)]
    assert [(c.indicator, c.count) for c in snap.composition] == [("X", 2), ("Y", 1)]
    assert [p.month_label for p in snap.trend] == ["Feb", "Jan"]
    assert snap.comparison_units == ["unitA"]
    assert snap.summary.total_reports == 3


def test_build_snapshot_on_empty_input() -> None:
    snap = build_snapshot([])
    assert snap.record_count == 0
    assert snap.leaderboard == [] and snap.comparison == [] and snap.trend == [] and snap.composition == []
    assert snap.comparison_units == []
    assert rows_to_frame(snap.leaderboard).empty


def test_holder_keeps_previous_snapshot_when_fetch_fails() -> None:
    holder = SnapshotHolder()
    assert holder.current is None

    first = holder.refresh(_docs)
    assert holder.current is first

    def failing() -> list[dict[str, Any]]:
        raise ReportFetchError("store unavailable")

    with pytest.raises(ReportFetchError):
        holder.refresh(failing)
    assert holder.current is first


def test_holder_distinguishes_empty_fetch_from_no_fetch() -> None:
    holder = SnapshotHolder()
    snap = holder.refresh(lambda: [])
    assert holder.current is snap
    assert snap.record_count == 0


def test_holder_uses_previous_period_for_deltas() -> None:
    prior = [{"id": "p", "calculated_score": 70, "profiles": {"sbu_name": "unitA"}}]
    snap = SnapshotHolder().refresh(_docs, lambda: prior)
    assert snap.leaderboard[0].delta == pytest.approx(15.0)


def test_load_snapshot_upserts_every_view() -> None:
    db = FakeDatabase()
    snap = build_snapshot(_docs())
    written = load_snapshot(db, snap)  # type: ignore[arg-type]

    assert set(written) == set(GOLD_COLLECTIONS)
    assert written["gold_leaderboard"] == 1
    assert written["gold_composition"] == 2
    assert written["gold_summary"] == 1
    assert len(db["gold_trend"].ops) == 2
    assert db["gold_leaderboard"].deleted == [{"generated_at": {"$ne": snap.generated_at}}]


def test_load_snapshot_cleans_up_only_after_every_view_is_written() -> None:
    db = FakeDatabase()
    load_snapshot(db, build_snapshot(_docs()))  # type: ignore[arg-type]

    kinds = [kind for kind, _ in db.events]
    first_delete = kinds.index("delete")
    assert "upsert" not in kinds[first_delete:]
    upserted = [name for kind, name in db.events if kind == "upsert"]
    assert upserted[-1] == "gold_summary"
    # new rows never overwrite the previous snapshot's rows in place
    op = db["gold_leaderboard"].ops[0]
    assert set(op._filter) == {"unit", "generated_at"}


def test_comparison_documents_store_units_as_values() -> None:
    docs = [
        {"id": "1", "calculated_score": 70, "indicator_type": "X", "unit_name": "SBU Jl. Sudirman"},
        {"id": "2", "calculated_score": 50, "indicator_type": "X", "unit_name": "$root"},
    ]
    rows = snapshot_documents(build_snapshot(docs))["gold_comparison"]
    assert rows[0]["per_unit"] == [
        {"unit": "SBU Jl. Sudirman", "mean": 70.0},
        {"unit": "$root", "mean": 50.0},
    ]
    assert all("." not in k and not k.startswith("$") for k in rows[0])


def test_registry_isolates_snapshots_per_filter_key() -> None:
    registry = HolderRegistry()
    admin = registry.holder_for(("admin", None, "all", "all", False))
    unit = registry.holder_for(("sbu", "unitB", "all", "all", False))
    assert admin is not unit
    assert registry.holder_for(("admin", None, "all", "all", False)) is admin

    admin.refresh(_docs)

    def failing() -> list[dict[str, Any]]:
        raise ReportFetchError("store down")

    with pytest.raises(ReportFetchError):
        unit.refresh(failing)
    # the unit view has no fallback of its own and must not borrow the admin one
    assert unit.current is None
    assert admin.current is not None
    assert len(registry) == 2
