"""Command-line interface for building analytics snapshots.

Provides subcommands: `snapshot` (fetch reports, aggregate, persist to the
gold collections once) and `watch` (repeat `snapshot` on a timer). Each
command is implemented as a `cmd_*` function that accepts an argparse
namespace.
"""
from __future__ import annotations

import argparse
from dataclasses import replace
import logging
from pathlib import Path
import time
from typing import Any, Callable

from dotenv import load_dotenv
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from dashmon_analytics.aggregate.load_gold import GoldLoadError, load_snapshot
from dashmon_analytics.aggregate.snapshot import SnapshotHolder
from dashmon_analytics.clean.filters import ReportFilter, previous_period
from dashmon_analytics.clean.normalize import frame_to_records, normalize_frame
from dashmon_analytics.config import get_settings
from dashmon_analytics.db import get_client, get_db
from dashmon_analytics.ingest.fetch_reports import ReportFetchError, load_reports_ddf
from dashmon_analytics.logging_config import configure_logging
from dashmon_analytics.models import ReportRecord

log = logging.getLogger(__name__)


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _filter_from_args(args: argparse.Namespace) -> ReportFilter:
    """Build the report pre-filter from CLI options."""
    return ReportFilter(
        period=args.period,
        indicator=args.indicator,
        status=args.status,
        unit_name=args.unit,
    )


def _read_records(collection: Collection[dict[str, Any]], f: ReportFilter) -> list[ReportRecord]:
    """Fetch, normalize partition-wise, and materialize report records."""
    ddf = load_reports_ddf(collection, f)
    return frame_to_records(normalize_frame(ddf))


def _refresh(holder: SnapshotHolder, args: argparse.Namespace) -> None:
    """Run one fetch → aggregate → persist cycle.

    Raises:
        ReportFetchError: if the report store cannot be read. The holder keeps
            its previous snapshot in that case.
        GoldLoadError: if the new snapshot, already held, cannot be persisted.
    """
    s = get_settings()
    client = get_client(s.mongo_uri)
    db = get_db(client, s.mongo_db)
    reports = db[s.reports_collection]

    f = _filter_from_args(args)
    fetch_previous: Callable[[], list[ReportRecord]] | None = None
    if args.compare_previous and f.period:
        prior = replace(f, period=previous_period(f.period))

        def read_prior() -> list[ReportRecord]:
            return _read_records(reports, prior)

        fetch_previous = read_prior

    try:
        snapshot = holder.refresh(lambda: _read_records(reports, f), fetch_previous)
        if args.no_load:
            log.info("Skipping gold load (--no-load)")
        else:
            load_snapshot(db, snapshot)
    finally:
        client.close()


# --------------------------------------------------
# SNAPSHOT
# --------------------------------------------------
def cmd_snapshot(args: argparse.Namespace) -> None:
    """Build one snapshot and upsert it into the gold collections."""
    holder = SnapshotHolder(by_year=args.by_year or get_settings().trend_by_year)
    _refresh(holder, args)
    log.info("Snapshot successfully generated.")


# --------------------------------------------------
# WATCH
# --------------------------------------------------
def cmd_watch(args: argparse.Namespace) -> None:
    """Rebuild the snapshot every `--interval` seconds until interrupted.

    A failed fetch is logged and the last good snapshot stays in place. A
    failed gold load is logged against the new snapshot, which stays held and
    is written again on the next cycle.
    """
    s = get_settings()
    interval = args.interval if args.interval is not None else s.refresh_interval_seconds
    holder = SnapshotHolder(by_year=args.by_year or s.trend_by_year)

    log.info("Refreshing snapshots every %.1fs", interval)
    try:
        while True:
            try:
                _refresh(holder, args)
            except GoldLoadError as exc:
                log.error("Gold load failed: %s", exc)
            except (ReportFetchError, PyMongoError) as exc:
                stale = holder.current.generated_at.isoformat() if holder.current else "none"
                log.error("Refresh failed, keeping snapshot from %s: %s", stale, exc)
            time.sleep(interval)
    except KeyboardInterrupt:
        log.info("Stopped.")


# --------------------------------------------------
# CLI
# --------------------------------------------------
def _add_filter_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--period", default=None, help="semester-1-YYYY, semester-2-YYYY or year-YYYY")
    p.add_argument("--indicator", default=None)
    p.add_argument("--status", default=None)
    p.add_argument("--unit", default=None, help="restrict to one unit's reports")
    p.add_argument("--compare-previous", action="store_true",
                   help="compute leaderboard deltas against the preceding period")
    p.add_argument("--by-year", action="store_true", help="bucket the trend by year+month")
    p.add_argument("--no-load", action="store_true", help="do not write gold collections")


def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="dashmon_analytics")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_snapshot = sub.add_parser("snapshot")
    _add_filter_args(p_snapshot)

    p_watch = sub.add_parser("watch")
    _add_filter_args(p_watch)
    p_watch.add_argument("--interval", type=float, default=None)

    return p


def main() -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    load_dotenv()
    args = build_parser().parse_args()
    configure_logging(Path("logs/analytics.log"), get_settings().log_level)

    if args.cmd == "snapshot":
        cmd_snapshot(args)
    elif args.cmd == "watch":
        cmd_watch(args)
    else:
        raise SystemExit(2)


if __name__ == "__main__":
    main()
