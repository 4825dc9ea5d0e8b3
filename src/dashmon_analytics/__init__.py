"""dashmon_analytics package.

Analytics engine behind the DASHMON+ reporting dashboard. It reads submitted
performance reports from the report store, normalizes them, and derives the
aggregate views shown on the analytics page.

Architecture:
- Reports are read from MongoDB and batched into Dask partitions
- Normalization turns raw store documents into frozen `ReportRecord` models
- Pure builders compute leaderboard, comparison, trend and composition views
- A `Snapshot` bundles one consistent set of views; gold collections persist it
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
