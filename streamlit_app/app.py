from __future__ import annotations

import pandas as pd
import streamlit as st
import altair as alt

from dotenv import dotenv_values

from dashmon_analytics.aggregate.comparison import comparison_frame
from dashmon_analytics.aggregate.snapshot import HolderRegistry, rows_to_frame
from dashmon_analytics.clean.filters import ReportFilter, previous_period
from dashmon_analytics.db import get_client, get_db
from dashmon_analytics.ingest.fetch_reports import ReportFetchError, fetch_reports

# =====================================================
# Page config
# =====================================================
st.set_page_config(page_title="DASHMON+ Analytics", layout="wide")
st.title("📊 DASHMON+ Analytics Dashboard")

# =====================================================
# MongoDB connection (strict: read from .env only)
# =====================================================
_env = dotenv_values(".env")
MONGO_URI = _env.get("MONGO_URI")
MONGO_DB = _env.get("MONGO_DB") or "dashmon"
REPORTS_COLLECTION = _env.get("REPORTS_COLLECTION") or "reports"
TREND_BY_YEAR = (_env.get("TREND_BY_YEAR") or "").strip().lower() in {"1", "true", "yes", "on"}

if not MONGO_URI:
    st.error(
        "Missing `MONGO_URI` in `.env`. Please create a `.env` file with `MONGO_URI=<your mongodb uri>` (do not put secrets in source control)."
    )
    st.stop()

try:
    client = get_client(MONGO_URI)
    # fail fast: ensure the client can reach the server
    client.admin.command("ping")
    reports = get_db(client, MONGO_DB)[REPORTS_COLLECTION]
except Exception as exc:  # pragma: no cover - runtime failure handling
    st.error(f"Unable to connect to MongoDB: {exc}")
    st.stop()


@st.cache_resource
def holder_registry() -> HolderRegistry:
    """One registry per server process; each filter combination keeps its own last good snapshot."""
    return HolderRegistry(by_year=TREND_BY_YEAR)

# =====================================================
with st.sidebar:
    st.header("Filters")
    role = st.radio("Role", ["admin", "sbu"], horizontal=True)
    unit = st.text_input("Unit (SBU)", value="SBU Jawa Barat") if role == "sbu" else None
    period = st.selectbox(
        "Period",
        ["all", "semester-1-2024", "semester-2-2024", "year-2024"],
        index=0,
    )
    indicator = st.selectbox(
        "Indicator",
        ["all", "Siaran Pers", "Media Sosial", "Publikasi Media"],
        index=0,
    )
    compare_previous = st.checkbox("Compare with previous period", value=period != "all")

report_filter = ReportFilter(period=period, indicator=indicator)
holder = holder_registry().holder_for((role, unit, period, indicator, compare_previous))


def fetch_current():
    return fetch_reports(reports, report_filter, unit_name=unit)


fetch_previous = None
if compare_previous and period != "all":
    prior_filter = ReportFilter(period=previous_period(period), indicator=indicator)

    def fetch_prior():
        return fetch_reports(reports, prior_filter, unit_name=unit)

    fetch_previous = fetch_prior

try:
    snapshot = holder.refresh(fetch_current, fetch_previous)
except ReportFetchError as exc:
    snapshot = holder.current
    if snapshot is None:
        st.error(f"Gagal memuat data analytics: {exc}")
        st.stop()
    st.warning(f"Showing data from {snapshot.generated_at:%Y-%m-%d %H:%M:%S} UTC (refresh failed: {exc})")

# =====================================================
# SECTION 0 — KPI TILES
# =====================================================
summary = snapshot.summary
if role == "sbu":
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Laporan Saya", f"{summary.total_reports:,}")
    c2.metric("Disetujui", f"{summary.approved_reports:,}")
    c3.metric("Dalam Proses", f"{summary.in_flight_reports:,}")
    c4.metric("Skor Rata-rata", f"{summary.average_score:.1f}")
else:
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Laporan", f"{summary.total_reports:,}")
    c2.metric("Approval Rate", f"{summary.approval_rate:.1f}%")
    c3.metric("Skor Rata-rata", f"{summary.average_score:.1f}")
    c4.metric("SBU Aktif", summary.active_units)
    c5, c6, c7, c8 = st.columns(4)
    c5.metric("Bulan Ini", f"{summary.this_month_reports:,}")
    c6.metric("Menunggu Approval", f"{summary.pending_reports:,}")
    c7.metric("Selesai", f"{summary.completed_reports:,}")
    c8.metric("Ditolak", f"{summary.rejected_reports:,}")

if snapshot.record_count == 0:
    st.info("No reports match the selected filters.")
    st.stop()

st.divider()

# =====================================================
# SECTION 1 — LEADERBOARD
# =====================================================
st.header("🏆 Leaderboard")

df_lb = rows_to_frame(snapshot.leaderboard)
if df_lb.empty:
    st.info("No scored reports yet.")
else:
    df_lb["mean_score"] = df_lb["mean_score"].round(1)
    df_lb["delta"] = df_lb["delta"].map(
        lambda d: "–" if pd.isna(d) else f"{d:+.1f}"
    )
    if unit:
        df_lb["you"] = df_lb["unit"].eq(unit).map({True: "⭐", False: ""})
    st.dataframe(center_dataframe(df_lb), width="stretch", hide_index=True)

st.divider()

# =====================================================
# SECTION 2 — CROSS-INDICATOR COMPARISON
# =====================================================
st.header("🎯 Performance by Indicator")

df_cmp = comparison_frame(snapshot.comparison, snapshot.comparison_units)
if df_cmp.empty:
    st.info("Comparison data not available.")
else:
    df_long = df_cmp.melt(
        id_vars=["indicator"],
        value_vars=[*snapshot.comparison_units, "overall_mean"],
        var_name="unit",
        value_name="mean_score",
    ).dropna(subset=["mean_score"])

    chart_cmp = (
        alt.Chart(df_long)
        .mark_bar()
        .encode(
            x=alt.X("indicator:N", title=None),
            xOffset="unit:N",
            y=alt.Y("mean_score:Q", title="Mean score"),
            color=alt.Color("unit:N", title="Unit"),
            tooltip=["indicator:N", "unit:N", alt.Tooltip("mean_score:Q", format=".1f")],
        )
        .properties(height=320)
    )
    st.altair_chart(chart_cmp, width="stretch")
    st.dataframe(center_dataframe(df_cmp.round(1)), width="stretch", hide_index=True)

st.divider()

# =====================================================
# SECTION 3 — TREND + COMPOSITION
# =====================================================
left, right = st.columns(2)

with left:
    st.header("📈 Monthly Trend")
    df_trend = rows_to_frame(snapshot.trend)
    if df_trend.empty:
        st.info("Trend data not available.")
    else:
        order = df_trend["month_label"].tolist()
        df_trend_long = df_trend.melt(
            id_vars=["month_label"],
            value_vars=["total", "approved", "rejected"],
            var_name="series",
            value_name="reports",
        )
        chart_trend = (
            alt.Chart(df_trend_long)
            .mark_line(point=True)
            .encode(
                x=alt.X("month_label:N", sort=order, title="Month"),
                y=alt.Y("reports:Q", title="Reports"),
                color=alt.Color("series:N", title=None),
                tooltip=["month_label:N", "series:N", "reports:Q"],
            )
            .properties(height=320)
        )
        st.altair_chart(chart_trend, width="stretch")

with right:
    st.header("🧩 Activity Composition")
    df_comp = rows_to_frame(snapshot.composition)
    if df_comp.empty:
        st.info("Composition data not available.")
    else:
        chart_comp = (
            alt.Chart(df_comp)
            .mark_arc(innerRadius=50)
            .encode(
                theta=alt.Theta("count:Q"),
                color=alt.Color("indicator:N", title="Indicator"),
                tooltip=["indicator:N", "count:Q"],
            )
            .properties(height=320)
        )
        st.altair_chart(chart_comp, width="stretch")

# =====================================================
# Footer
# =====================================================
st.caption(
    f"Snapshot generated {snapshot.generated_at:%Y-%m-%d %H:%M:%S} UTC • "
    f"{snapshot.record_count} reports • MongoDB • Streamlit"
)
