from __future__ import annotations

import logging

import pytest

from dashmon_analytics.config import get_settings


def test_get_settings_requires_mongo_uri(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGO_URI", "")
    with pytest.raises(RuntimeError):
        get_settings()


def test_get_settings_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost:27017")
    monkeypatch.setenv("MONGO_DB", "dashmon_test")
    monkeypatch.setenv("REPORTS_COLLECTION", "laporan")
    monkeypatch.setenv("TREND_BY_YEAR", "yes")
    monkeypatch.setenv("REFRESH_INTERVAL_SECONDS", "5")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    s = get_settings()
    assert s.mongo_db == "dashmon_test"
    assert s.reports_collection == "laporan"
    assert s.trend_by_year is True
    assert s.refresh_interval_seconds == 5.0
    assert s.log_level == logging.DEBUG


def test_get_settings_falls_back_on_unknown_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost:27017")
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    monkeypatch.delenv("TREND_BY_YEAR", raising=False)
    s = get_settings()
    assert s.log_level == logging.INFO
    assert s.trend_by_year is False
