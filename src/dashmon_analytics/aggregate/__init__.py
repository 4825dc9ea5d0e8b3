"""Aggregate views over report records.

This package contains the pure builders that turn a normalized report
collection into the analytics views (leaderboard, cross-indicator comparison,
monthly trend, indicator composition, KPI summary), the snapshot that bundles
them, and the loader that persists a snapshot into MongoDB gold collections.
"""
