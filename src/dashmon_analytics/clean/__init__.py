"""Normalization and filtering of report-store documents.

Provides functions to turn raw report documents into `ReportRecord`s, either
one by one or partition-wise over Dask DataFrames, and the pre-filters applied
before aggregation.
"""
