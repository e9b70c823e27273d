"""Metric catalog, category selection, mapping and sinks.

Facade re-exporting the pieces most callers need:

    from varnishmon.metrics import CategorySelector, emit
"""
from __future__ import annotations

from .catalog import METRIC_CATALOG, MetricDef
from .groups import Category, CategorySelector
from .mapper import emit
from .observation import MetricKind, MetricObservation

__all__ = [
    "METRIC_CATALOG",
    "MetricDef",
    "Category",
    "CategorySelector",
    "emit",
    "MetricKind",
    "MetricObservation",
]
