"""Shared enumerations used across the source and metrics layers."""
from __future__ import annotations

from enum import Enum


class MetricKind(str, Enum):
    """Published metric kind; the value is the collectd type name."""

    COUNTER = "derive"
    GAUGE = "gauge"


class Generation(str, Enum):
    """Varnish API generation, which fixes the counter block layout."""

    LEGACY = "legacy"     # varnish 2.x
    CURRENT = "current"   # varnish 3.x


__all__ = ["MetricKind", "Generation"]
