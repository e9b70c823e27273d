"""Collector self-observability metrics.

Declared as a small spec table (attribute, Prometheus name, help, constructor,
labels) and registered on an explicit ``CollectorRegistry`` so tests can build
independent instances.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Summary


@dataclass(frozen=True)
class SelfMetricDef:
    attr: str                 # Attribute name on CollectorMetrics
    name: str                 # Prometheus metric name
    doc: str                  # Help text
    kind: Any                 # Constructor (Counter/Summary)
    labels: Sequence[str] = ()

    def build(self, registry: CollectorRegistry):
        return self.kind(self.name, self.doc, list(self.labels), registry=registry)


SELF_METRIC_SPECS: list[SelfMetricDef] = [
    SelfMetricDef(
        attr="collection_cycles",
        name="varnishmon_collection_cycles_total",
        doc="Collection cycles run per instance",
        kind=Counter,
        labels=["instance"],
    ),
    SelfMetricDef(
        attr="collection_errors",
        name="varnishmon_collection_errors_total",
        doc="Collection cycles that failed, by error type",
        kind=Counter,
        labels=["instance", "error_type"],
    ),
    SelfMetricDef(
        attr="submission_failures",
        name="varnishmon_submission_failures_total",
        doc="Observations a sink refused to accept",
        kind=Counter,
        labels=["instance"],
    ),
    SelfMetricDef(
        attr="observations",
        name="varnishmon_observations_total",
        doc="Observations submitted successfully",
        kind=Counter,
        labels=["instance"],
    ),
    SelfMetricDef(
        attr="collection_duration",
        name="varnishmon_collection_duration_seconds",
        doc="Time spent in one collection cycle",
        kind=Summary,
        labels=["instance"],
    ),
]


class CollectorMetrics:
    """Holds the self metrics as attributes named after ``SelfMetricDef.attr``."""

    collection_cycles: Counter
    collection_errors: Counter
    submission_failures: Counter
    observations: Counter
    collection_duration: Summary

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        for spec in SELF_METRIC_SPECS:
            setattr(self, spec.attr, spec.build(self.registry))


__all__ = ["SelfMetricDef", "SELF_METRIC_SPECS", "CollectorMetrics"]
