"""Observation sinks: where emitted observations are shipped.

Provides sinks for the collectd exec plugin text protocol, plain logging, and
a Prometheus exposition endpoint so the collector can run standalone.

  PutvalSink      PUTVAL lines on a text stream (stdout under collectd's exec plugin)
  LoggingSink     one log record per observation
  PrometheusSink  prometheus_client custom collector holding the latest reading
"""
from __future__ import annotations

import logging
import re
import sys
import threading
from collections.abc import Iterator
from typing import Protocol, TextIO

from prometheus_client import CollectorRegistry, start_http_server
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.registry import Collector

from varnishmon.enums import MetricKind

from .catalog import find
from .observation import PLUGIN_NAME, MetricObservation

logger = logging.getLogger(__name__)

_INVALID_METRIC_CHARS = re.compile(r'[^a-zA-Z0-9_]')


class ObservationSink(Protocol):
    def submit(self, observation: MetricObservation) -> None: ...


def _format_value(obs: MetricObservation) -> str:
    if obs.kind is MetricKind.COUNTER:
        return str(int(obs.value))
    return str(obs.value)


class PutvalSink:
    """Write observations using the collectd plain-text ``PUTVAL`` command."""

    def __init__(self, stream: TextIO | None = None, *, interval: float | None = None):
        self.stream = stream if stream is not None else sys.stdout
        self.interval = interval

    def format(self, obs: MetricObservation) -> str:
        opts = f" interval={self.interval:g}" if self.interval else ""
        return f'PUTVAL "{obs.identifier()}"{opts} N:{_format_value(obs)}'

    def submit(self, observation: MetricObservation) -> None:
        self.stream.write(self.format(observation) + "\n")
        self.stream.flush()


class LoggingSink:
    def __init__(self, level: int = logging.INFO, name: str = "varnishmon.observations"):
        self.level = level
        self._log = logging.getLogger(name)

    def submit(self, observation: MetricObservation) -> None:
        self._log.log(self.level, "%s %s=%s", observation.identifier(), observation.kind.value, observation.value)


def prometheus_name(metric_name: str, prefix: str = PLUGIN_NAME) -> str:
    return f"{prefix}_{_INVALID_METRIC_CHARS.sub('_', metric_name)}"


class PrometheusSink(Collector):
    """Keep the latest value per (name, host, instance) and expose it on scrape.

    Counters surface as ``varnish_<name>_total``, gauges as ``varnish_<name>``,
    both labelled ``host`` and ``instance`` (empty for the default identity).
    """

    def __init__(self, registry: CollectorRegistry | None = None, *, prefix: str = PLUGIN_NAME):
        self.prefix = prefix
        # scrapes run on the exporter thread
        self._lock = threading.Lock()
        self._latest: dict[tuple[str, str, str], tuple[MetricKind, int | float]] = {}
        if registry is not None:
            registry.register(self)

    def submit(self, observation: MetricObservation) -> None:
        key = (observation.name, observation.host, observation.plugin_instance or "")
        with self._lock:
            self._latest[key] = (observation.kind, observation.value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._latest)

    def collect(self) -> Iterator[CounterMetricFamily | GaugeMetricFamily]:
        with self._lock:
            items = sorted(self._latest.items())
        families: dict[str, CounterMetricFamily | GaugeMetricFamily] = {}
        for (name, host, instance), (kind, value) in items:
            fam = families.get(name)
            if fam is None:
                d = find(name)
                doc = d.doc if d is not None else name
                prom = prometheus_name(name, self.prefix)
                if kind is MetricKind.COUNTER:
                    fam = CounterMetricFamily(prom, doc, labels=["host", "instance"])
                else:
                    fam = GaugeMetricFamily(prom, doc, labels=["host", "instance"])
                families[name] = fam
            fam.add_metric([host, instance], value)
        yield from families.values()


def start_exporter(registry: CollectorRegistry, port: int = 9131, host: str = "0.0.0.0") -> None:
    """Serve ``registry`` over HTTP on a daemon thread."""
    start_http_server(port, addr=host, registry=registry)
    logger.info("Prometheus exporter listening on %s:%s", host, port)


__all__ = [
    "ObservationSink",
    "PutvalSink",
    "LoggingSink",
    "PrometheusSink",
    "prometheus_name",
    "start_exporter",
]
