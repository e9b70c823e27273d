"""One collection cycle for one instance.

acquire snapshot -> map -> submit each observation -> release snapshot.

A snapshot that cannot be acquired fails the cycle (logged, counted, zero
observations); the next scheduled tick is the retry. A sink error on one
observation is logged and the remaining observations are still submitted. The
snapshot is released on every path.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

from varnishmon.errors import SourceUnavailable, classify_exception
from varnishmon.metrics.mapper import emit
from varnishmon.metrics.observation import MetricObservation
from varnishmon.metrics.self_metrics import CollectorMetrics
from varnishmon.metrics.sinks import ObservationSink
from varnishmon.source.attach import SourceAttachment, acquire
from varnishmon.utils import log_context as lc

from .instance import InstanceConfig

logger = logging.getLogger(__name__)


@dataclass
class InstanceState:
    """Mutable state owned by one instance's task; never shared between instances."""

    sink_warned: bool = False


@dataclass
class CycleResult:
    identity: str | None
    ok: bool
    submitted: int = 0
    failed: int = 0
    error: BaseException | None = None
    duration: float = 0.0


class CollectionCycle:
    def __init__(self, attachment: SourceAttachment, sink: ObservationSink, host: str, *,
                 metrics: CollectorMetrics | None = None):
        self.attachment = attachment
        self.sink = sink
        self.host = host
        self.metrics = metrics

    def run(self, config: InstanceConfig, state: InstanceState | None = None) -> CycleResult:
        """Collect one instance. Pass the same ``state`` on every run of that instance."""
        state = state if state is not None else InstanceState()
        label = config.label
        t0 = time.perf_counter()
        with lc.push_context(component="collector", instance=label):
            try:
                with acquire(self.attachment, config.identity) as snapshot:
                    observations = emit(config.selector, snapshot, host=self.host, identity=config.identity)
                    submitted, failed = self._submit_all(observations, state)
            except SourceUnavailable as e:
                logger.error("Unable to load statistics for instance %s: %s", label, e)
                result = CycleResult(config.identity, ok=False, error=e)
            else:
                result = CycleResult(config.identity, ok=True, submitted=submitted, failed=failed)
        result.duration = time.perf_counter() - t0
        self._record(label, result)
        return result

    def _submit_all(self, observations: Sequence[MetricObservation], state: InstanceState) -> tuple[int, int]:
        submitted = failed = 0
        for obs in observations:
            try:
                self.sink.submit(obs)
            except Exception as exc:  # noqa: BLE001 one bad submission must not stop the rest
                failed += 1
                if not state.sink_warned:
                    state.sink_warned = True
                    logger.warning("Submitting %s failed: %s", obs.identifier(), exc, exc_info=True)
                else:
                    logger.debug("Submitting %s failed: %s", obs.identifier(), exc)
            else:
                submitted += 1
        return submitted, failed

    def _record(self, label: str, result: CycleResult) -> None:
        m = self.metrics
        if m is None:
            return
        m.collection_cycles.labels(instance=label).inc()
        m.collection_duration.labels(instance=label).observe(result.duration)
        if result.error is not None:
            m.collection_errors.labels(instance=label, error_type=classify_exception(result.error)).inc()
        if result.submitted:
            m.observations.labels(instance=label).inc(result.submitted)
        if result.failed:
            m.submission_failures.labels(instance=label).inc(result.failed)


__all__ = ["CollectionCycle", "CycleResult", "InstanceState"]
