"""In-process periodic scheduler.

The collection core only needs something that accepts named periodic tasks
(``Scheduler`` protocol). ``IntervalScheduler`` is the host-side
implementation used by the CLI:

  * Task names are unique; a second registration under an existing name is
    refused (returns False) so repeated declarations of one instance collapse.
  * Each task keeps its own interval and due time.
  * A task raising is logged and does not affect other tasks or later passes.
"""
from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from varnishmon.utils import log_context as lc

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 10.0


class Scheduler(Protocol):
    def register(self, name: str, callback: Callable[[], object], *,
                 group: str | None = None, interval: float | None = None) -> bool: ...


@dataclass
class ScheduledTask:
    name: str
    callback: Callable[[], object]
    interval: float
    group: str | None = None
    next_due: float = 0.0
    runs: int = 0
    failures: int = 0


class IntervalScheduler:
    def __init__(self, interval: float = DEFAULT_INTERVAL, *,
                 clock: Callable[[], float] = time.monotonic):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        self.interval = interval
        self._clock = clock
        self._tasks: dict[str, ScheduledTask] = {}
        self.passes = 0

    def register(self, name: str, callback: Callable[[], object], *,
                 group: str | None = None, interval: float | None = None) -> bool:
        if name in self._tasks:
            logger.warning("Task %s already registered; ignoring duplicate", name)
            return False
        self._tasks[name] = ScheduledTask(name, callback, interval or self.interval, group)
        logger.debug("Registered task %s (group=%s interval=%s)", name, group, interval or self.interval)
        return True

    @property
    def tasks(self) -> list[ScheduledTask]:
        return list(self._tasks.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def _invoke(self, task: ScheduledTask) -> None:
        task.runs += 1
        try:
            task.callback()
        except Exception:  # noqa: BLE001 task errors never stop the scheduler
            task.failures += 1
            logger.exception("Task %s failed", task.name)

    def run_pending(self, now: float | None = None) -> int:
        """Invoke every task that is due; return how many ran."""
        now = self._clock() if now is None else now
        ran = 0
        for task in list(self._tasks.values()):
            if task.next_due > now:
                continue
            self._invoke(task)
            task.next_due = now + task.interval
            ran += 1
        if ran:
            self.passes += 1
        return ran

    def run_once(self) -> int:
        """Invoke every task exactly once regardless of due time."""
        now = self._clock()
        with lc.push_context(cycle=self.passes + 1):
            for task in list(self._tasks.values()):
                self._invoke(task)
                task.next_due = now + task.interval
        self.passes += 1
        return len(self._tasks)

    def seconds_until_due(self, now: float | None = None) -> float:
        if not self._tasks:
            return self.interval
        now = self._clock() if now is None else now
        return max(0.0, min(t.next_due for t in self._tasks.values()) - now)

    def run_forever(self, stop: threading.Event | None = None, *, max_cycles: int | None = None) -> None:
        """Run until ``stop`` is set (or ``max_cycles`` passes executed)."""
        stop = stop or threading.Event()
        logger.info("Starting scheduler with %d task(s)", len(self._tasks))
        try:
            while not stop.is_set():
                with lc.push_context(cycle=self.passes + 1):
                    self.run_pending()
                if max_cycles is not None and self.passes >= max_cycles:
                    logger.info("Reached max cycles (%s) -> terminating", max_cycles)
                    break
                stop.wait(self.seconds_until_due())
        except KeyboardInterrupt:
            logger.info("KeyboardInterrupt -> graceful shutdown")
        finally:
            logger.info("Scheduler terminated after %d pass(es)", self.passes)


__all__ = ["Scheduler", "ScheduledTask", "IntervalScheduler", "DEFAULT_INTERVAL"]
