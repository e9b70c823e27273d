"""Instance registry: one scheduled collection task per monitored instance.

Registration fails closed:
  * an instance whose category selector is empty is never scheduled
    (``NoMetricsConfigured``);
  * only one default-identity instance may be registered per registry
    (``DuplicateDefaultInstance``).

The "default instance registered" flag lives on the registry value, so tests
(and embedding hosts) can build independent registries.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from varnishmon.errors import DuplicateDefaultInstance

from .cycle import CollectionCycle, CycleResult, InstanceState
from .instance import TASK_GROUP, InstanceConfig
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredInstance:
    config: InstanceConfig
    task_name: str
    scheduled: bool   # False when the scheduler already held a task of that name


class InstanceRegistry:
    def __init__(self, scheduler: Scheduler, cycle: CollectionCycle, *, interval: float | None = None):
        self.scheduler = scheduler
        self.cycle = cycle
        self.interval = interval
        self.has_default = False
        self._entries: dict[str, RegisteredInstance] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, task_name: object) -> bool:
        return task_name in self._entries

    @property
    def instances(self) -> list[RegisteredInstance]:
        return list(self._entries.values())

    def _task(self, config: InstanceConfig):
        cycle = self.cycle
        state = InstanceState()

        def collect() -> CycleResult:
            return cycle.run(config, state)

        collect.__name__ = f"collect[{config.label}]"
        return collect

    def register(self, config: InstanceConfig) -> RegisteredInstance:
        config.selector.validate(config.identity)
        if config.is_default and self.has_default:
            raise DuplicateDefaultInstance(
                "Only one default-identity varnish instance may be configured", None,
            )
        name = config.task_name
        existing = self._entries.get(name)
        if existing is not None:
            logger.warning("Instance %s declared more than once; keeping the first declaration", config.label)
            return existing
        scheduled = self.scheduler.register(name, self._task(config), group=TASK_GROUP, interval=self.interval)
        if not scheduled:
            logger.warning("Scheduler already has a task named %s; instance %s not rescheduled", name, config.label)
        entry = RegisteredInstance(config, name, scheduled)
        self._entries[name] = entry
        if config.is_default:
            self.has_default = True
        logger.info("Registered varnish instance %s (%s)", config.label,
                    ",".join(c.value for c in config.selector.ordered()))
        return entry

    def ensure_default(self) -> RegisteredInstance | None:
        """Register a default instance with default categories if nothing was registered."""
        if self._entries:
            return None
        return self.register(InstanceConfig())


__all__ = ["InstanceRegistry", "RegisteredInstance"]
