"""Per-instance collection: configuration records, cycles, registry, scheduling."""
from __future__ import annotations

from .cycle import CollectionCycle, CycleResult, InstanceState
from .instance import InstanceConfig, normalize_identity
from .registry import InstanceRegistry, RegisteredInstance
from .scheduler import IntervalScheduler, Scheduler

__all__ = [
    "CollectionCycle",
    "CycleResult",
    "InstanceState",
    "InstanceConfig",
    "normalize_identity",
    "InstanceRegistry",
    "RegisteredInstance",
    "IntervalScheduler",
    "Scheduler",
]
