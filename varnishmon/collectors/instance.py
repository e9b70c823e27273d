"""Per-instance configuration record."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from varnishmon.enums import Generation
from varnishmon.metrics.groups import CategorySelector

DEFAULT_IDENTITY_NAME = "localhost"
TASK_GROUP = "varnish"


def normalize_identity(name: str | None) -> str | None:
    """Map the literal default name (and empty/None) to the default identity (None)."""
    if name is None:
        return None
    name = name.strip()
    if not name or name == DEFAULT_IDENTITY_NAME:
        return None
    return name


@dataclass(frozen=True)
class InstanceConfig:
    identity: str | None = None
    selector: CategorySelector = field(default_factory=CategorySelector.defaults)

    def __post_init__(self) -> None:
        object.__setattr__(self, "identity", normalize_identity(self.identity))

    @property
    def is_default(self) -> bool:
        return self.identity is None

    @property
    def label(self) -> str:
        return self.identity or DEFAULT_IDENTITY_NAME

    @property
    def task_name(self) -> str:
        """Scheduler task name; stable per identity so repeated declarations collide."""
        return f"{TASK_GROUP}/{self.label}"

    @classmethod
    def from_block(cls, name: str | None, options: Mapping[str, object] | None,
                   generation: Generation | str = Generation.CURRENT) -> InstanceConfig:
        """Build from one instance block; raises NoMetricsConfigured if nothing is enabled."""
        identity = normalize_identity(name)
        selector = CategorySelector.from_options(options, generation, identity=identity)
        return cls(identity, selector)


__all__ = ["InstanceConfig", "normalize_identity", "DEFAULT_IDENTITY_NAME", "TASK_GROUP"]
