"""Metric observation record handed to sinks."""
from __future__ import annotations

from dataclasses import dataclass

from varnishmon.enums import MetricKind

PLUGIN_NAME = "varnish"


@dataclass(frozen=True, slots=True)
class MetricObservation:
    host: str
    plugin_instance: str | None   # None for the default identity
    kind: MetricKind
    name: str                     # collectd type instance, e.g. "client_connections-accepted"
    value: int | float
    plugin: str = PLUGIN_NAME

    @property
    def type(self) -> str:
        return self.kind.value

    def identifier(self) -> str:
        """collectd value identifier: host/plugin[-instance]/type-type_instance."""
        plugin = self.plugin if not self.plugin_instance else f"{self.plugin}-{self.plugin_instance}"
        return f"{self.host}/{plugin}/{self.kind.value}-{self.name}"


__all__ = ["PLUGIN_NAME", "MetricKind", "MetricObservation"]
