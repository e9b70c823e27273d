"""Translate a counter snapshot into an ordered list of metric observations."""
from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

from .catalog import MetricDef, defs_for
from .groups import CategorySelector
from .observation import MetricObservation

if TYPE_CHECKING:
    from varnishmon.source.snapshot import CounterSnapshot


def iter_present(selector: CategorySelector, snapshot: CounterSnapshot) -> Iterator[tuple[MetricDef, int | float]]:
    """Yield (definition, value) for every enabled, present field in emission order."""
    for category in selector.ordered():
        for d in defs_for(category):
            fv = snapshot.get(d.field)
            if fv is None:
                continue
            yield d, fv.value


def emit(selector: CategorySelector, snapshot: CounterSnapshot, *, host: str,
         identity: str | None = None) -> list[MetricObservation]:
    """Build one observation per enabled, present catalog field.

    The observation kind is the catalog's, never the storage kind the snapshot
    reports for the field. An enabled category whose fields are all absent
    contributes nothing.
    """
    return [
        MetricObservation(host=host, plugin_instance=identity or None, kind=d.kind, name=d.name, value=value)
        for d, value in iter_present(selector, snapshot)
    ]


__all__ = ["emit", "iter_present"]
