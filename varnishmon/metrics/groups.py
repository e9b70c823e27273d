"""Metric category taxonomy + per-instance category selection.

Categories are toggled as a whole; the catalog decides which fields a category
covers. Resolution for one instance block:

  1. start from DEFAULT_ENABLED (cache, connections, backend, shm),
  2. apply each recognised ``Collect*`` option (case-insensitive) to its category only,
  3. warn about and skip unknown keys or non-boolean values,
  4. reject the instance if nothing is left enabled.

``sm`` and ``sma`` exist only in the legacy generation; for the current
generation their options are treated like any other unknown key.
"""
from __future__ import annotations

import logging
import warnings
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from varnishmon.enums import Generation
from varnishmon.errors import NoMetricsConfigured, UnknownConfigurationKey

logger = logging.getLogger(__name__)


class Category(str, Enum):
    # declaration order is the emission order
    CACHE = "cache"
    CONNECTIONS = "connections"
    ESI = "esi"
    BACKEND = "backend"
    FETCH = "fetch"
    HCB = "hcb"
    SHM = "shm"
    SM = "sm"
    SMA = "sma"
    SMS = "sms"
    TOTALS = "totals"
    WORKERS = "workers"


DEFAULT_ENABLED: frozenset[Category] = frozenset({
    Category.CACHE,
    Category.CONNECTIONS,
    Category.BACKEND,
    Category.SHM,
})

LEGACY_ONLY: frozenset[Category] = frozenset({Category.SM, Category.SMA})

OPTION_NAMES: dict[Category, str] = {
    Category.CACHE: "CollectCache",
    Category.CONNECTIONS: "CollectConnections",
    Category.ESI: "CollectESI",
    Category.BACKEND: "CollectBackend",
    Category.FETCH: "CollectFetch",
    Category.HCB: "CollectHCB",
    Category.SHM: "CollectSHM",
    Category.SM: "CollectSM",
    Category.SMA: "CollectSMA",
    Category.SMS: "CollectSMS",
    Category.TOTALS: "CollectTotals",
    Category.WORKERS: "CollectWorkers",
}


def categories_for(generation: Generation | str) -> tuple[Category, ...]:
    """Categories available in a generation, in emission order."""
    gen = Generation(generation)
    return tuple(c for c in Category if gen is Generation.LEGACY or c not in LEGACY_ONLY)


def option_keys(generation: Generation | str) -> dict[str, Category]:
    """Lower-cased option name -> category for the given generation."""
    return {OPTION_NAMES[c].lower(): c for c in categories_for(generation)}


def _warn_unknown(key: str, identity: str | None) -> None:
    msg = f"Ignoring unknown configuration option \"{key}\" for instance \"{identity or 'localhost'}\""
    logger.warning(msg)
    warnings.warn(msg, UnknownConfigurationKey, stacklevel=3)


@dataclass(frozen=True)
class CategorySelector:
    enabled: frozenset[Category]

    def __contains__(self, category: object) -> bool:
        return category in self.enabled

    def __bool__(self) -> bool:
        return bool(self.enabled)

    def ordered(self) -> list[Category]:
        """Enabled categories in emission order."""
        return [c for c in Category if c in self.enabled]

    @classmethod
    def defaults(cls) -> CategorySelector:
        return cls(DEFAULT_ENABLED)

    @classmethod
    def of(cls, categories: Iterable[Category | str]) -> CategorySelector:
        return cls(frozenset(Category(c) for c in categories))

    def validate(self, identity: str | None = None) -> CategorySelector:
        if not self.enabled:
            raise NoMetricsConfigured(
                f"No metric has been configured for instance \"{identity or 'localhost'}\". "
                "Disabling this instance.",
                identity,
            )
        return self

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, object] | None,
        generation: Generation | str = Generation.CURRENT,
        *,
        identity: str | None = None,
    ) -> CategorySelector:
        """Resolve defaults + ``Collect*`` overrides, then validate."""
        keys = option_keys(generation)
        enabled = set(DEFAULT_ENABLED)
        for key, value in (options or {}).items():
            category = keys.get(str(key).lower())
            if category is None:
                _warn_unknown(str(key), identity)
                continue
            if not isinstance(value, bool):
                logger.warning(
                    "Option \"%s\" for instance \"%s\" expects a boolean, got %r; keeping %s",
                    key, identity or 'localhost', value, category in enabled,
                )
                continue
            if value:
                enabled.add(category)
            else:
                enabled.discard(category)
        return cls(frozenset(enabled)).validate(identity)


__all__ = [
    "Category",
    "CategorySelector",
    "DEFAULT_ENABLED",
    "LEGACY_ONLY",
    "OPTION_NAMES",
    "categories_for",
    "option_keys",
]
