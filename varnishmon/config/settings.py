"""CollectorSettings: single-pass environment hydration for runtime defaults.

Environment variables supply defaults; a configuration file, when given,
overrides them key by key (see ``varnishmon.config.loader``).

  VARNISHMON_HOSTNAME             host identity on every observation (default: socket.gethostname())
  VARNISHMON_INTERVAL             collection interval in seconds (default 10)
  VARNISHMON_GENERATION           legacy | current (default current)
  VARNISHMON_VARNISHSTAT_BIN      varnishstat executable (default "varnishstat")
  VARNISHMON_VARNISHSTAT_TIMEOUT  seconds before an acquisition is abandoned (default 5)
"""
from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field

from varnishmon.enums import Generation
from varnishmon.source.attach import DEFAULT_BINARY, DEFAULT_TIMEOUT
from varnishmon.utils.env_flags import get_float, get_str

logger = logging.getLogger(__name__)


def _generation(raw: str) -> Generation:
    try:
        return Generation(raw.strip().lower())
    except ValueError:
        logger.warning("Invalid VARNISHMON_GENERATION=%r (expected legacy|current); using current", raw)
        return Generation.CURRENT


def _positive(name: str, default: float) -> float:
    val = get_float(name, default)
    if val <= 0:
        logger.warning("Ignoring non-positive %s=%s", name, val)
        return default
    return val


@dataclass(slots=True)
class CollectorSettings:
    hostname: str = field(default_factory=socket.gethostname)
    interval: float = 10.0
    generation: Generation = Generation.CURRENT
    varnishstat_bin: str = DEFAULT_BINARY
    varnishstat_timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def load(cls) -> CollectorSettings:
        return cls(
            hostname=get_str('VARNISHMON_HOSTNAME', '') or socket.gethostname(),
            interval=_positive('VARNISHMON_INTERVAL', 10.0),
            generation=_generation(get_str('VARNISHMON_GENERATION', Generation.CURRENT.value)),
            varnishstat_bin=get_str('VARNISHMON_VARNISHSTAT_BIN', '') or DEFAULT_BINARY,
            varnishstat_timeout=_positive('VARNISHMON_VARNISHSTAT_TIMEOUT', DEFAULT_TIMEOUT),
        )


__all__ = ["CollectorSettings"]
