"""varnishmon - Varnish statistics collector.

Reads the varnish counter block (via varnishstat), maps a configurable set of
counter categories to stable metric names and ships them to collectd, a log,
or a Prometheus endpoint.
"""

from .version import __version__

__all__ = ["__version__"]
