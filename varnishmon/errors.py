"""varnishmon exception hierarchy.

Small, explicit exception tree so callers can tell a rejected instance
declaration (never scheduled, surfaced once at load time) apart from a
per-cycle source outage (logged, recovered by the next scheduled tick).

Classes:
  ConfigurationRejected    - instance declaration refused at registration time.
    NoMetricsConfigured    - category selector ended up with nothing enabled.
    DuplicateDefaultInstance - a second default-identity instance was declared.
  SourceUnavailable        - counter block could not be opened / located / parsed.
  ConfigValidationError    - configuration file is structurally invalid.
  UnknownConfigurationKey  - warning category for ignored option keys.

Helper:
  classify_exception(e) -> str  ('rejected'|'unavailable'|'config'|'unknown')
"""
from __future__ import annotations


class VarnishmonError(Exception):
    """Base class for all varnishmon exceptions."""


class ConfigurationRejected(VarnishmonError):
    """Instance declaration refused; the instance is never scheduled."""

    def __init__(self, message: str, identity: str | None = None):
        super().__init__(message)
        self.identity = identity


class NoMetricsConfigured(ConfigurationRejected):
    """Every category is disabled for the instance."""


class DuplicateDefaultInstance(ConfigurationRejected):
    """Only one default-identity instance may be registered."""


class SourceUnavailable(VarnishmonError):
    """Counter block of the source process could not be read this cycle."""

    def __init__(self, message: str, identity: str | None = None):
        super().__init__(message)
        self.identity = identity


class ConfigValidationError(VarnishmonError):
    """Raised when a configuration file fails schema validation."""


class UnknownConfigurationKey(UserWarning):
    """Configuration option that is not understood and was ignored."""


def classify_exception(exc: BaseException) -> str:
    if isinstance(exc, ConfigurationRejected):
        return 'rejected'
    if isinstance(exc, SourceUnavailable):
        return 'unavailable'
    if isinstance(exc, ConfigValidationError):
        return 'config'
    return 'unknown'


__all__ = [
    "VarnishmonError",
    "ConfigurationRejected",
    "NoMetricsConfigured",
    "DuplicateDefaultInstance",
    "SourceUnavailable",
    "ConfigValidationError",
    "UnknownConfigurationKey",
    "classify_exception",
]
