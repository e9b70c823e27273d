"""Configuration: environment defaults and the validated config file."""
from __future__ import annotations

from .loader import ExporterConfig, LoadedConfig, load_config, parse_config
from .settings import CollectorSettings

__all__ = ["CollectorSettings", "ExporterConfig", "LoadedConfig", "load_config", "parse_config"]
