"""Config loading & normalization entrypoint.

Responsibilities:
  * Load the raw file (JSON, or YAML for .yaml/.yml).
  * Validate its structure against the packaged ``schema_v1.json`` (hard error).
  * Layer file values over environment defaults (``CollectorSettings``).
  * Turn each instance block into an ``InstanceConfig``; blocks that end up with
    no enabled category are reported in ``rejected`` and never scheduled.
    Unknown ``Collect*`` keys only warn.

Public API:
  load_config(path, settings=None) -> LoadedConfig
  parse_config(raw, settings=None) -> LoadedConfig
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from varnishmon.collectors.instance import InstanceConfig
from varnishmon.enums import Generation
from varnishmon.errors import ConfigValidationError, NoMetricsConfigured

from .settings import CollectorSettings

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema_v1.json")

EXPORTER_TYPES = ("putval", "log", "prometheus")


@dataclass
class ExporterConfig:
    type: str = "putval"
    host: str = "0.0.0.0"
    port: int = 9131


@dataclass
class LoadedConfig:
    settings: CollectorSettings
    exporter: ExporterConfig = field(default_factory=ExporterConfig)
    instances: list[InstanceConfig] = field(default_factory=list)
    rejected: list[NoMetricsConfigured] = field(default_factory=list)


def _load_schema() -> dict[str, Any]:
    try:
        with SCHEMA_PATH.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as e:  # pragma: no cover - packaging defect
        raise ConfigValidationError(f"Failed to load schema: {e}") from e


def validate_config(cfg: Any) -> None:
    try:
        jsonschema.validate(instance=cfg, schema=_load_schema())
    except jsonschema.ValidationError as e:
        where = '/'.join(str(p) for p in e.path) or '<root>'
        raise ConfigValidationError(f"Config schema validation error: {e.message} (path: {where})") from e


def _read(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigValidationError(f"Cannot read config file {path}: {e}") from e
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            return yaml.safe_load(text) or {}
        return json.loads(text)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigValidationError(f"Cannot parse config file {path}: {e}") from e


def parse_config(raw: dict[str, Any], settings: CollectorSettings | None = None) -> LoadedConfig:
    validate_config(raw)
    base = settings if settings is not None else CollectorSettings.load()
    vs = raw.get("varnishstat") or {}
    merged = CollectorSettings(
        hostname=raw.get("hostname", base.hostname),
        interval=float(raw.get("interval_seconds", base.interval)),
        generation=Generation(raw.get("generation", base.generation)),
        varnishstat_bin=vs.get("binary", base.varnishstat_bin),
        varnishstat_timeout=float(vs.get("timeout_seconds", base.varnishstat_timeout)),
    )
    exp = raw.get("exporter") or {}
    defaults = ExporterConfig()
    exporter = ExporterConfig(
        type=exp.get("type", defaults.type),
        host=exp.get("host", defaults.host),
        port=int(exp.get("port", defaults.port)),
    )
    loaded = LoadedConfig(settings=merged, exporter=exporter)
    for block in raw.get("instances") or []:
        try:
            inst = InstanceConfig.from_block(block.get("name"), block.get("options"), merged.generation)
        except NoMetricsConfigured as e:
            logger.warning("%s", e)
            loaded.rejected.append(e)
            continue
        loaded.instances.append(inst)
    logger.info(
        "Configuration loaded: generation=%s interval=%ss instances=%d rejected=%d",
        merged.generation.value, merged.interval, len(loaded.instances), len(loaded.rejected),
    )
    return loaded


def load_config(path: str | os.PathLike[str], settings: CollectorSettings | None = None) -> LoadedConfig:
    p = Path(path)
    raw = _read(p)
    if not isinstance(raw, dict):
        raise ConfigValidationError(f"Config file {p} must contain a mapping at the top level")
    return parse_config(raw, settings)


__all__ = [
    "ExporterConfig",
    "LoadedConfig",
    "load_config",
    "parse_config",
    "validate_config",
    "SCHEMA_PATH",
    "EXPORTER_TYPES",
]
