"""varnishmon command line entry point.

Loads the configuration, registers one collection task per declared varnish
instance (or a default instance when none is declared) and drives them with
the in-process scheduler. With ``--exporter putval`` (the default) it speaks
the collectd exec plugin protocol on stdout.
"""
from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
import uuid

from prometheus_client import CollectorRegistry

from varnishmon.collectors import CollectionCycle, InstanceRegistry, IntervalScheduler
from varnishmon.config import CollectorSettings, LoadedConfig, load_config
from varnishmon.config.loader import EXPORTER_TYPES
from varnishmon.errors import ConfigurationRejected, ConfigValidationError
from varnishmon.metrics.self_metrics import CollectorMetrics
from varnishmon.metrics.sinks import LoggingSink, ObservationSink, PrometheusSink, PutvalSink, start_exporter
from varnishmon.source import VarnishstatAttachment
from varnishmon.utils import log_context as lc
from varnishmon.utils.logging_utils import setup_logging
from varnishmon.version import get_version

logger = logging.getLogger("varnishmon.main")


def _positive_float(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {raw!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {raw}")
    return value


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='varnishmon', description='Varnish statistics collector')
    parser.add_argument('--config', default=None,
                        help='Path to a JSON or YAML configuration file (default: environment + defaults)')
    parser.add_argument('--once', action='store_true',
                        help='Collect every instance once and exit')
    parser.add_argument('--max-cycles', type=int, default=None,
                        help='Stop after this many scheduler passes')
    parser.add_argument('--interval', type=_positive_float, default=None,
                        help='Collection interval in seconds (overrides config)')
    parser.add_argument('--exporter', choices=EXPORTER_TYPES, default=None,
                        help='Where observations go (overrides config; default: putval)')
    parser.add_argument('--metrics-port', type=int, default=None,
                        help='Port for the Prometheus exporter (implies --exporter prometheus)')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO', help='Set the logging level')
    parser.add_argument('--log-file', default=None, help='Optional log file path')
    parser.add_argument('--version', action='version', version=f'varnishmon {get_version()}')
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> LoadedConfig:
    if args.config:
        cfg = load_config(args.config)
    else:
        cfg = LoadedConfig(settings=CollectorSettings.load())
    if args.interval is not None:
        cfg.settings.interval = args.interval
    if args.metrics_port:
        cfg.exporter.type = 'prometheus'
        cfg.exporter.port = args.metrics_port
    elif args.exporter:
        cfg.exporter.type = args.exporter
    return cfg


def build_sink(cfg: LoadedConfig, registry: CollectorRegistry) -> ObservationSink:
    kind = cfg.exporter.type
    if kind == 'prometheus':
        sink = PrometheusSink(registry)
        start_exporter(registry, cfg.exporter.port, cfg.exporter.host)
        return sink
    if kind == 'log':
        return LoggingSink()
    return PutvalSink(sys.stdout, interval=cfg.settings.interval)


def build_registry(cfg: LoadedConfig, sink: ObservationSink, scheduler: IntervalScheduler,
                   metrics: CollectorMetrics | None = None) -> InstanceRegistry:
    s = cfg.settings
    attachment = VarnishstatAttachment(s.generation, binary=s.varnishstat_bin, timeout=s.varnishstat_timeout)
    cycle = CollectionCycle(attachment, sink, s.hostname, metrics=metrics)
    registry = InstanceRegistry(scheduler, cycle, interval=s.interval)
    for inst in cfg.instances:
        try:
            registry.register(inst)
        except ConfigurationRejected as e:
            logger.warning("Instance %s rejected: %s", inst.label, e)
    if registry.ensure_default() is not None:
        logger.info("No instance registered from configuration; collecting the default instance")
    return registry


def _install_signal_handlers(stop: threading.Event) -> None:
    def _handler(signum, _frame):
        logger.info("Signal %s received; stopping", signum)
        stop.set()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            signal.signal(sig, _handler)
        except (ValueError, OSError):  # not in main thread / unsupported platform
            pass


def main(argv: list[str] | None = None) -> int:
    args = parse_arguments(argv)
    setup_logging(args.log_level, args.log_file)
    lc.set_context(run_id=uuid.uuid4().hex[:8], component='main')
    logger.info("varnishmon %s starting", get_version())

    try:
        cfg = resolve_config(args)
    except ConfigValidationError as e:
        logger.error("%s", e)
        return 2

    prom_registry = CollectorRegistry()
    metrics = CollectorMetrics(prom_registry)
    sink = build_sink(cfg, prom_registry)
    scheduler = IntervalScheduler(cfg.settings.interval)
    build_registry(cfg, sink, scheduler, metrics)

    if args.once:
        scheduler.run_once()
        return 0

    stop = threading.Event()
    _install_signal_handlers(stop)
    scheduler.run_forever(stop, max_cycles=args.max_cycles)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
