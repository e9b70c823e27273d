"""Unified logging utilities for varnishmon."""
from __future__ import annotations

import logging
import os
import sys
import time

import orjson

from . import log_context as _lc
from .env_flags import is_truthy_env

DEFAULT_FORMAT = '%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s'
# Minimal console format (message only) used for cleaner terminal output.
MINIMAL_CONSOLE_FORMAT = '%(levelname)s %(message)s'


class JsonFormatter(logging.Formatter):
    """One JSON object per record, carrying the active log context."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'ts': getattr(record, 'created', time.time()),
            'level': record.levelname,
            'logger': record.name,
            'thread': record.threadName,
            'msg': record.getMessage(),
            'ctx': _lc.get_context() or None,
        }
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode('utf-8')


class ContextFilter(logging.Filter):
    """Expose log context fields as record attributes for formatters that include them."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = _lc.get_context()
        for k in _lc.CONTEXT_KEYS:
            if k in ctx and not hasattr(record, k):
                setattr(record, k, ctx[k])
        return True


def setup_logging(level: str = 'INFO', log_file: str | None = None, fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """Configure root logging.

    Console handler: by default uses the minimal format. Override via env
    VARNISHMON_VERBOSE_CONSOLE=1 (restores full DEFAULT_FORMAT) or explicitly
    pass a fmt argument. VARNISHMON_JSON_LOGS=1 switches the console to JSON lines.

    File handler (if enabled) always uses full DEFAULT_FORMAT for diagnostics.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(log_level)
    # Remove existing handlers to avoid duplication on re-init
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.flush()
        h.close()

    if fmt != DEFAULT_FORMAT:
        console_fmt = fmt
    elif is_truthy_env('VARNISHMON_VERBOSE_CONSOLE'):
        console_fmt = DEFAULT_FORMAT
    else:
        console_fmt = MINIMAL_CONSOLE_FORMAT

    # stderr: stdout may carry PUTVAL lines when running under collectd's exec plugin
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(log_level)
    console.addFilter(ContextFilter())
    if is_truthy_env('VARNISHMON_JSON_LOGS'):
        console.setFormatter(JsonFormatter())
    else:
        console.setFormatter(logging.Formatter(console_fmt))
    root.addHandler(console)

    if log_file:
        try:
            parent = os.path.dirname(log_file)
            if parent:
                os.makedirs(parent, exist_ok=True)
            fh = logging.FileHandler(log_file, encoding='utf-8')
        except OSError as e:
            root.error("Failed to create log file handler for %s: %s", log_file, e)
        else:
            fh.setLevel(log_level)
            fh.addFilter(ContextFilter())
            fh.setFormatter(logging.Formatter(DEFAULT_FORMAT))
            root.addHandler(fh)

    return root


__all__ = ["setup_logging", "JsonFormatter", "ContextFilter", "DEFAULT_FORMAT"]
