"""Attachment to a varnish instance's counter block.

The core only needs an open/close pair (``SourceAttachment``); the shipped
implementation shells out to ``varnishstat``, which maps the instance's shared
memory log and dumps the counters once:

  legacy  (2.x)  varnishstat -1 [-n NAME]   -> "field  value  rate  description" lines
  current (3.x)  varnishstat -j [-n NAME]   -> JSON object keyed by field

Every failure to obtain a parseable reading surfaces as ``SourceUnavailable``.
The subprocess timeout bounds how long an acquisition may take.
"""
from __future__ import annotations

import json
import logging
import subprocess
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

from varnishmon.errors import SourceUnavailable

from .snapshot import CounterSnapshot, Generation, layout_for

logger = logging.getLogger(__name__)

DEFAULT_BINARY = "varnishstat"
DEFAULT_TIMEOUT = 5.0


class SourceAttachment(Protocol):
    def open(self, identity: str | None) -> CounterSnapshot: ...
    def close(self, snapshot: CounterSnapshot) -> None: ...


@contextmanager
def acquire(attachment: SourceAttachment, identity: str | None) -> Iterator[CounterSnapshot]:
    """Open a snapshot and guarantee it is closed on every exit path."""
    snapshot = attachment.open(identity)
    try:
        yield snapshot
    finally:
        attachment.close(snapshot)


def _number(raw: str) -> int | float | None:
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        return None


def parse_one_shot(text: str) -> dict[str, int | float]:
    """Parse ``varnishstat -1`` output into field -> value.

    Lines look like ``client_conn   1024   0.51 Client connections accepted``;
    anything without a numeric second column is skipped.
    """
    values: dict[str, int | float] = {}
    for line in text.splitlines():
        parts = line.split(None, 2)
        if len(parts) < 2:
            continue
        num = _number(parts[1])
        if num is None:
            continue
        values[parts[0]] = num
    return values


def parse_json(text: str) -> dict[str, int | float]:
    """Parse ``varnishstat -j`` output into field -> value for the main section.

    Main counters appear either bare (``client_conn``) or prefixed
    (``MAIN.client_conn``); entries carrying another ``type`` (SMA, LCK, VBE...)
    belong to other sections and are skipped.
    """
    try:
        doc = json.loads(text)
    except ValueError as e:
        raise SourceUnavailable(f"varnishstat produced invalid JSON: {e}") from e
    if not isinstance(doc, dict):
        raise SourceUnavailable("varnishstat JSON output is not an object")
    values: dict[str, int | float] = {}
    for key, entry in doc.items():
        if not isinstance(entry, dict) or 'value' not in entry:
            continue
        section = entry.get('type') or ''
        if key.startswith('MAIN.'):
            key = key[len('MAIN.'):]
        elif section and section != 'MAIN':
            continue
        elif '.' in key:
            continue
        value = entry['value']
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            values[key] = value
    return values


class VarnishstatAttachment:
    """Attachment backed by one ``varnishstat`` invocation per acquisition."""

    def __init__(self, generation: Generation | str = Generation.CURRENT, *,
                 binary: str = DEFAULT_BINARY, timeout: float = DEFAULT_TIMEOUT):
        self.layout = layout_for(generation)
        self.binary = binary
        self.timeout = timeout

    @property
    def generation(self) -> Generation:
        return self.layout.generation

    def command(self, identity: str | None) -> list[str]:
        cmd = [self.binary, '-1' if self.generation is Generation.LEGACY else '-j']
        if identity:
            cmd.extend(['-n', identity])
        return cmd

    def open(self, identity: str | None) -> CounterSnapshot:
        cmd = self.command(identity)
        label = identity or 'localhost'
        try:
            # description columns are free text and not always valid UTF-8
            proc = subprocess.run(cmd, capture_output=True, text=True, errors="replace",
                                  timeout=self.timeout, check=False)
        except FileNotFoundError as e:
            raise SourceUnavailable(f"{self.binary} not found", identity) from e
        except subprocess.TimeoutExpired as e:
            raise SourceUnavailable(f"{self.binary} timed out after {self.timeout}s for instance {label}", identity) from e
        except OSError as e:
            raise SourceUnavailable(f"unable to run {self.binary}: {e}", identity) from e
        if proc.returncode != 0:
            detail = (proc.stderr or '').strip().splitlines()
            raise SourceUnavailable(
                f"{self.binary} exited {proc.returncode} for instance {label}: {detail[-1] if detail else 'no output'}",
                identity,
            )
        if self.generation is Generation.LEGACY:
            values = parse_one_shot(proc.stdout)
        else:
            values = parse_json(proc.stdout)
        if not values:
            raise SourceUnavailable(f"no counters found for instance {label}", identity)
        logger.debug("varnishstat read %d fields for %s", len(values), label)
        return CounterSnapshot(self.layout, values, identity=identity)

    def close(self, snapshot: CounterSnapshot) -> None:
        snapshot.release()


__all__ = [
    "SourceAttachment",
    "VarnishstatAttachment",
    "acquire",
    "parse_one_shot",
    "parse_json",
    "DEFAULT_BINARY",
    "DEFAULT_TIMEOUT",
]
