"""Counter block access: layouts, snapshots and the varnishstat attachment."""
from __future__ import annotations

from .attach import SourceAttachment, VarnishstatAttachment, acquire
from .snapshot import LAYOUTS, CounterSnapshot, FieldValue, Generation, Layout, layout_for

__all__ = [
    "SourceAttachment",
    "VarnishstatAttachment",
    "acquire",
    "LAYOUTS",
    "CounterSnapshot",
    "FieldValue",
    "Generation",
    "Layout",
    "layout_for",
]
