"""Declarative metric catalog.

One ``MetricDef`` per published metric: the category that gates it, the
source field it reads, the published name (deliberately a human-readable
label, not the field identifier) and the published kind. Table order is the
emission order within a category.

Generation-exclusive fields are marked with ``generations``; the snapshot
layout is the real gate (a field the layout lacks is never present), the marker
documents the catalog and lets tests cross-check it against the layouts.

Kind caveats (``note`` set): the source reports these fields as instantaneous
levels but they are published as counters, as they always have been:
``sm_nobj``, ``sma_nobj``, ``sms_nobj``, ``n_wrk_queue``. ``n_wrk_overflow`` is
cumulative in the source; its pairing with ``n_wrk_queue`` makes the
interpretation of both questionable.
"""
from __future__ import annotations

from dataclasses import dataclass

from varnishmon.enums import Generation, MetricKind

from .groups import Category

_LEGACY = frozenset({Generation.LEGACY})
_ALL = frozenset(Generation)

_KIND_NOTE = "instantaneous in the source block, published as a counter"


@dataclass(frozen=True)
class MetricDef:
    category: Category
    field: str                # source counter field
    name: str                 # published metric name (type instance)
    kind: MetricKind
    doc: str
    generations: frozenset[Generation] = _ALL
    note: str | None = None


def _c(category: Category, field: str, name: str, doc: str, **kw) -> MetricDef:
    return MetricDef(category, field, name, MetricKind.COUNTER, doc, **kw)


def _g(category: Category, field: str, name: str, doc: str, **kw) -> MetricDef:
    return MetricDef(category, field, name, MetricKind.GAUGE, doc, **kw)


C = Category

METRIC_CATALOG: tuple[MetricDef, ...] = (
    # --- cache ---
    _c(C.CACHE, "cache_hit", "cache_hit", "Cache hits"),
    _c(C.CACHE, "cache_miss", "cache_miss", "Cache misses"),
    _c(C.CACHE, "cache_hitpass", "cache_hitpass", "Cache hits for pass"),
    # --- connections ---
    _c(C.CONNECTIONS, "client_conn", "client_connections-accepted", "Client connections accepted"),
    _c(C.CONNECTIONS, "client_drop", "client_connections-dropped", "Connection dropped, no sess"),
    _c(C.CONNECTIONS, "client_req", "client_requests-received", "Client requests received"),
    # --- esi ---
    _c(C.ESI, "esi_errors", "esi_errors", "ESI parse errors (unlock)"),
    _c(C.ESI, "esi_parse", "esi_parsed", "Objects ESI parsed (unlock)", generations=_LEGACY),
    # --- backend ---
    _c(C.BACKEND, "backend_conn", "backend_connections-success", "Backend conn. success"),
    _c(C.BACKEND, "backend_unhealthy", "backend_connections-not-attempted", "Backend conn. not attempted"),
    _c(C.BACKEND, "backend_busy", "backend_connections-too-many", "Backend conn. too many"),
    _c(C.BACKEND, "backend_fail", "backend_connections-failures", "Backend conn. failures"),
    _c(C.BACKEND, "backend_reuse", "backend_connections-reuses", "Backend conn. reuses"),
    _c(C.BACKEND, "backend_toolate", "backend_connections-was-closed", "Backend conn. was closed"),
    _c(C.BACKEND, "backend_recycle", "backend_connections-recycles", "Backend conn. recycles"),
    _c(C.BACKEND, "backend_unused", "backend_connections-unused", "Backend conn. unused", generations=_LEGACY),
    # --- fetch ---
    _c(C.FETCH, "fetch_head", "fetch_head", "Fetch head"),
    _c(C.FETCH, "fetch_length", "fetch_length", "Fetch with length"),
    _c(C.FETCH, "fetch_chunked", "fetch_chunked", "Fetch chunked"),
    _c(C.FETCH, "fetch_eof", "fetch_eof", "Fetch EOF"),
    _c(C.FETCH, "fetch_bad", "fetch_bad-headers", "Fetch bad headers"),
    _c(C.FETCH, "fetch_close", "fetch_close", "Fetch wanted close"),
    _c(C.FETCH, "fetch_oldhttp", "fetch_oldhttp", "Fetch pre HTTP/1.1 closed"),
    _c(C.FETCH, "fetch_zero", "fetch_zero", "Fetch zero len"),
    _c(C.FETCH, "fetch_failed", "fetch_failed", "Fetch failed"),
    # --- hcb ---
    _c(C.HCB, "hcb_nolock", "hcb_nolock", "HCB Lookups without lock"),
    _c(C.HCB, "hcb_lock", "hcb_lock", "HCB Lookups with lock"),
    _c(C.HCB, "hcb_insert", "hcb_insert", "HCB Inserts"),
    # --- shm ---
    _c(C.SHM, "shm_records", "shm_records", "SHM records"),
    _c(C.SHM, "shm_writes", "shm_writes", "SHM writes"),
    _c(C.SHM, "shm_flushes", "shm_flushes", "SHM flushes due to overflow"),
    _c(C.SHM, "shm_cont", "shm_contention", "SHM MTX contention"),
    _c(C.SHM, "shm_cycles", "shm_cycles", "SHM cycles through buffer"),
    # --- sm (legacy) ---
    _c(C.SM, "sm_nreq", "sm_nreq", "allocator requests", generations=_LEGACY),
    _c(C.SM, "sm_nobj", "sm_nobj", "outstanding allocations", generations=_LEGACY, note=_KIND_NOTE),
    _g(C.SM, "sm_balloc", "sm_balloc", "bytes allocated", generations=_LEGACY),
    _g(C.SM, "sm_bfree", "sm_bfree", "bytes free", generations=_LEGACY),
    # --- sma (legacy) ---
    _c(C.SMA, "sma_nreq", "sma_req", "SMA allocator requests", generations=_LEGACY),
    _c(C.SMA, "sma_nobj", "sma_nobj", "SMA outstanding allocations", generations=_LEGACY, note=_KIND_NOTE),
    _g(C.SMA, "sma_nbytes", "sma_nbytes", "SMA outstanding bytes", generations=_LEGACY),
    _g(C.SMA, "sma_balloc", "sma_balloc", "SMA bytes allocated", generations=_LEGACY),
    _g(C.SMA, "sma_bfree", "sma_bfree", "SMA bytes free", generations=_LEGACY),
    # --- sms ---
    _c(C.SMS, "sms_nreq", "sms_nreq", "SMS allocator requests"),
    _c(C.SMS, "sms_nobj", "sms_nobj", "SMS outstanding allocations", note=_KIND_NOTE),
    _g(C.SMS, "sms_nbytes", "sms_nbytes", "SMS outstanding bytes"),
    _g(C.SMS, "sms_balloc", "sms_balloc", "SMS bytes allocated"),
    _g(C.SMS, "sms_bfree", "sms_bfree", "SMS bytes freed"),
    # --- totals ---
    _c(C.TOTALS, "s_sess", "sessions", "Total Sessions"),
    _c(C.TOTALS, "s_req", "requests", "Total Requests"),
    _c(C.TOTALS, "s_pipe", "pipe", "Total pipe"),
    _c(C.TOTALS, "s_pass", "pass", "Total pass"),
    _c(C.TOTALS, "s_fetch", "fetches", "Total fetch"),
    _c(C.TOTALS, "s_hdrbytes", "header-bytes", "Total header bytes"),
    _c(C.TOTALS, "s_bodybytes", "body-bytes", "Total body bytes"),
    # --- workers ---
    _g(C.WORKERS, "n_wrk", "threads", "worker threads"),
    _c(C.WORKERS, "n_wrk_create", "threads_created", "worker threads created"),
    _c(C.WORKERS, "n_wrk_failed", "threads_failed", "worker threads not created"),
    _c(C.WORKERS, "n_wrk_max", "threads_limited", "worker threads limited"),
    _c(C.WORKERS, "n_wrk_drop", "requests_dropped", "dropped work requests"),
    _c(C.WORKERS, "n_wrk_queue", "requests_queued", "queued work requests",
       generations=_LEGACY, note=_KIND_NOTE),
    _c(C.WORKERS, "n_wrk_overflow", "requests_overflowed", "overflowed work requests",
       generations=_LEGACY, note="cumulative in the source; meaning alongside requests_queued unclear"),
)

del C


def _index() -> dict[Category, tuple[MetricDef, ...]]:
    by_cat: dict[Category, list[MetricDef]] = {c: [] for c in Category}
    for d in METRIC_CATALOG:
        by_cat[d.category].append(d)
    return {c: tuple(defs) for c, defs in by_cat.items()}


CATALOG_BY_CATEGORY: dict[Category, tuple[MetricDef, ...]] = _index()


def defs_for(category: Category) -> tuple[MetricDef, ...]:
    return CATALOG_BY_CATEGORY[category]


def find(name: str) -> MetricDef | None:
    """Look up a definition by published metric name."""
    for d in METRIC_CATALOG:
        if d.name == name:
            return d
    return None


__all__ = [
    "MetricDef",
    "METRIC_CATALOG",
    "CATALOG_BY_CATEGORY",
    "defs_for",
    "find",
]
