"""Counter block layouts and the read-only snapshot view over one reading.

Two physical layouts exist, one per varnish API generation:

  Generation.LEGACY   varnish 2.x ``struct varnish_stats`` (``varnishstat -1``)
  Generation.CURRENT  varnish 3.x ``struct VSC_C_main``     (``varnishstat -j``)

Both are plain ``Layout`` records in ``LAYOUTS`` so the two can coexist in one
process and be exercised against fixed fixtures. A layout fixes which fields
exist and the storage kind the source reports for each ('a' accumulating ->
COUNTER, 'i' instantaneous -> GAUGE). The published kind of a metric comes from
the catalog, not from here.
"""
from __future__ import annotations

import numbers
from collections.abc import Mapping
from dataclasses import dataclass

from varnishmon.enums import Generation, MetricKind

_a = MetricKind.COUNTER
_i = MetricKind.GAUGE


@dataclass(frozen=True)
class Layout:
    generation: Generation
    fields: Mapping[str, MetricKind]   # insertion order == source struct order

    def __contains__(self, field: object) -> bool:
        return field in self.fields


_LEGACY_FIELDS: tuple[tuple[str, MetricKind], ...] = (
    ("client_conn", _a), ("client_drop", _a), ("client_req", _a),
    ("cache_hit", _a), ("cache_hitpass", _a), ("cache_miss", _a),
    ("backend_conn", _a), ("backend_unhealthy", _a), ("backend_busy", _a),
    ("backend_fail", _a), ("backend_reuse", _a), ("backend_toolate", _a),
    ("backend_recycle", _a), ("backend_unused", _a),
    ("fetch_head", _a), ("fetch_length", _a), ("fetch_chunked", _a),
    ("fetch_eof", _a), ("fetch_bad", _a), ("fetch_close", _a),
    ("fetch_oldhttp", _a), ("fetch_zero", _a), ("fetch_failed", _a),
    ("n_sess_mem", _i), ("n_sess", _i), ("n_object", _i),
    ("n_vampireobject", _i), ("n_objectcore", _i), ("n_objecthead", _i),
    ("n_smf", _i), ("n_smf_frag", _i), ("n_smf_large", _i), ("n_vbe_conn", _i),
    ("n_wrk", _i), ("n_wrk_create", _a), ("n_wrk_failed", _a), ("n_wrk_max", _a),
    ("n_wrk_queue", _i), ("n_wrk_overflow", _a), ("n_wrk_drop", _a),
    ("n_backend", _i), ("n_expired", _i), ("n_lru_nuked", _i),
    ("n_lru_saved", _i), ("n_lru_moved", _i), ("n_deathrow", _i),
    ("losthdr", _a), ("n_objsendfile", _a), ("n_objwrite", _a), ("n_objoverflow", _a),
    ("s_sess", _a), ("s_req", _a), ("s_pipe", _a), ("s_pass", _a), ("s_fetch", _a),
    ("s_hdrbytes", _a), ("s_bodybytes", _a),
    ("sess_closed", _a), ("sess_pipeline", _a), ("sess_readahead", _a),
    ("sess_linger", _a), ("sess_herd", _a),
    ("shm_records", _a), ("shm_writes", _a), ("shm_flushes", _a),
    ("shm_cont", _a), ("shm_cycles", _a),
    ("sm_nreq", _a), ("sm_nobj", _i), ("sm_balloc", _i), ("sm_bfree", _i),
    ("sma_nreq", _a), ("sma_nobj", _i), ("sma_nbytes", _i), ("sma_balloc", _i), ("sma_bfree", _i),
    ("sms_nreq", _a), ("sms_nobj", _i), ("sms_nbytes", _i), ("sms_balloc", _i), ("sms_bfree", _i),
    ("backend_req", _a), ("n_vcl", _a), ("n_vcl_avail", _a), ("n_vcl_discard", _a),
    ("n_purge", _i), ("n_purge_add", _a), ("n_purge_retire", _a),
    ("n_purge_obj_test", _a), ("n_purge_re_test", _a), ("n_purge_dups", _a),
    ("hcb_nolock", _a), ("hcb_lock", _a), ("hcb_insert", _a),
    ("esi_parse", _a), ("esi_errors", _a),
    ("uptime", _a),
)

# varnish 3.x dropped the global sm/sma allocators (per-stevedore sections now),
# backend_unused, esi_parse and the n_wrk_queue/n_wrk_overflow pair.
_CURRENT_FIELDS: tuple[tuple[str, MetricKind], ...] = (
    ("client_conn", _a), ("client_drop", _a), ("client_req", _a),
    ("cache_hit", _a), ("cache_hitpass", _a), ("cache_miss", _a),
    ("backend_conn", _a), ("backend_unhealthy", _a), ("backend_busy", _a),
    ("backend_fail", _a), ("backend_reuse", _a), ("backend_toolate", _a),
    ("backend_recycle", _a), ("backend_retry", _a),
    ("fetch_head", _a), ("fetch_length", _a), ("fetch_chunked", _a),
    ("fetch_eof", _a), ("fetch_bad", _a), ("fetch_close", _a),
    ("fetch_oldhttp", _a), ("fetch_zero", _a), ("fetch_failed", _a),
    ("fetch_1xx", _a), ("fetch_204", _a), ("fetch_304", _a),
    ("n_sess_mem", _i), ("n_sess", _i), ("n_object", _i),
    ("n_vampireobject", _i), ("n_objectcore", _i), ("n_objecthead", _i),
    ("n_waitinglist", _i), ("n_vbc", _i),
    ("n_wrk", _i), ("n_wrk_create", _a), ("n_wrk_failed", _a), ("n_wrk_max", _a),
    ("n_wrk_lqueue", _a), ("n_wrk_queued", _a), ("n_wrk_drop", _a),
    ("n_backend", _i), ("n_expired", _i), ("n_lru_nuked", _i), ("n_lru_moved", _i),
    ("losthdr", _a), ("n_objsendfile", _a), ("n_objwrite", _a), ("n_objoverflow", _a),
    ("s_sess", _a), ("s_req", _a), ("s_pipe", _a), ("s_pass", _a), ("s_fetch", _a),
    ("s_hdrbytes", _a), ("s_bodybytes", _a),
    ("sess_closed", _a), ("sess_pipeline", _a), ("sess_readahead", _a),
    ("sess_linger", _a), ("sess_herd", _a),
    ("shm_records", _a), ("shm_writes", _a), ("shm_flushes", _a),
    ("shm_cont", _a), ("shm_cycles", _a),
    ("sms_nreq", _a), ("sms_nobj", _i), ("sms_nbytes", _i), ("sms_balloc", _i), ("sms_bfree", _i),
    ("backend_req", _a), ("n_vcl", _a), ("n_vcl_avail", _a), ("n_vcl_discard", _a),
    ("n_ban", _i), ("n_ban_add", _a), ("n_ban_retire", _a),
    ("n_ban_obj_test", _a), ("n_ban_re_test", _a), ("n_ban_dups", _a),
    ("hcb_nolock", _a), ("hcb_lock", _a), ("hcb_insert", _a),
    ("esi_errors", _a), ("esi_warnings", _a),
    ("accept_fail", _a), ("client_drop_late", _a), ("uptime", _a),
    ("n_gzip", _a), ("n_gunzip", _a),
)

LAYOUTS: dict[Generation, Layout] = {
    Generation.LEGACY: Layout(Generation.LEGACY, dict(_LEGACY_FIELDS)),
    Generation.CURRENT: Layout(Generation.CURRENT, dict(_CURRENT_FIELDS)),
}


def layout_for(generation: Generation | str) -> Layout:
    return LAYOUTS[Generation(generation)]


@dataclass(frozen=True, slots=True)
class FieldValue:
    field: str
    value: int | float
    kind: MetricKind   # storage kind reported by the source layout


class CounterSnapshot:
    """Read-only view of one counter block reading, valid until released.

    Only numeric fields that exist in the layout are retained; anything else in
    ``values`` is dropped. A field that is not retained is "not present":
    ``get`` returns None rather than a zero reading.
    """

    def __init__(self, layout: Layout, values: Mapping[str, object], *, identity: str | None = None):
        self.layout = layout
        self.identity = identity
        self._values: dict[str, int | float] = {}
        for field in layout.fields:
            raw = values.get(field)
            if isinstance(raw, numbers.Real) and not isinstance(raw, bool):
                self._values[field] = raw  # type: ignore[assignment]
        self._released = False

    @property
    def generation(self) -> Generation:
        return self.layout.generation

    @property
    def released(self) -> bool:
        return self._released

    def _check(self) -> None:
        if self._released:
            raise RuntimeError("counter snapshot used after release")

    def get(self, field: str) -> FieldValue | None:
        self._check()
        if field not in self._values:
            return None
        return FieldValue(field, self._values[field], self.layout.fields[field])

    def __contains__(self, field: object) -> bool:
        self._check()
        return field in self._values

    def fields(self) -> list[str]:
        """Present fields in layout order."""
        self._check()
        return list(self._values)

    def release(self) -> None:
        """Drop the reading. Idempotent."""
        if self._released:
            return
        self._released = True
        self._values = {}

    def __repr__(self) -> str:
        state = "released" if self._released else f"{len(self._values)} fields"
        return f"<CounterSnapshot {self.generation.value} identity={self.identity!r} {state}>"


__all__ = [
    "Generation",
    "Layout",
    "LAYOUTS",
    "layout_for",
    "FieldValue",
    "CounterSnapshot",
]
