"""Pytest configuration for varnishmon.

1. Ensure project root on sys.path (tests import ``tests._helpers``).
2. Keep VARNISHMON_* environment variables from leaking into tests.
3. Provide fixtures for snapshots, fake attachment, recording sink, scheduler.
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tests._helpers import FakeAttachment, FakeScheduler, RecordingSink  # noqa: E402

# Reading with every catalog field of the current generation set to a distinct value.
CURRENT_READING: dict[str, int] = {
    "client_conn": 1000, "client_drop": 3, "client_req": 5000,
    "cache_hit": 4200, "cache_hitpass": 12, "cache_miss": 780,
    "backend_conn": 700, "backend_unhealthy": 1, "backend_busy": 2, "backend_fail": 4,
    "backend_reuse": 600, "backend_toolate": 5, "backend_recycle": 610,
    "fetch_head": 6, "fetch_length": 500, "fetch_chunked": 150, "fetch_eof": 7,
    "fetch_bad": 8, "fetch_close": 9, "fetch_oldhttp": 10, "fetch_zero": 11, "fetch_failed": 13,
    "hcb_nolock": 5100, "hcb_lock": 790, "hcb_insert": 780,
    "shm_records": 90000, "shm_writes": 45000, "shm_flushes": 14, "shm_cont": 15, "shm_cycles": 16,
    "sms_nreq": 17, "sms_nobj": 18, "sms_nbytes": 19, "sms_balloc": 20, "sms_bfree": 21,
    "s_sess": 990, "s_req": 5000, "s_pipe": 22, "s_pass": 23, "s_fetch": 770,
    "s_hdrbytes": 1_200_000, "s_bodybytes": 98_000_000,
    "n_wrk": 24, "n_wrk_create": 25, "n_wrk_failed": 26, "n_wrk_max": 27, "n_wrk_drop": 28,
    "esi_errors": 29,
}

LEGACY_READING: dict[str, int] = {
    **{k: v for k, v in CURRENT_READING.items()},
    "esi_parse": 30, "backend_unused": 31,
    "sm_nreq": 32, "sm_nobj": 33, "sm_balloc": 34, "sm_bfree": 35,
    "sma_nreq": 36, "sma_nobj": 37, "sma_nbytes": 38, "sma_balloc": 39, "sma_bfree": 40,
    "n_wrk_queue": 41, "n_wrk_overflow": 42,
}


@pytest.fixture(autouse=True)
def _clean_varnishmon_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("VARNISHMON_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("VARNISHMON_HOSTNAME", "testhost")


@pytest.fixture
def current_reading() -> dict[str, int]:
    return dict(CURRENT_READING)


@pytest.fixture
def legacy_reading() -> dict[str, int]:
    return dict(LEGACY_READING)


@pytest.fixture
def attachment(current_reading) -> FakeAttachment:
    return FakeAttachment(current_reading)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()
