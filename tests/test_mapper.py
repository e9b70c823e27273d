import pytest

from tests._helpers import make_snapshot
from varnishmon.collectors.instance import InstanceConfig
from varnishmon.enums import Generation, MetricKind
from varnishmon.metrics.catalog import METRIC_CATALOG, find
from varnishmon.metrics.groups import Category, CategorySelector
from varnishmon.metrics.mapper import emit

CACHE_ONLY = {"CollectCache": True, "CollectConnections": False, "CollectBackend": False, "CollectSHM": False}


def test_cache_only_instance_yields_three_counters():
    cfg = InstanceConfig.from_block("cache1", CACHE_ONLY)
    snap = make_snapshot({"cache_hit": 100, "cache_miss": 5, "cache_hitpass": 2, "client_conn": 9})
    obs = emit(cfg.selector, snap, host="web1", identity=cfg.identity)
    assert [(o.name, o.kind, o.value) for o in obs] == [
        ("cache_hit", MetricKind.COUNTER, 100),
        ("cache_miss", MetricKind.COUNTER, 5),
        ("cache_hitpass", MetricKind.COUNTER, 2),
    ]
    assert {o.plugin_instance for o in obs} == {"cache1"}
    assert obs[0].identifier() == "web1/varnish-cache1/derive-cache_hit"


def test_enabled_category_with_absent_fields_contributes_nothing():
    cfg = InstanceConfig()
    snap = make_snapshot({
        "cache_hit": 1, "cache_miss": 2, "cache_hitpass": 3,
        "client_conn": 4, "client_drop": 5, "client_req": 6,
    })
    obs = emit(cfg.selector, snap, host="web1", identity=cfg.identity)
    assert [o.name for o in obs] == [
        "cache_hit", "cache_miss", "cache_hitpass",
        "client_connections-accepted", "client_connections-dropped", "client_requests-received",
    ]
    assert all(o.plugin_instance is None for o in obs)
    assert obs[0].identifier() == "web1/varnish/derive-cache_hit"


def test_emission_order_is_category_then_table_order(current_reading):
    sel = CategorySelector.of(Category)
    obs = emit(sel, make_snapshot(current_reading), host="h")
    expected = [d.name for d in METRIC_CATALOG if Generation.CURRENT in d.generations]
    assert [o.name for o in obs] == expected


def test_legacy_exclusive_fields_only_for_legacy(legacy_reading):
    sel = CategorySelector.of(Category)
    legacy = {o.name for o in emit(sel, make_snapshot(legacy_reading, Generation.LEGACY), host="h")}
    current = {o.name for o in emit(sel, make_snapshot(legacy_reading, Generation.CURRENT), host="h")}
    exclusive = {"esi_parsed", "backend_connections-unused", "sm_nreq", "sma_req",
                 "requests_queued", "requests_overflowed"}
    assert exclusive <= legacy
    assert not exclusive & current


def test_kind_comes_from_catalog_not_storage(legacy_reading):
    snap = make_snapshot(legacy_reading, Generation.LEGACY)
    # the layout reports these as instantaneous levels
    assert snap.get("sm_nobj").kind is MetricKind.GAUGE
    assert snap.get("n_wrk_queue").kind is MetricKind.GAUGE
    sel = CategorySelector.of([Category.SM, Category.WORKERS])
    kinds = {o.name: o.kind for o in emit(sel, snap, host="h")}
    assert kinds["sm_nobj"] is MetricKind.COUNTER
    assert kinds["requests_queued"] is MetricKind.COUNTER
    assert kinds["threads"] is MetricKind.GAUGE
    assert kinds["sm_balloc"] is MetricKind.GAUGE


def test_disabled_category_emits_nothing(current_reading):
    sel = CategorySelector.of([Category.HCB])
    obs = emit(sel, make_snapshot(current_reading), host="h")
    assert [o.name for o in obs] == ["hcb_nolock", "hcb_lock", "hcb_insert"]
    assert [o.value for o in obs] == [5100, 790, 780]


def test_zero_value_is_still_emitted():
    sel = CategorySelector.of([Category.CACHE])
    obs = emit(sel, make_snapshot({"cache_hit": 0}), host="h")
    assert [(o.name, o.value) for o in obs] == [("cache_hit", 0)]


@pytest.mark.parametrize("generation", [Generation.LEGACY, Generation.CURRENT])
@pytest.mark.parametrize("categories", [
    {Category.CACHE, Category.FETCH, Category.WORKERS},
    {Category.ESI, Category.SMS},
    {Category.CONNECTIONS, Category.SM, Category.SMA, Category.TOTALS},
    {Category.BACKEND, Category.HCB, Category.SHM},
])
def test_composition_matches_enabled_categories(generation, categories, legacy_reading):
    snap = make_snapshot(legacy_reading, generation)
    obs = emit(CategorySelector.of(categories), snap, host="h")
    expected = [d.name for d in METRIC_CATALOG if d.category in categories and generation in d.generations]
    assert [o.name for o in obs] == expected
    assert {find(o.name).category for o in obs} <= categories
