from collections import Counter

from varnishmon.enums import Generation, MetricKind
from varnishmon.metrics.catalog import CATALOG_BY_CATEGORY, METRIC_CATALOG, defs_for, find
from varnishmon.metrics.groups import Category
from varnishmon.source.snapshot import LAYOUTS


def test_every_category_has_definitions():
    for category in Category:
        assert defs_for(category), category


def test_published_names_are_unique():
    dupes = [n for n, c in Counter(d.name for d in METRIC_CATALOG).items() if c > 1]
    assert dupes == []


def test_source_fields_are_unique():
    dupes = [f for f, c in Counter(d.field for d in METRIC_CATALOG).items() if c > 1]
    assert dupes == []


def test_generation_markers_match_layouts():
    for d in METRIC_CATALOG:
        for gen in Generation:
            in_layout = d.field in LAYOUTS[gen]
            assert in_layout == (gen in d.generations), (d.field, gen)


def test_legacy_only_categories_are_legacy_only():
    for category in (Category.SM, Category.SMA):
        for d in defs_for(category):
            assert d.generations == frozenset({Generation.LEGACY})


def test_selected_name_mappings():
    expected = {
        "client_conn": ("client_connections-accepted", MetricKind.COUNTER),
        "backend_unhealthy": ("backend_connections-not-attempted", MetricKind.COUNTER),
        "backend_toolate": ("backend_connections-was-closed", MetricKind.COUNTER),
        "fetch_bad": ("fetch_bad-headers", MetricKind.COUNTER),
        "shm_cont": ("shm_contention", MetricKind.COUNTER),
        "sma_nreq": ("sma_req", MetricKind.COUNTER),
        "sms_bfree": ("sms_bfree", MetricKind.GAUGE),
        "s_hdrbytes": ("header-bytes", MetricKind.COUNTER),
        "n_wrk": ("threads", MetricKind.GAUGE),
        "n_wrk_max": ("threads_limited", MetricKind.COUNTER),
        "esi_parse": ("esi_parsed", MetricKind.COUNTER),
    }
    by_field = {d.field: d for d in METRIC_CATALOG}
    for field, (name, kind) in expected.items():
        d = by_field[field]
        assert (d.name, d.kind) == (name, kind), field


def test_ambiguous_kind_fields_carry_a_note():
    noted = {d.field for d in METRIC_CATALOG if d.note}
    assert noted == {"sm_nobj", "sma_nobj", "sms_nobj", "n_wrk_queue", "n_wrk_overflow"}
    # published kind is preserved, not reinterpreted
    assert all(d.kind is MetricKind.COUNTER for d in METRIC_CATALOG if d.note)


def test_within_category_order_is_table_order():
    assert [d.name for d in CATALOG_BY_CATEGORY[Category.CACHE]] == ["cache_hit", "cache_miss", "cache_hitpass"]


def test_find_by_published_name():
    assert find("threads").field == "n_wrk"
    assert find("does-not-exist") is None
