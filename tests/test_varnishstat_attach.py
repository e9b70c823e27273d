import json
import subprocess
import sys

import pytest

from tests._helpers import RecordingSink
from varnishmon.collectors.cycle import CollectionCycle
from varnishmon.collectors.instance import InstanceConfig
from varnishmon.enums import Generation
from varnishmon.metrics.groups import Category, CategorySelector
from varnishmon.errors import SourceUnavailable
from varnishmon.source import attach as attach_mod
from varnishmon.source.attach import VarnishstatAttachment, acquire, parse_json, parse_one_shot

ONE_SHOT = """\
client_conn            1024         0.51 Client connections accepted
client_req             4096         2.03 Client requests received
cache_hit              3000         1.49 Cache hits
n_wrk                    40          .   N worker threads
uptime                 2016         1.00 Client uptime
garbage line
"""

JSON_DOC = {
    "timestamp": "2012-05-01T10:00:00",
    "client_conn": {"value": 1024, "flag": "a", "description": "Client connections accepted"},
    "cache_hit": {"value": 3000, "flag": "a", "description": "Cache hits"},
    "n_wrk": {"value": 40, "flag": "i", "description": "N worker threads"},
    "SMA.s0.c_req": {"type": "SMA", "ident": "s0", "value": 77, "flag": "a"},
    "LCK.sms.creat": {"type": "LCK", "ident": "sms", "value": 1, "flag": "a"},
}


class _Proc:
    def __init__(self, stdout="", stderr="", returncode=0):
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode


def _fake_run(result=None, exc=None, calls=None):
    def run(cmd, **kwargs):
        if calls is not None:
            calls.append((cmd, kwargs))
        if exc is not None:
            raise exc
        return result
    return run


def test_parse_one_shot_skips_non_numeric_lines():
    values = parse_one_shot(ONE_SHOT)
    assert values == {"client_conn": 1024, "client_req": 4096, "cache_hit": 3000, "n_wrk": 40, "uptime": 2016}


def test_parse_json_keeps_main_section_only():
    values = parse_json(json.dumps(JSON_DOC))
    assert values == {"client_conn": 1024, "cache_hit": 3000, "n_wrk": 40}


def test_parse_json_strips_main_prefix():
    doc = {"MAIN.cache_miss": {"type": "MAIN", "value": 5}, "MAIN.uptime": {"value": 10}}
    assert parse_json(json.dumps(doc)) == {"cache_miss": 5, "uptime": 10}


def test_parse_json_rejects_invalid_documents():
    with pytest.raises(SourceUnavailable):
        parse_json("{not json")
    with pytest.raises(SourceUnavailable):
        parse_json("[1, 2]")


def test_command_per_generation():
    assert VarnishstatAttachment(Generation.LEGACY).command(None) == ["varnishstat", "-1"]
    cur = VarnishstatAttachment(binary="/opt/varnish/bin/varnishstat")
    assert cur.command("cache1") == ["/opt/varnish/bin/varnishstat", "-j", "-n", "cache1"]


def test_open_current_builds_snapshot(monkeypatch):
    calls = []
    monkeypatch.setattr(attach_mod.subprocess, "run", _fake_run(_Proc(json.dumps(JSON_DOC)), calls=calls))
    att = VarnishstatAttachment(timeout=2.5)
    snap = att.open("cache1")
    assert snap.identity == "cache1"
    assert snap.get("cache_hit").value == 3000
    assert snap.get("cache_miss") is None
    cmd, kwargs = calls[0]
    assert cmd[-2:] == ["-n", "cache1"]
    assert kwargs["timeout"] == 2.5
    att.close(snap)
    assert snap.released


def test_open_legacy_parses_one_shot(monkeypatch):
    monkeypatch.setattr(attach_mod.subprocess, "run", _fake_run(_Proc(ONE_SHOT)))
    snap = VarnishstatAttachment(Generation.LEGACY).open(None)
    assert snap.generation is Generation.LEGACY
    assert snap.get("client_conn").value == 1024


@pytest.mark.parametrize("exc", [
    FileNotFoundError("varnishstat"),
    subprocess.TimeoutExpired(["varnishstat"], 5),
    PermissionError("denied"),
])
def test_spawn_failures_become_source_unavailable(monkeypatch, exc):
    monkeypatch.setattr(attach_mod.subprocess, "run", _fake_run(exc=exc))
    with pytest.raises(SourceUnavailable) as ei:
        VarnishstatAttachment().open("cache1")
    assert ei.value.identity == "cache1"


def test_non_zero_exit_reports_last_stderr_line(monkeypatch):
    proc = _Proc(stderr="Cannot open /var/lib/varnish/cache1/_.vsm\n", returncode=1)
    monkeypatch.setattr(attach_mod.subprocess, "run", _fake_run(proc))
    with pytest.raises(SourceUnavailable, match="_.vsm"):
        VarnishstatAttachment().open("cache1")


def test_empty_reading_is_unavailable(monkeypatch):
    monkeypatch.setattr(attach_mod.subprocess, "run", _fake_run(_Proc("{}")))
    with pytest.raises(SourceUnavailable, match="no counters"):
        VarnishstatAttachment().open(None)


def test_open_requests_lenient_decoding(monkeypatch):
    calls = []
    monkeypatch.setattr(attach_mod.subprocess, "run", _fake_run(_Proc(ONE_SHOT), calls=calls))
    VarnishstatAttachment(Generation.LEGACY).open(None)
    assert calls[0][1]["errors"] == "replace"


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
def test_undecodable_output_still_yields_cycle_result(tmp_path):
    script = tmp_path / "varnishstat"
    script.write_text("#!/bin/sh\nprintf 'client_conn 10 0.1 \\377\\376 bad bytes\\n'\n", encoding="ascii")
    script.chmod(0o755)
    att = VarnishstatAttachment(Generation.LEGACY, binary=str(script))
    snap = att.open("cache1")
    assert snap.get("client_conn").value == 10

    sink = RecordingSink()
    res = CollectionCycle(att, sink, "web1").run(
        InstanceConfig("cache1", CategorySelector.of([Category.CONNECTIONS])))
    assert res.ok
    assert sink.triples() == [("client_connections-accepted", "derive", 10)]


def test_acquire_closes_on_error(attachment):
    with pytest.raises(ValueError):
        with acquire(attachment, "cache1") as snap:
            raise ValueError("boom")
    assert attachment.closed == [snap]
    assert snap.released
