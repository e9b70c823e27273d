import logging

import orjson
import pytest

from varnishmon.utils import log_context as lc
from varnishmon.utils.env_flags import get_float, get_int, is_truthy_env
from varnishmon.utils.logging_utils import ContextFilter, JsonFormatter, setup_logging


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def _record(msg="collected %d", args=(3,)):
    return logging.LogRecord("varnishmon.test", logging.INFO, __file__, 1, msg, args, None)


def test_push_context_restores_previous():
    lc.set_context(run_id="abc")
    with lc.push_context(instance="cache1"):
        assert lc.get_context()["instance"] == "cache1"
    assert "instance" not in lc.get_context()
    lc.clear_context()
    assert lc.get_context() == {}


def test_json_formatter_includes_context():
    with lc.push_context(component="collector", instance="cache1"):
        out = orjson.loads(JsonFormatter().format(_record()))
    assert out["msg"] == "collected 3"
    assert out["level"] == "INFO"
    assert out["ctx"]["instance"] == "cache1"


def test_context_filter_sets_record_attributes():
    rec = _record()
    with lc.push_context(instance="cache1"):
        assert ContextFilter().filter(rec)
    assert rec.instance == "cache1"


def test_setup_logging_console_and_file(restore_root, tmp_path, monkeypatch):
    monkeypatch.setenv("VARNISHMON_JSON_LOGS", "1")
    log_file = tmp_path / "logs" / "varnishmon.log"
    root = setup_logging("DEBUG", str(log_file))
    assert root.level == logging.DEBUG
    assert isinstance(root.handlers[0].formatter, JsonFormatter)
    assert isinstance(root.handlers[1], logging.FileHandler)
    logging.getLogger("varnishmon.test").info("hello file")
    root.handlers[1].flush()
    assert "hello file" in log_file.read_text(encoding="utf-8")


def test_env_helpers(monkeypatch):
    monkeypatch.setenv("VARNISHMON_X", "Yes")
    monkeypatch.setenv("VARNISHMON_N", "oops")
    monkeypatch.setenv("VARNISHMON_F", " 2.5 ")
    assert is_truthy_env("VARNISHMON_X")
    assert get_int("VARNISHMON_N", 7) == 7
    assert get_float("VARNISHMON_F", 1.0) == 2.5
