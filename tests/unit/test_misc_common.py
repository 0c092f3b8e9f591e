import json
import logging
from pathlib import Path

import pytest

from assembly_map.common.deterministic import rank_descending
from assembly_map.common.fs import dump_json, write_json_set
from assembly_map.common.logging import JsonLineFormatter, RunContextFilter, build_logger, log_event
from assembly_map.common.time_utils import generate_run_id


def test_rank_descending_keeps_first_seen_order_for_ties():
    items = [("a", 1), ("b", 3), ("c", 1), ("d", 3)]

    assert rank_descending(items, key=lambda item: item[1]) == [("b", 3), ("d", 3), ("a", 1), ("c", 1)]


def test_dump_json_is_sorted_and_compact_on_request():
    assert dump_json({"b": 1, "a": [1, 2]}, compact=True) == '{"a":[1,2],"b":1}\n'
    assert dump_json({"b": 1, "a": 2}).startswith('{\n  "a": 2')


def test_dump_json_refuses_nan():
    with pytest.raises(ValueError):
        dump_json({"turnout": float("nan")})


def test_write_json_set_writes_nothing_when_any_payload_fails(tmp_path: Path):
    good = tmp_path / "out" / "good.json"
    bad = tmp_path / "out" / "bad.json"

    with pytest.raises(ValueError):
        write_json_set({good: ({"ok": True}, False), bad: ({"x": float("inf")}, False)})

    assert not good.exists()
    assert not bad.exists()


def test_write_json_set_replaces_all_targets(tmp_path: Path):
    first = tmp_path / "a.json"
    second = tmp_path / "nested" / "b.json"
    first.write_text("stale", encoding="utf-8")

    written = write_json_set({first: ([1], True), second: ({"k": "v"}, False)})

    assert written == [first, second]
    assert json.loads(first.read_text(encoding="utf-8")) == [1]
    assert json.loads(second.read_text(encoding="utf-8")) == {"k": "v"}
    assert sorted(path.name for path in tmp_path.iterdir()) == ["a.json", "nested"]


def test_generate_run_id_is_prefixed():
    assert generate_run_id().startswith("run-")


def test_json_line_formatter_emits_stable_schema():
    record = logging.LogRecord("assembly_map.test", logging.WARNING, __file__, 1, "hello %s", ("world",), None)
    record.stage = "build"
    RunContextFilter("run-x").filter(record)

    payload = json.loads(JsonLineFormatter().format(record))

    assert payload["message"] == "hello world"
    assert payload["run_id"] == "run-x"
    assert payload["stage"] == "build"
    assert payload["status"] == "warning"
    assert payload["error_code"] is None


def test_build_logger_writes_run_log(tmp_path: Path):
    logger = build_logger("run-log", data_dir=tmp_path, level="INFO")
    log_event(logger, "stage start", stage="build", event="STAGE_START", status="ok")
    logging.getLogger("assembly_map.pipeline.merge").warning("child", extra={"event": "FEATURES_UNMATCHED"})
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / "run_meta" / "run-log.log.jsonl").read_text(encoding="utf-8").splitlines()
    events = [json.loads(line)["event"] for line in lines]
    assert events == ["STAGE_START", "FEATURES_UNMATCHED"]
    assert all(json.loads(line)["run_id"] == "run-log" for line in lines)
