"""JSON logging with stable schema."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from assembly_map.common.constants import JSON_LOG_FIELDS
from assembly_map.common.fs import ensure_dir
from assembly_map.common.time_utils import utc_timestamp_iso


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": utc_timestamp_iso(),
            "message": record.getMessage(),
        }
        for field in JSON_LOG_FIELDS:
            if field not in payload:
                payload[field] = getattr(record, field, None)
        if record.levelno >= logging.WARNING and payload["status"] is None:
            payload["status"] = record.levelname.lower()
        return json.dumps(payload, ensure_ascii=False, default=str)


class RunContextFilter(logging.Filter):
    def __init__(self, run_id: str) -> None:
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "run_id", None) is None:
            record.run_id = self.run_id
        return True


def build_logger(run_id: str, data_dir: Path, level: str = "INFO") -> logging.Logger:
    """Attach JSON-lines handlers to the package logger for this run.

    Module loggers (``assembly_map.pipeline.aggregate`` and friends) propagate
    into it, so their degradation warnings land in the same run log.
    """
    logger = logging.getLogger("assembly_map")
    logger.setLevel(level.upper())
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    stream = logging.StreamHandler()
    stream.setFormatter(JsonLineFormatter())
    stream.addFilter(RunContextFilter(run_id))
    logger.addHandler(stream)

    log_path = data_dir / "run_meta" / f"{run_id}.log.jsonl"
    ensure_dir(log_path.parent)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(JsonLineFormatter())
    file_handler.addFilter(RunContextFilter(run_id))
    logger.addHandler(file_handler)

    return logger


def log_event(logger: logging.Logger, message: str, **event_fields: Any) -> None:
    logger.info(message, extra=event_fields)
