"""Fetch stage: download remotely hosted inputs into the raw data directory."""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path

from assembly_map.common.constants import SOURCE_NAMES
from assembly_map.common.errors import StageError
from assembly_map.common.http import FetchSettings, HttpClient, HttpRequestError
from assembly_map.common.logging import log_event
from assembly_map.pipeline.load import source_path

logger = logging.getLogger(__name__)


def run_fetch(
    pipeline_cfg: dict,
    data_dir: Path,
    run_id: str,
    http_client: HttpClient | None = None,
) -> dict:
    sources = pipeline_cfg["sources"]
    fetched: dict[str, dict] = {}
    skipped: list[str] = []
    failures: list[str] = []

    with contextlib.ExitStack() as stack:
        client = http_client
        for name in SOURCE_NAMES:
            source_cfg = sources[name]
            url = source_cfg.get("url")
            if not url:
                skipped.append(name)
                continue
            if client is None:
                client = stack.enter_context(HttpClient(FetchSettings.from_config(pipeline_cfg)))
            target = source_path(data_dir, source_cfg)
            try:
                size = client.download(url, target)
            except HttpRequestError as exc:
                failures.append(name)
                logger.warning(
                    "download failed for %s: %s",
                    name,
                    exc,
                    extra={"stage": "fetch", "source": name, "event": "FETCH_FAIL", "error_code": exc.error_code},
                )
                continue
            fetched[name] = {"url": url, "path": str(target), "bytes": size}
            log_event(logger, f"fetched {name}", run_id=run_id, stage="fetch", source=name, event="FETCH_OK", status="ok")

    if skipped:
        log_event(logger, f"no url configured for {', '.join(skipped)}", stage="fetch", event="FETCH_SKIPPED", status="ok")
    if failures:
        raise StageError(f"Failed to fetch sources: {', '.join(failures)}")

    return {"run_id": run_id, "fetched": fetched, "skipped": skipped}
