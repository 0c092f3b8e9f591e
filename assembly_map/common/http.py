"""Source downloads over HTTP with bounded retries."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import requests
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from assembly_map.common.constants import USER_AGENT
from assembly_map.common.errors import StageError
from assembly_map.common.fs import ensure_dir

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})


class HttpRequestError(StageError):
    error_code = "HTTP_ERROR"


class RetryableHttpError(HttpRequestError):
    pass


@dataclass(frozen=True)
class FetchSettings:
    connect_timeout: float = 20.0
    read_timeout: float = 120.0
    max_attempts: int = 5
    backoff_initial: float = 1.0
    backoff_max: float = 30.0
    chunk_size: int = 128 * 1024

    @classmethod
    def from_config(cls, pipeline_cfg: dict) -> "FetchSettings":
        fetch_cfg = pipeline_cfg.get("fetch") or {}
        return cls(**{key: value for key, value in fetch_cfg.items() if key in cls.__dataclass_fields__})


def check_status(status: int, url: str) -> None:
    if status in TRANSIENT_STATUSES:
        raise RetryableHttpError(f"{url} answered {status}; will retry")
    if status >= 400:
        raise HttpRequestError(f"{url} answered {status}")


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning(
        "download attempt %d failed: %s",
        state.attempt_number,
        exc,
        extra={"stage": "fetch", "event": "FETCH_RETRY", "attempt": state.attempt_number},
    )


class HttpClient:
    def __init__(self, settings: FetchSettings | None = None) -> None:
        self.settings = settings or FetchSettings()
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT, "Accept": "*/*"})

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()

    def _stream_once(self, url: str, target_path: Path) -> int:
        try:
            response = self.session.request(
                method="GET",
                url=url,
                timeout=(self.settings.connect_timeout, self.settings.read_timeout),
                stream=True,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise RetryableHttpError(f"{url} unreachable: {exc}") from exc

        part_path = target_path.with_name(f".{target_path.name}.part")
        try:
            check_status(response.status_code, url)
            ensure_dir(target_path.parent)
            size = 0
            with part_path.open("wb") as f:
                for chunk in response.iter_content(chunk_size=self.settings.chunk_size):
                    if chunk:
                        size += f.write(chunk)
            os.replace(part_path, target_path)
            return size
        finally:
            response.close()
            part_path.unlink(missing_ok=True)

    def download(self, url: str, target_path: Path) -> int:
        """Stream ``url`` into ``target_path`` and return the byte count.

        Transport failures and transient statuses are retried with jittered
        exponential backoff; other client errors fail on the first attempt.
        The target only changes once a complete body has arrived.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.settings.max_attempts),
            wait=wait_exponential_jitter(initial=self.settings.backoff_initial, max=self.settings.backoff_max, jitter=1.0),
            retry=retry_if_exception_type(RetryableHttpError),
            before_sleep=_log_retry,
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return self._stream_once(url, target_path)
        raise HttpRequestError(f"{url} was never attempted")
