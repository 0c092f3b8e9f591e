"""Filesystem helpers."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Mapping


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def read_yaml(path: Path):
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def dump_json(payload, *, compact: bool = False) -> str:
    if compact:
        text = json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"), allow_nan=False)
    else:
        text = json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True, allow_nan=False)
    return text + "\n"


def write_json(path: Path, payload, *, compact: bool = False) -> None:
    ensure_dir(path.parent)
    with path.open("w", encoding="utf-8") as f:
        f.write(dump_json(payload, compact=compact))


def read_json(path: Path):
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_json_set(payloads: Mapping[Path, tuple[object, bool]]) -> list[Path]:
    """Write several JSON documents so that either all of them land or none do.

    Every payload is serialised before the first byte hits the disk; the
    files are then staged next to their targets and swapped in with
    ``os.replace``.
    """
    rendered = {path: dump_json(payload, compact=compact) for path, (payload, compact) in payloads.items()}

    staged: list[tuple[Path, Path]] = []
    try:
        for path, text in rendered.items():
            ensure_dir(path.parent)
            tmp_path = path.with_name(f".{path.name}.tmp")
            staged.append((tmp_path, path))
            with tmp_path.open("w", encoding="utf-8") as f:
                f.write(text)
    except OSError:
        for tmp_path, _ in staged:
            tmp_path.unlink(missing_ok=True)
        raise

    for tmp_path, path in staged:
        os.replace(tmp_path, path)
    return [path for _, path in staged]
