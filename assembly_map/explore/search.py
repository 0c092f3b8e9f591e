"""Constituency search and state listing over the search index."""

from __future__ import annotations

import re
from typing import Iterable, Mapping

_STATE_IN_LABEL_RE = re.compile(r"\(([^)]+)\)$")

MIN_TERM_LENGTH = 2
DEFAULT_LIMIT = 10


def label_parts(label: str) -> tuple[str, str | None]:
    """Split ``"Name (State)"`` into its name and state."""
    match = _STATE_IN_LABEL_RE.search(label)
    if not match:
        return label.strip(), None
    return label[: match.start()].strip(), match.group(1)


def search_constituencies(
    index: Iterable[Mapping],
    term: str,
    *,
    limit: int = DEFAULT_LIMIT,
) -> list[Mapping]:
    needle = (term or "").strip().lower()
    if len(needle) < MIN_TERM_LENGTH:
        return []
    hits = [entry for entry in index if needle in str(entry.get("label", "")).lower()]
    return hits[:limit]


def list_states(index: Iterable[Mapping]) -> list[str]:
    states: set[str] = set()
    seen_codes: set = set()
    for entry in index:
        code = entry.get("st_code")
        if code in seen_codes:
            continue
        seen_codes.add(code)
        _name, state = label_parts(str(entry.get("label", "")))
        if state:
            states.add(state)
    return sorted(states)
