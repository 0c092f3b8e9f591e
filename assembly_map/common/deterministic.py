"""Helpers for deterministic ordering."""

from __future__ import annotations

from typing import Callable, Iterable, TypeVar

T = TypeVar("T")


def stable_sorted(items: Iterable[T], key: Callable[[T], object]) -> list[T]:
    return sorted(items, key=key)


def rank_descending(items: Iterable[T], key: Callable[[T], float]) -> list[T]:
    """Order items highest first; equal keys keep their first-seen order.

    ``sorted`` is stable and ``reverse=True`` preserves the original order of
    equal elements, so a tie between would-be winner and runner-up is settled
    in favour of the row that appeared first in the source.
    """
    return sorted(items, key=key, reverse=True)
