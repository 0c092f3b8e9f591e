"""Multi-dimensional filtering of merged constituency records.

Each dimension compiles to one predicate: a record passes a dimension when
nothing is selected there, or when it matches any selected token. A record
is kept only if it passes every dimension.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

Predicate = Callable[[Mapping[str, Any]], bool]

MARGIN_PCT_FIELD = "margin_pct"
TOKEN_DELIMITER = ","


def as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def margin_percentage(record: Mapping[str, Any]) -> float:
    margin = as_number(record.get("margin")) or 0.0
    total = as_number(record.get("total_votes")) or 1.0
    return (margin / total) * 100


def field_value(record: Mapping[str, Any], name: str) -> Any:
    if name == MARGIN_PCT_FIELD:
        if "margin" not in record:
            return None
        return margin_percentage(record)
    return record.get(name)


@dataclass(frozen=True)
class RangeBucket:
    token: str
    minimum: float
    maximum: float
    closed_low: bool = False

    def contains(self, value: float) -> bool:
        if self.closed_low:
            return self.minimum <= value <= self.maximum
        return self.minimum < value <= self.maximum


@dataclass(frozen=True)
class Dimension:
    name: str
    field: str
    kind: str
    buckets: tuple[RangeBucket, ...] = ()

    def bucket(self, token: str) -> RangeBucket | None:
        for bucket in self.buckets:
            if bucket.token == token:
                return bucket
        return None

    def token_order(self, tokens: Iterable[str]) -> list[str]:
        if self.kind != "range":
            return sorted(tokens)
        rank = {bucket.token: idx for idx, bucket in enumerate(self.buckets)}
        return sorted(tokens, key=lambda token: (rank.get(token, len(rank)), token))


@dataclass(frozen=True)
class FilterCatalog:
    dimensions: tuple[Dimension, ...]

    @classmethod
    def from_config(cls, classification_cfg: dict) -> "FilterCatalog":
        dimensions = []
        for name, spec in classification_cfg["filters"].items():
            buckets: list[RangeBucket] = []
            if spec["kind"] == "range":
                ordered = sorted(spec["buckets"], key=lambda bucket: float(bucket["min"]))
                for idx, bucket in enumerate(ordered):
                    buckets.append(
                        RangeBucket(
                            token=str(bucket["token"]),
                            minimum=float(bucket["min"]),
                            maximum=float(bucket["max"]),
                            # Lowest bucket includes its floor so exact zeros land somewhere.
                            closed_low=(idx == 0),
                        )
                    )
            dimensions.append(Dimension(name=name, field=spec["field"], kind=spec["kind"], buckets=tuple(buckets)))
        return cls(dimensions=tuple(dimensions))

    def names(self) -> list[str]:
        return [dimension.name for dimension in self.dimensions]

    def get(self, name: str) -> Dimension | None:
        for dimension in self.dimensions:
            if dimension.name == name:
                return dimension
        return None


@dataclass(frozen=True)
class FilterSpec:
    selections: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = {name: frozenset(tokens) for name, tokens in self.selections.items()}
        object.__setattr__(self, "selections", MappingProxyType(frozen))

    def tokens(self, dimension: str) -> frozenset[str]:
        return self.selections.get(dimension, frozenset())

    def with_selection(self, dimension: str, tokens: Iterable[str]) -> "FilterSpec":
        updated = dict(self.selections)
        updated[dimension] = frozenset(tokens)
        return FilterSpec(updated)

    def cleared(self) -> "FilterSpec":
        return FilterSpec({})

    def active_dimensions(self) -> list[str]:
        return sorted(name for name, tokens in self.selections.items() if tokens)

    def to_query_params(self, catalog: FilterCatalog) -> dict[str, str]:
        params: dict[str, str] = {}
        for dimension in catalog.dimensions:
            tokens = self.tokens(dimension.name)
            if tokens:
                params[dimension.name] = TOKEN_DELIMITER.join(dimension.token_order(tokens))
        return params

    @classmethod
    def from_query_params(cls, params: Mapping[str, str], catalog: FilterCatalog) -> "FilterSpec":
        selections: dict[str, frozenset[str]] = {}
        for name in catalog.names():
            raw = params.get(name)
            if not raw:
                continue
            tokens = {token.strip() for token in raw.split(TOKEN_DELIMITER)}
            tokens.discard("")
            if tokens:
                selections[name] = frozenset(tokens)
        return cls(selections)


def _never(_record: Mapping[str, Any]) -> bool:
    return False


def any_of(predicates: list[Predicate]) -> Predicate:
    return lambda record: any(predicate(record) for predicate in predicates)


def all_of(predicates: list[Predicate]) -> Predicate:
    return lambda record: all(predicate(record) for predicate in predicates)


def _range_predicate(field_name: str, bucket: RangeBucket) -> Predicate:
    def _matches(record: Mapping[str, Any]) -> bool:
        value = as_number(field_value(record, field_name))
        return value is not None and bucket.contains(value)

    return _matches


def _exact_predicate(field_name: str, token: str) -> Predicate:
    def _matches(record: Mapping[str, Any]) -> bool:
        value = field_value(record, field_name)
        return value is not None and str(value) == token

    return _matches


def compile_dimension(dimension: Dimension, tokens: Iterable[str]) -> Predicate | None:
    """Return the OR over ``tokens``, or None when nothing is selected."""
    token_predicates: list[Predicate] = []
    for token in dimension.token_order(tokens):
        if dimension.kind == "range":
            bucket = dimension.bucket(token)
            token_predicates.append(_never if bucket is None else _range_predicate(dimension.field, bucket))
        else:
            token_predicates.append(_exact_predicate(dimension.field, token))
    if not token_predicates:
        return None
    return any_of(token_predicates)


def compile_filter(spec: FilterSpec, catalog: FilterCatalog) -> Predicate:
    dimension_predicates = []
    for dimension in catalog.dimensions:
        predicate = compile_dimension(dimension, spec.tokens(dimension.name))
        if predicate is not None:
            dimension_predicates.append(predicate)
    return all_of(dimension_predicates)


def apply_filters(
    records: Iterable[Mapping[str, Any]],
    spec: FilterSpec,
    catalog: FilterCatalog,
) -> list[Mapping[str, Any]]:
    predicate = compile_filter(spec, catalog)
    return [record for record in records if predicate(record)]


def filter_features(collection: dict, spec: FilterSpec, catalog: FilterCatalog) -> dict:
    predicate = compile_filter(spec, catalog)
    features = [feature for feature in collection.get("features", []) if predicate(feature.get("properties") or {})]
    return {**collection, "features": features}
