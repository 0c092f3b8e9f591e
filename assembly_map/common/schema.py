"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from assembly_map.common.constants import SOURCE_NAMES
from assembly_map.common.errors import ConfigError

REQUIRED_COLUMNS = {
    "ac_id",
    "ac_name",
    "st_name",
    "st_code",
    "ac_no",
    "candidate_name",
    "party",
    "age",
    "gender",
    "category",
    "votes",
    "postal_votes",
    "total_electors",
    "year",
    "is_bye_election",
    "wiki_link",
}
FILTER_KINDS = {"range", "exact"}
FETCH_KEYS = {"connect_timeout", "read_timeout", "max_attempts", "backoff_initial", "backoff_max", "chunk_size"}


def _assert_mapping(obj, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_descending(values: list, ctx: str) -> None:
    if any(later >= earlier for earlier, later in zip(values, values[1:])):
        raise ConfigError(f"{ctx} must be strictly descending")


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"sources", "columns", "boundaries", "output", "validation"}
    _assert_mapping(cfg, "pipeline config")
    _assert_required_keys(cfg, top_required, "pipeline config")
    _assert_no_unknown_keys(cfg, top_required | {"fetch"}, "pipeline config", allow_unknown)

    sources = _assert_mapping(cfg["sources"], "sources")
    _assert_required_keys(sources, set(SOURCE_NAMES), "sources")
    for name in SOURCE_NAMES:
        source = _assert_mapping(sources[name], f"sources.{name}")
        _assert_required_keys(source, {"path"}, f"sources.{name}")
        _assert_no_unknown_keys(source, {"path", "url", "sheet"}, f"sources.{name}", allow_unknown)

    columns = _assert_mapping(cfg["columns"], "columns")
    _assert_required_keys(columns, REQUIRED_COLUMNS, "columns")
    headers = list(columns.values())
    dupes = {header for header in headers if headers.count(header) > 1}
    if dupes:
        raise ConfigError(f"Duplicate source headers in columns: {', '.join(sorted(dupes))}")

    _assert_required_keys(
        _assert_mapping(cfg["boundaries"], "boundaries"),
        {"id_property", "state_property", "source_epsg"},
        "boundaries",
    )
    _assert_required_keys(
        _assert_mapping(cfg["output"], "output"),
        {"map_data_filename", "search_index_filename", "state_bounds_filename"},
        "output",
    )
    validation = _assert_mapping(cfg["validation"], "validation")
    _assert_required_keys(validation, {"share_sum_min", "share_sum_max"}, "validation")
    if float(validation["share_sum_min"]) > float(validation["share_sum_max"]):
        raise ConfigError("validation.share_sum_min must not exceed share_sum_max")

    if "fetch" in cfg:
        fetch = _assert_mapping(cfg["fetch"], "fetch")
        _assert_no_unknown_keys(fetch, FETCH_KEYS, "fetch", allow_unknown)
        if int(fetch.get("max_attempts", 1)) < 1:
            raise ConfigError("fetch.max_attempts must be at least 1")

    return cfg


def validate_classification_config(cfg: dict) -> dict:
    _assert_mapping(cfg, "classification config")
    _assert_required_keys(cfg, {"defaults", "filters", "colors"}, "classification config")
    _assert_required_keys(_assert_mapping(cfg["defaults"], "defaults"), {"mode", "party"}, "defaults")

    filters = _assert_mapping(cfg["filters"], "filters")
    if not filters:
        raise ConfigError("filters must be a non-empty mapping")
    for dimension, spec in filters.items():
        ctx = f"filters.{dimension}"
        _assert_required_keys(_assert_mapping(spec, ctx), {"field", "kind"}, ctx)
        if spec["kind"] not in FILTER_KINDS:
            raise ConfigError(f"{ctx}.kind must be one of {sorted(FILTER_KINDS)}")
        if spec["kind"] != "range":
            continue
        buckets = spec.get("buckets")
        if not isinstance(buckets, list) or not buckets:
            raise ConfigError(f"{ctx}.buckets must be a non-empty list")
        tokens: list[str] = []
        for idx, bucket in enumerate(buckets):
            _assert_required_keys(_assert_mapping(bucket, f"{ctx}.buckets[{idx}]"), {"token", "min", "max"}, f"{ctx}.buckets[{idx}]")
            if float(bucket["min"]) >= float(bucket["max"]):
                raise ConfigError(f"{ctx}.buckets[{idx}] has min >= max")
            tokens.append(str(bucket["token"]))
        dupes = {token for token in tokens if tokens.count(token) > 1}
        if dupes:
            raise ConfigError(f"Duplicate tokens in {ctx}: {', '.join(sorted(dupes))}")

    colors = _assert_mapping(cfg["colors"], "colors")
    _assert_required_keys(
        colors,
        {
            "default",
            "no_party_selected",
            "not_contested",
            "intensity_ramp",
            "vote_share_thresholds",
            "margin_thresholds",
            "turnout_ramp",
            "turnout_thresholds",
            "gender",
            "category",
            "age_ramp",
            "age_limits",
        },
        "colors",
    )
    for ramp, thresholds in (
        ("intensity_ramp", "vote_share_thresholds"),
        ("intensity_ramp", "margin_thresholds"),
        ("turnout_ramp", "turnout_thresholds"),
        ("age_ramp", "age_limits"),
    ):
        if len(colors[ramp]) != len(colors[thresholds]) + 1:
            raise ConfigError(f"colors.{ramp} needs exactly one more entry than colors.{thresholds}")
    for thresholds in ("vote_share_thresholds", "margin_thresholds", "turnout_thresholds"):
        _assert_descending(colors[thresholds], f"colors.{thresholds}")
    if any(later <= earlier for earlier, later in zip(colors["age_limits"], colors["age_limits"][1:])):
        raise ConfigError("colors.age_limits must be strictly ascending")
    for table in ("gender", "category"):
        _assert_required_keys(_assert_mapping(colors[table], f"colors.{table}"), {"other"}, f"colors.{table}")

    return cfg

