"""Validation stage and quality report generation."""

from __future__ import annotations

from collections import Counter
from pathlib import Path

from assembly_map.common.constants import DEPOSIT_THRESHOLD_DIVISOR
from assembly_map.common.errors import ContractError, StageError
from assembly_map.common.fs import read_json, write_json
from assembly_map.pipeline.export import artifact_paths

# Two-decimal rounding on both sides of the turnout division.
TURNOUT_TOLERANCE = 0.01
MAX_SAMPLES = 20
# Repeated party rows shrink the share map (last write wins), so an off
# share sum is reported but does not fail the run.
SOFT_PROBLEMS = {"VOTE_SHARE_SUM_OUT_OF_RANGE"}


def _read_artifact(path: Path):
    if not path.exists():
        raise StageError(f"Missing artifact: {path}")
    return read_json(path)


def _check_record(props: dict, share_min: float, share_max: float) -> list[str]:
    problems: list[str] = []
    total_votes = props.get("total_votes") or 0
    shares = props.get("party_vote_shares") or {}
    top = props.get("top_candidates") or []

    if total_votes > 0 and shares:
        share_sum = sum(shares.values())
        if not share_min <= share_sum <= share_max:
            problems.append("VOTE_SHARE_SUM_OUT_OF_RANGE")

    margin = props.get("margin")
    if len(top) >= 2:
        if margin is None or margin < 0:
            problems.append("NEGATIVE_MARGIN")
        elif margin != top[0]["votes"] - top[1]["votes"]:
            problems.append("MARGIN_MISMATCH")
    elif len(top) == 1 and margin != top[0]["votes"]:
        problems.append("MARGIN_MISMATCH")

    for candidate in top:
        expected = candidate["votes"] < total_votes / DEPOSIT_THRESHOLD_DIVISOR
        if bool(candidate.get("lost_deposit")) != expected:
            problems.append("LOST_DEPOSIT_FLAG_MISMATCH")
            break

    turnout = props.get("turnout")
    electors = props.get("total_electors")
    if turnout is not None and electors:
        if abs(turnout - (total_votes / electors) * 100) > TURNOUT_TOLERANCE:
            problems.append("TURNOUT_MISMATCH")
    return problems


def _check_bounds(state_bounds: dict) -> list[str]:
    inverted = []
    for state, ((min_lat, min_lon), (max_lat, max_lon)) in state_bounds.items():
        if min_lat > max_lat or min_lon > max_lon:
            inverted.append(state)
    return inverted


def run_validate(pipeline_cfg: dict, data_dir: Path, run_id: str) -> Path:
    paths = artifact_paths(pipeline_cfg, data_dir)
    map_data = _read_artifact(paths["map_data"])
    search_index = _read_artifact(paths["search_index"])
    state_bounds = _read_artifact(paths["state_bounds"])

    build_stats_path = data_dir / "intermediate" / "build_stats.json"
    build_stats = read_json(build_stats_path) if build_stats_path.exists() else {}

    validation_cfg = pipeline_cfg["validation"]
    share_min = float(validation_cfg["share_sum_min"])
    share_max = float(validation_cfg["share_sum_max"])
    id_property = pipeline_cfg["boundaries"]["id_property"]

    features = map_data.get("features", [])
    problem_counts: Counter = Counter()
    problem_samples: list[dict] = []
    with_results = 0
    turnout_undefined = 0
    for feature in features:
        props = feature.get("properties") or {}
        if "party_vote_shares" not in props:
            continue
        with_results += 1
        if props.get("turnout") is None:
            turnout_undefined += 1
        problems = _check_record(props, share_min, share_max)
        problem_counts.update(problems)
        if problems and len(problem_samples) < MAX_SAMPLES:
            problem_samples.append({"id": props.get(id_property), "problems": problems})

    index_ids = [entry.get("id") for entry in search_index]
    duplicate_index_ids = sum(count - 1 for count in Counter(index_ids).values() if count > 1)
    inverted_states = _check_bounds(state_bounds)

    warnings: list[str] = []
    errors: list[str] = sorted(problem for problem in problem_counts if problem not in SOFT_PROBLEMS)
    warnings.extend(sorted(problem for problem in problem_counts if problem in SOFT_PROBLEMS))

    if duplicate_index_ids:
        errors.append("DUPLICATE_SEARCH_INDEX_IDS")
    if inverted_states:
        errors.append("INVERTED_STATE_BOUNDS")
    without_results = len(features) - with_results
    if without_results:
        warnings.append("FEATURES_WITHOUT_RESULTS")
    if turnout_undefined:
        warnings.append("TURNOUT_UNDEFINED_PRESENT")
    if build_stats.get("parties_missing_from_palette"):
        warnings.append("PARTIES_MISSING_FROM_PALETTE")
    if build_stats.get("aggregate", {}).get("duplicate_party_rows"):
        warnings.append("DUPLICATE_PARTY_ROWS_PRESENT")

    report_payload = {
        "run_id": run_id,
        "counts": {
            "features": len(features),
            "features_with_results": with_results,
            "features_without_results": without_results,
            "constituencies": len(search_index),
            "states_framed": len(state_bounds),
            "turnout_undefined": turnout_undefined,
        },
        "quality": {
            "coverage_percent": 0.0 if not features else round((with_results / len(features)) * 100, 2),
            "problem_counts": dict(sorted(problem_counts.items())),
            "problem_samples": problem_samples,
        },
        "warnings": warnings,
        "errors": errors,
        "diagnostics": {
            "unmatched_feature_ids": build_stats.get("merge", {}).get("unmatched_ids", [])[:MAX_SAMPLES],
            "records_without_feature": build_stats.get("merge", {}).get("records_without_feature", [])[:MAX_SAMPLES],
            "parties_missing_from_palette": build_stats.get("parties_missing_from_palette", []),
        },
    }

    report_path = data_dir / "out" / "reports" / "quality_report.json"
    write_json(report_path, report_payload)
    if errors:
        raise ContractError(";".join(errors))
    return report_path
