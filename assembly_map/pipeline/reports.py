"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from assembly_map.common.fs import read_json, write_json


def write_run_summary(data_dir: Path, run_id: str, stages: list[str], failed_stages: list[str]) -> Path:
    build_stats_path = data_dir / "intermediate" / "build_stats.json"
    quality_path = data_dir / "out" / "reports" / "quality_report.json"

    build_stats = read_json(build_stats_path) if build_stats_path.exists() else {}
    quality = read_json(quality_path) if quality_path.exists() else {}

    merge = build_stats.get("merge", {})
    totals = {
        "result_rows": int(build_stats.get("inputs", {}).get("parsed_rows", 0)),
        "skipped_rows": int(build_stats.get("inputs", {}).get("skipped_rows", 0)),
        "constituencies": int(build_stats.get("aggregate", {}).get("constituencies", 0)),
        "features_matched": int(merge.get("matched", 0)),
        "features_unmatched": int(merge.get("unmatched", 0)),
        "turnout_undefined": int(build_stats.get("aggregate", {}).get("turnout_undefined", 0)),
    }
    warning_count = len(quality.get("warnings", []))
    error_count = len(quality.get("errors", [])) + len(failed_stages)

    status = "success"
    if error_count > 0:
        status = "error"
    elif warning_count > 0:
        status = "partial"

    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    payload = {
        "run_id": run_id,
        "status": status,
        "stages": stages,
        "failed_stages": failed_stages,
        "totals": totals,
        "warning_count": warning_count,
        "error_count": error_count,
        "warnings": quality.get("warnings", []),
    }
    write_json(summary_path, payload)
    return summary_path
