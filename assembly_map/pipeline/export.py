"""Artifact export."""

from __future__ import annotations

from pathlib import Path

from assembly_map.common.deterministic import stable_sorted
from assembly_map.common.fs import write_json_set
from assembly_map.common.models import SearchIndexEntry


def artifact_paths(pipeline_cfg: dict, data_dir: Path) -> dict[str, Path]:
    output = pipeline_cfg["output"]
    out_dir = data_dir / "out"
    return {
        "map_data": out_dir / output["map_data_filename"],
        "search_index": out_dir / output["search_index_filename"],
        "state_bounds": out_dir / output["state_bounds_filename"],
    }


def write_artifacts(
    pipeline_cfg: dict,
    data_dir: Path,
    *,
    merged: dict,
    search_index: list[SearchIndexEntry],
    state_bounds: dict,
) -> dict[str, Path]:
    paths = artifact_paths(pipeline_cfg, data_dir)
    sorted_index = stable_sorted(search_index, key=lambda entry: entry.id)
    write_json_set(
        {
            paths["map_data"]: (merged, True),
            paths["search_index"]: ([entry.to_dict() for entry in sorted_index], False),
            paths["state_bounds"]: (state_bounds, False),
        }
    )
    return paths
