"""Build stage: load, aggregate, merge, frame and export in one pass."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from assembly_map.common.fs import write_json
from assembly_map.common.logging import log_event
from assembly_map.pipeline.aggregate import run_aggregate
from assembly_map.pipeline.bounds import compute_state_bounds
from assembly_map.pipeline.export import write_artifacts
from assembly_map.pipeline.load import load_inputs
from assembly_map.pipeline.merge import merge_features

logger = logging.getLogger(__name__)


def run_build(pipeline_cfg: dict, data_dir: Path, run_id: str) -> dict:
    started = time.monotonic()
    # Any structural input error raises here, before a single artifact is written.
    inputs = load_inputs(pipeline_cfg, data_dir)
    log_event(
        logger,
        "inputs loaded",
        stage="build",
        event="INPUTS_LOADED",
        status="ok",
        rows_in=inputs.stats["table_rows"],
        rows_out=inputs.stats["parsed_rows"],
    )

    aggregated = run_aggregate(inputs.rows)
    boundaries_cfg = pipeline_cfg["boundaries"]
    merged, merge_stats = merge_features(
        inputs.boundaries,
        aggregated["records"],
        id_property=boundaries_cfg["id_property"],
    )
    state_bounds = compute_state_bounds(merged, state_property=boundaries_cfg["state_property"])

    paths = write_artifacts(
        pipeline_cfg,
        data_dir,
        merged=merged,
        search_index=aggregated["search_index"],
        state_bounds=state_bounds,
    )

    parties_seen = sorted(
        {party for record in aggregated["records"].values() for party in record.party_vote_shares}
    )
    payload = {
        "run_id": run_id,
        "inputs": inputs.stats,
        "aggregate": aggregated["stats"],
        "merge": merge_stats,
        "states_framed": len(state_bounds),
        "parties_missing_from_palette": [party for party in parties_seen if party not in inputs.palette],
        "artifacts": {name: str(path) for name, path in sorted(paths.items())},
    }
    write_json(data_dir / "intermediate" / "build_stats.json", payload)

    log_event(
        logger,
        f"merged {merge_stats['matched']} features, {merge_stats['unmatched']} without results",
        stage="build",
        event="BUILD_DONE",
        status="ok",
        rows_in=len(inputs.rows),
        rows_out=aggregated["stats"]["constituencies"],
        duration_ms=int((time.monotonic() - started) * 1000),
    )
    return payload
