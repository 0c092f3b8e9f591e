"""CLI entrypoint for the assembly election map pipeline."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from assembly_map.common.config_loader import ConfigBundle, load_all_configs
from assembly_map.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, STAGES
from assembly_map.common.errors import PipelineError, StageError
from assembly_map.common.fs import dump_json, read_json, write_json
from assembly_map.common.logging import build_logger, log_event
from assembly_map.common.time_utils import generate_run_id
from assembly_map.explore.colors import ColorScheme
from assembly_map.explore.filters import FilterCatalog
from assembly_map.explore.search import list_states, search_constituencies
from assembly_map.explore.view import ViewState, render_view
from assembly_map.pipeline.build import run_build
from assembly_map.pipeline.export import artifact_paths
from assembly_map.pipeline.fetch import run_fetch
from assembly_map.pipeline.load import read_palette, source_path
from assembly_map.pipeline.reports import write_run_summary
from assembly_map.pipeline.validate import run_validate


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all", "query"])
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--strict", action="store_true")
    parser.add_argument("--view", default="", help="query string, e.g. mode=MARGIN&state=Kerala&margin=<2")
    parser.add_argument("--search", default=None, help="constituency name fragment")
    parser.add_argument("--output", default=None, help="write the query result here instead of stdout")
    return parser.parse_args(argv)


def execute_stage(stage: str, bundle: ConfigBundle, data_dir: Path, run_id: str):
    cfg = bundle.pipeline
    if stage == "fetch":
        run_fetch(cfg, data_dir, run_id)
    elif stage == "build":
        run_build(cfg, data_dir, run_id)
    elif stage == "validate":
        run_validate(cfg, data_dir, run_id)
    else:
        raise ValueError(f"Unknown stage: {stage}")


def run_query(args: argparse.Namespace, bundle: ConfigBundle, data_dir: Path) -> dict:
    paths = artifact_paths(bundle.pipeline, data_dir)
    for path in paths.values():
        if not path.exists():
            raise StageError(f"Missing artifact: {path}; run the build stage first")
    search_index = read_json(paths["search_index"])

    if args.search is not None:
        return {
            "term": args.search,
            "matches": search_constituencies(search_index, args.search),
        }

    catalog = FilterCatalog.from_config(bundle.classification)
    palette = read_palette(source_path(data_dir, bundle.pipeline["sources"]["palette"]))
    scheme = ColorScheme.from_config(bundle.classification, palette)
    view = ViewState.from_query_string(args.view, catalog, defaults=ViewState.default(bundle.classification))
    boundaries_cfg = bundle.pipeline["boundaries"]

    result = render_view(
        read_json(paths["map_data"]),
        view,
        catalog,
        scheme,
        id_property=boundaries_cfg["id_property"],
        state_property=boundaries_cfg["state_property"],
        state_bounds=read_json(paths["state_bounds"]),
    )
    result["view"] = view.to_query_string(catalog)
    result["states"] = list_states(search_index)
    result["legend"] = [
        {"color": color, "label": label}
        for color, label in scheme.legend(view.mode, list(result["seat_tally"]))
    ]
    return result


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    bundle = load_all_configs(config_dir, overlay_config_dir=overlay_config_dir)

    if args.command == "query":
        result = run_query(args, bundle, data_dir)
        if args.output:
            write_json(Path(args.output), result)
        else:
            sys.stdout.write(dump_json(result))
        return EXIT_SUCCESS

    stages = STAGES if args.command == "all" else (args.command,)
    failed_stages: list[str] = []

    for stage in stages:
        log_event(logger, "stage start", run_id=run_id, stage=stage, event="STAGE_START", status="ok")
        try:
            execute_stage(stage, bundle, data_dir, run_id)
        except PipelineError as exc:
            failed_stages.append(stage)
            log_event(
                logger,
                f"stage failed: {exc}",
                run_id=run_id,
                stage=stage,
                event="STAGE_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            if exc.error_code in {"CONTRACT_ERROR", "INPUT_ERROR"} or args.strict:
                write_run_summary(data_dir, run_id=run_id, stages=list(stages), failed_stages=failed_stages)
                return EXIT_HARD_FAIL
            continue
        except Exception:
            failed_stages.append(stage)
            logger.exception(
                "unexpected failure",
                extra={"run_id": run_id, "stage": stage, "event": "STAGE_FAIL", "status": "error", "error_code": "UNEXPECTED_ERROR"},
            )
            if args.strict:
                write_run_summary(data_dir, run_id=run_id, stages=list(stages), failed_stages=failed_stages)
                return EXIT_HARD_FAIL
            continue
        log_event(logger, "stage end", run_id=run_id, stage=stage, event="STAGE_END", status="ok")

    write_run_summary(data_dir, run_id=run_id, stages=list(stages), failed_stages=failed_stages)
    if failed_stages:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL
    except Exception:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
