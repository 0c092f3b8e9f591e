"""Input loading: result rows, boundary geometry and the party palette."""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from assembly_map.common.errors import InputError
from assembly_map.common.fs import read_yaml
from assembly_map.common.geometry import build_transformer, geometry_tree, reproject_geometry
from assembly_map.common.models import RawRow

logger = logging.getLogger(__name__)

# Without these a row cannot be attributed to a constituency or ranked.
STRUCTURAL_COLUMNS = ("ac_id", "candidate_name", "party", "votes")


@dataclass(frozen=True)
class LoadedInputs:
    rows: list[RawRow]
    boundaries: dict
    palette: dict
    stats: dict


def source_path(data_dir: Path, source_cfg: dict) -> Path:
    path = Path(source_cfg["path"])
    return path if path.is_absolute() else data_dir / path


def _safe_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def _clean_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean_value(value: Any) -> Any:
    if isinstance(value, str):
        return _clean_str(value)
    return value


def _read_csv(path: Path) -> tuple[list[str], list[dict]]:
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        return list(reader.fieldnames or []), list(reader)


def _read_xlsx(path: Path, sheet: str | None) -> tuple[list[str], list[dict]]:
    from openpyxl import load_workbook

    workbook = load_workbook(filename=path, read_only=True, data_only=True)
    try:
        worksheet = workbook[sheet] if sheet else workbook.worksheets[0]
        values = worksheet.iter_rows(values_only=True)
        header_row = next(values, None)
        if header_row is None:
            return [], []
        header = [str(cell).strip() if cell is not None else "" for cell in header_row]
        rows = []
        for raw in values:
            if raw is None or all(cell is None for cell in raw):
                continue
            rows.append(dict(zip(header, raw)))
        return header, rows
    finally:
        workbook.close()


def read_table(path: Path, sheet: str | None = None) -> tuple[list[str], list[dict]]:
    if not path.exists():
        raise InputError(f"Missing results input: {path}")
    suffix = path.suffix.lower()
    try:
        if suffix == ".csv":
            return _read_csv(path)
        if suffix in {".xlsx", ".xlsm"}:
            return _read_xlsx(path, sheet)
    except InputError:
        raise
    except Exception as exc:
        raise InputError(f"Unreadable results input {path}: {exc}") from exc
    raise InputError(f"Unsupported results format: {path.suffix}")


def parse_rows(header: Iterable[str], table_rows: list[dict], columns: dict) -> tuple[list[RawRow], dict]:
    header_set = set(header)
    missing = [columns[name] for name in STRUCTURAL_COLUMNS if columns[name] not in header_set]
    if missing:
        raise InputError(f"Results input lacks required columns: {', '.join(missing)}")

    absent_optional = sorted(name for name, source in columns.items() if source not in header_set)
    if absent_optional:
        logger.warning(
            "results input lacks optional columns: %s",
            ", ".join(absent_optional),
            extra={"stage": "build", "source": "results", "event": "COLUMNS_MISSING"},
        )

    def _get(row: dict, name: str) -> Any:
        return _clean_value(row.get(columns[name]))

    rows: list[RawRow] = []
    skipped = 0
    for table_row in table_rows:
        ac_id = _safe_int(_get(table_row, "ac_id"))
        if ac_id is None:
            skipped += 1
            continue
        rows.append(
            RawRow(
                ac_id=ac_id,
                ac_name=_clean_str(_get(table_row, "ac_name")),
                st_name=_clean_str(_get(table_row, "st_name")),
                st_code=_clean_str(_get(table_row, "st_code")),
                ac_no=_safe_int(_get(table_row, "ac_no")),
                candidate_name=_clean_str(_get(table_row, "candidate_name")),
                party=_clean_str(_get(table_row, "party")),
                age=_safe_int(_get(table_row, "age")),
                gender=_clean_str(_get(table_row, "gender")),
                category=_clean_str(_get(table_row, "category")),
                votes=_safe_int(_get(table_row, "votes")) or 0,
                postal_votes=_safe_int(_get(table_row, "postal_votes")) or 0,
                total_electors=_safe_int(_get(table_row, "total_electors")),
                year=_safe_int(_get(table_row, "year")),
                is_bye_election=_get(table_row, "is_bye_election"),
                wiki_link=_clean_str(_get(table_row, "wiki_link")),
            )
        )

    if skipped:
        logger.warning(
            "skipped %d result rows without a constituency id",
            skipped,
            extra={"stage": "build", "source": "results", "event": "ROWS_SKIPPED"},
        )
    stats = {"table_rows": len(table_rows), "parsed_rows": len(rows), "skipped_rows": skipped}
    return rows, stats


def _reject_non_finite(token: str):
    raise ValueError(f"non-finite number {token} is not valid JSON")


def read_boundaries(path: Path, source_epsg: int | None = None) -> dict:
    if not path.exists():
        raise InputError(f"Missing boundaries input: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f, parse_constant=_reject_non_finite)
    except (OSError, ValueError) as exc:
        raise InputError(f"Unparsable boundaries document {path}: {exc}") from exc

    if not isinstance(payload, dict) or payload.get("type") != "FeatureCollection":
        raise InputError(f"Boundaries document is not a FeatureCollection: {path}")
    features = payload.get("features")
    if not isinstance(features, list):
        raise InputError(f"Boundaries document has no feature list: {path}")

    transformer = build_transformer(source_epsg)
    checked: list[dict] = []
    for idx, feature in enumerate(features):
        if not isinstance(feature, dict) or feature.get("type") != "Feature":
            raise InputError(f"features[{idx}] is not a GeoJSON Feature")
        properties = feature.get("properties")
        if properties is not None and not isinstance(properties, dict):
            raise InputError(f"features[{idx}].properties must be an object")
        # Parse once up front so a broken ring fails the load, not the bounds step.
        geometry_tree(feature.get("geometry"))
        if transformer is not None:
            feature = {**feature, "geometry": reproject_geometry(feature.get("geometry"), transformer)}
        checked.append(feature)

    collection = {key: value for key, value in payload.items() if key != "crs" or transformer is None}
    collection["features"] = checked
    return collection


def _validate_palette(palette: Any, path: Path) -> dict:
    if not isinstance(palette, dict):
        raise InputError(f"Palette must map party to color: {path}")
    for party, value in palette.items():
        if isinstance(value, str):
            continue
        if (
            isinstance(value, (list, tuple))
            and len(value) == 4
            and all(isinstance(channel, (int, float)) and not isinstance(channel, bool) for channel in value)
            and all(0 <= channel <= 1 for channel in value)
        ):
            continue
        raise InputError(f"Unsupported palette entry for party {party!r}: {value!r}")
    return palette


def read_palette(path: Path) -> dict:
    if not path.exists():
        raise InputError(f"Missing palette input: {path}")
    try:
        if path.suffix.lower() in {".yml", ".yaml"}:
            palette = read_yaml(path)
        else:
            with path.open("r", encoding="utf-8") as f:
                palette = json.load(f)
    except Exception as exc:
        raise InputError(f"Unparsable palette {path}: {exc}") from exc
    return _validate_palette(palette, path)


def load_inputs(pipeline_cfg: dict, data_dir: Path) -> LoadedInputs:
    sources = pipeline_cfg["sources"]
    results_cfg = sources["results"]

    header, table_rows = read_table(source_path(data_dir, results_cfg), results_cfg.get("sheet"))
    rows, row_stats = parse_rows(header, table_rows, pipeline_cfg["columns"])
    boundaries = read_boundaries(
        source_path(data_dir, sources["boundaries"]),
        pipeline_cfg["boundaries"].get("source_epsg"),
    )
    palette = read_palette(source_path(data_dir, sources["palette"]))

    stats = {
        **row_stats,
        "features": len(boundaries["features"]),
        "palette_parties": len(palette),
    }
    return LoadedInputs(rows=rows, boundaries=boundaries, palette=palette, stats=stats)
