import json
from pathlib import Path

import pytest
from openpyxl import Workbook

from assembly_map.common.config_loader import load_all_configs
from assembly_map.common.errors import InputError
from assembly_map.pipeline.load import parse_rows, read_boundaries, read_palette, read_table


@pytest.fixture(scope="module")
def columns() -> dict:
    return load_all_configs(Path("config")).pipeline["columns"]


def test_csv_rows_parse_into_typed_rows(tmp_path: Path, results_csv, columns):
    header, table_rows = read_table(results_csv(tmp_path / "results.csv"))

    rows, stats = parse_rows(header, table_rows, columns)

    assert stats == {"table_rows": 6, "parsed_rows": 6, "skipped_rows": 0}
    first = rows[0]
    assert first.ac_id == 101
    assert first.st_name == "Kerala"
    assert first.votes == 50000
    assert first.total_electors == 100000
    assert first.wiki_link is None


def test_rows_without_constituency_id_are_skipped(columns):
    header = list(columns.values())
    table_rows = [
        {columns["ac_id"]: "", columns["candidate_name"]: "Nobody", columns["party"]: "X", columns["votes"]: "1"},
        {columns["ac_id"]: "7", columns["candidate_name"]: "Some", columns["party"]: "Y", columns["votes"]: "1,204"},
    ]

    rows, stats = parse_rows(header, table_rows, columns)

    assert [row.ac_id for row in rows] == [7]
    assert rows[0].votes == 1204
    assert stats["skipped_rows"] == 1


def test_missing_structural_column_is_fatal(columns):
    header = [source for name, source in columns.items() if name != "votes"]

    with pytest.raises(InputError, match="TOTAL"):
        parse_rows(header, [], columns)


def test_xlsx_workbook_is_read_from_first_sheet(tmp_path: Path, columns):
    path = tmp_path / "results.xlsx"
    workbook = Workbook()
    sheet = workbook.active
    sheet.append([columns["ac_id"], columns["candidate_name"], columns["party"], columns["votes"]])
    sheet.append([5, "Xavier", "BJP", 321])
    sheet.append([None, None, None, None])
    workbook.save(path)

    header, table_rows = read_table(path)
    rows, _stats = parse_rows(header, table_rows, columns)

    assert [(row.ac_id, row.candidate_name, row.votes) for row in rows] == [(5, "Xavier", 321)]


def test_unsupported_or_missing_results_raise(tmp_path: Path):
    with pytest.raises(InputError):
        read_table(tmp_path / "absent.csv")
    (tmp_path / "results.txt").write_text("x", encoding="utf-8")
    with pytest.raises(InputError):
        read_table(tmp_path / "results.txt")


def test_boundaries_must_be_a_feature_collection(tmp_path: Path):
    path = tmp_path / "b.geojson"
    path.write_text(json.dumps({"type": "Feature"}), encoding="utf-8")
    with pytest.raises(InputError):
        read_boundaries(path)

    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(InputError):
        read_boundaries(path)

    path.write_text(
        json.dumps({"type": "FeatureCollection", "features": [{"type": "Feature", "properties": {}, "geometry": {"type": "Polygon", "coordinates": [[["x"]]]}}]}),
        encoding="utf-8",
    )
    with pytest.raises(InputError):
        read_boundaries(path)


def test_boundaries_are_reprojected_to_wgs84(tmp_path: Path):
    path = tmp_path / "b.geojson"
    # Web Mercator origin maps back to 0,0.
    payload = {
        "type": "FeatureCollection",
        "crs": {"type": "name", "properties": {"name": "EPSG:3857"}},
        "features": [{"type": "Feature", "properties": {"ac_id": 1}, "geometry": {"type": "Point", "coordinates": [0.0, 0.0]}}],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")

    collection = read_boundaries(path, source_epsg=3857)

    lon, lat = collection["features"][0]["geometry"]["coordinates"]
    assert lon == pytest.approx(0.0, abs=1e-9)
    assert lat == pytest.approx(0.0, abs=1e-9)
    assert "crs" not in collection


def test_palette_accepts_strings_and_unit_quadruples(tmp_path: Path):
    path = tmp_path / "colors.json"
    path.write_text(json.dumps({"BJP": "#ff9933", "INC": [0, 0, 1, 1]}), encoding="utf-8")
    assert read_palette(path) == {"BJP": "#ff9933", "INC": [0, 0, 1, 1]}

    yaml_path = tmp_path / "colors.yml"
    yaml_path.write_text("CPI: '#cc0000'\n", encoding="utf-8")
    assert read_palette(yaml_path) == {"CPI": "#cc0000"}


@pytest.mark.parametrize("entry", [[0, 0, 2, 1], [0, 0, 1], 17, [True, 0, 0, 1]])
def test_palette_rejects_out_of_range_entries(tmp_path: Path, entry):
    path = tmp_path / "colors.json"
    path.write_text(json.dumps({"X": entry}), encoding="utf-8")

    with pytest.raises(InputError):
        read_palette(path)


def test_overflowing_numbers_degrade_instead_of_crashing(columns):
    header = list(columns.values())
    table_rows = [
        {columns["ac_id"]: "1e999", columns["candidate_name"]: "Ghost", columns["party"]: "X", columns["votes"]: "1"},
        {columns["ac_id"]: "7", columns["candidate_name"]: "Some", columns["party"]: "Y", columns["votes"]: "1e999", columns["total_electors"]: "inf"},
    ]

    rows, stats = parse_rows(header, table_rows, columns)

    assert [row.ac_id for row in rows] == [7]
    assert rows[0].votes == 0
    assert rows[0].total_electors is None
    assert stats["skipped_rows"] == 1


def test_boundaries_with_non_finite_numbers_are_rejected(tmp_path: Path):
    path = tmp_path / "b.geojson"
    path.write_text('{"type": "FeatureCollection", "features": [{"type": "Feature", "properties": {"ac_id": Infinity}, "geometry": null}]}', encoding="utf-8")

    with pytest.raises(InputError, match="non-finite"):
        read_boundaries(path)
