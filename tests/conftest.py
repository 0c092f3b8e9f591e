import csv
import json
from pathlib import Path

import pytest

HEADER = [
    "AC ID",
    "AC NAME",
    "STATE/UT NAME",
    "STATE CODE",
    "AC NO.",
    "CANDIDATE NAME",
    "PARTY",
    "AGE",
    "GENDER",
    "CATEGORY",
    "TOTAL",
    "POSTAL",
    "TOTAL ELECTORS",
    "YEAR",
    "BYELECTION",
    "WIKIPEDIA LINK",
]

# (ac_id, ac_name, state, state_code, candidate, party, age, gender, category, votes, postal, electors)
RESULT_ROWS = [
    (101, "Alpha", "Kerala", "S11", "Asha", "BJP", 40, "MALE", "GEN", 50000, 120, 100000),
    (101, "Alpha", "Kerala", "S11", "Bina", "INC", 50, "FEMALE", "SC", 30000, 80, 100000),
    (101, "Alpha", "Kerala", "S11", "Chandu", "CPI", 30, "MALE", "GEN", 5000, 0, 100000),
    (102, "Beta", "Kerala", "S11", "Devi", "INC", 60, "FEMALE", "SC", 40000, 10, 0),
    (102, "Beta", "Kerala", "S11", "Eshan", "BJP", 33, "MALE", "GEN", 39500, 5, 0),
    (201, "Gamma", "Goa", "S05", "Farid", "IND", 70, "MALE", "ST", 1000, 0, 2000),
]


def _square(min_lon: float, min_lat: float, max_lon: float, max_lat: float) -> dict:
    ring = [[min_lon, min_lat], [max_lon, min_lat], [max_lon, max_lat], [min_lon, max_lat], [min_lon, min_lat]]
    return {"type": "Polygon", "coordinates": [ring]}


def _feature(ac_id: int, state: str, geometry: dict) -> dict:
    return {"type": "Feature", "properties": {"ac_id": ac_id, "st_name": state}, "geometry": geometry}


BOUNDARIES = {
    "type": "FeatureCollection",
    "features": [
        _feature(101, "Kerala", _square(76.0, 8.0, 77.0, 9.0)),
        _feature(102, "Kerala", _square(76.5, 9.0, 77.5, 10.0)),
        _feature(201, "Goa", _square(73.8, 15.0, 74.2, 15.5)),
        _feature(999, "Goa", _square(74.0, 15.2, 74.3, 15.8)),
    ],
}

PALETTE = {"BJP": "#ff9933", "INC": [0, 0, 1, 1], "CPI": "#cc0000"}


def write_results_csv(path: Path, rows=RESULT_ROWS, header=HEADER) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for ac_id, ac_name, state, code, name, party, age, gender, category, votes, postal, electors in rows:
            writer.writerow(
                [ac_id, ac_name, state, code, ac_id % 100, name, party, age, gender, category, votes, postal, electors, 2021, "NO", ""]
            )
    return path


def write_inputs(data_dir: Path, boundaries: dict = BOUNDARIES, palette: dict = PALETTE) -> Path:
    """Lay out the sample dataset under ``data_dir/raw`` and return an overlay config dir."""
    raw = data_dir / "raw"
    write_results_csv(raw / "results.csv")
    (raw / "india_asm.geojson").write_text(json.dumps(boundaries), encoding="utf-8")
    (raw / "colors.json").write_text(json.dumps(palette), encoding="utf-8")

    overlay = data_dir.parent / f"{data_dir.name}_overlay"
    overlay.mkdir(parents=True, exist_ok=True)
    (overlay / "pipeline.yml").write_text("sources:\n  results:\n    path: raw/results.csv\n", encoding="utf-8")
    return overlay


@pytest.fixture
def sample_inputs(tmp_path: Path) -> tuple[Path, Path]:
    data_dir = tmp_path / "data"
    overlay = write_inputs(data_dir)
    return data_dir, overlay


@pytest.fixture
def results_csv():
    return write_results_csv
