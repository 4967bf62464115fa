from __future__ import annotations

import json
from pathlib import Path

import pytest

CENTER = (103.8198, 1.3521)


def _box(min_lon: float, min_lat: float, max_lon: float, max_lat: float) -> dict:
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [min_lon, min_lat],
                [max_lon, min_lat],
                [max_lon, max_lat],
                [min_lon, max_lat],
                [min_lon, min_lat],
            ]
        ],
    }


def _feature(name: str, geometry: dict, prop: str = "subzone") -> dict:
    return {"type": "Feature", "properties": {prop: name}, "geometry": geometry}


@pytest.fixture
def geojson_payload() -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            # Contains the projection center.
            _feature("Downtown Core", _box(103.81, 1.34, 103.83, 1.36)),
            _feature("Outram", _box(103.79, 1.34, 103.81, 1.36)),
            _feature("Nowhere", _box(103.83, 1.34, 103.85, 1.36)),
        ],
    }


@pytest.fixture
def data_dir(tmp_path: Path, geojson_payload: dict) -> Path:
    data = tmp_path / "data"
    data.mkdir()
    (data / "subzones.geojson").write_text(json.dumps(geojson_payload), encoding="utf-8")
    (data / "population.csv").write_text(
        "subzone,population\n"
        "DOWNTOWN CORE,50000\n"
        "outram,20000\n"
        "Bad Row,abc\n"
        ",100\n"
        "Tuas,\"1,500\"\n",
        encoding="utf-8",
    )
    return data


CONFIG_TEMPLATE = """\
paths:
  boundaries: data/subzones.geojson
  population: data/population.csv
  output_image: build/map.png
  reports_dir: build/reports
  logs_dir: build/logs
data:
  region_property: subzone
  csv_region_column: subzone
  csv_population_column: population
  key_normalization: upper
scale:
  kind: {kind}
  colors: ["#ff0000", "#00ff00", "#0000ff"]
  breakpoints:
    - [0, "white"]
    - [100000, "black"]
projection:
  center: [103.8198, 1.3521]
  scale: 120000
viewport:
  width_px: 300
  height_px: 200
  dpi: 50
  fit: {fit}
render:
  title: Test map
"""


@pytest.fixture
def write_config(tmp_path: Path, data_dir: Path):
    def _write(*, kind: str = "quantize", fit: str = "window") -> Path:
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_TEMPLATE.format(kind=kind, fit=fit), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config_path(write_config) -> Path:
    return write_config()
