from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import pytest
import requests

from subzonemap.config import load_config
from subzonemap.loader import DataLoadError, SourceFetcher, features_from_frame, load_map_sources


def test_load_map_sources_reads_both_inputs(config_path: Path) -> None:
    cfg = load_config(config_path)

    sources = load_map_sources(cfg.paths, cfg.data)

    assert [f.name for f in sources.features] == ["Downtown Core", "Outram", "Nowhere"]
    assert sources.features[0].geometry.geom_type == "Polygon"
    assert sources.population_header == ("subzone", "population")
    assert [r.region_key for r in sources.population.records] == ["DOWNTOWN CORE", "outram", "Tuas"]
    assert sources.population.records[2].population == 1500.0
    assert len(sources.population.rejected) == 2


def test_missing_population_file_raises_load_error(config_path: Path, data_dir: Path) -> None:
    (data_dir / "population.csv").unlink()
    cfg = load_config(config_path)

    with pytest.raises(DataLoadError) as excinfo:
        load_map_sources(cfg.paths, cfg.data)

    assert excinfo.value.source == "population"


def test_missing_region_property_raises_load_error(config_path: Path) -> None:
    text = config_path.read_text(encoding="utf-8").replace(
        "region_property: subzone", "region_property: Name"
    )
    config_path.write_text(text, encoding="utf-8")
    cfg = load_config(config_path)

    with pytest.raises(DataLoadError, match="no 'Name' property") as excinfo:
        load_map_sources(cfg.paths, cfg.data)

    assert excinfo.value.source == "boundaries"


class _FakeResponse:
    def __init__(self, text: str) -> None:
        self.text = text

    def raise_for_status(self) -> None:
        return None


def test_remote_sources_use_http_session(
    monkeypatch: pytest.MonkeyPatch,
    config_path: Path,
    geojson_payload: dict,
) -> None:
    text = config_path.read_text(encoding="utf-8")
    text = text.replace("boundaries: data/subzones.geojson", "boundaries: https://example.org/sz.json")
    text = text.replace("population: data/population.csv", "population: https://example.org/pop.csv")
    config_path.write_text(text, encoding="utf-8")
    cfg = load_config(config_path)

    bodies = {
        "https://example.org/sz.json": json.dumps(geojson_payload),
        "https://example.org/pop.csv": "subzone,population\nOutram,7\n",
    }
    calls: list[tuple[str, float]] = []

    def fake_get(self, url, timeout=None, **kwargs):
        calls.append((url, timeout))
        return _FakeResponse(bodies[url])

    monkeypatch.setattr(requests.Session, "get", fake_get)

    sources = load_map_sources(cfg.paths, cfg.data)

    assert len(sources.features) == 3
    assert sources.population.records[0].population == 7.0
    assert sorted(calls) == [
        ("https://example.org/pop.csv", 30.0),
        ("https://example.org/sz.json", 30.0),
    ]


def test_fetcher_reports_missing_local_file(tmp_path: Path, config_path: Path) -> None:
    fetcher = SourceFetcher(load_config(config_path).data)
    try:
        with pytest.raises(FileNotFoundError):
            fetcher.fetch_text(str(tmp_path / "missing.csv"))
    finally:
        fetcher.close()


def test_features_from_frame_keeps_name_and_geometry_only(geojson_payload: dict) -> None:
    gpd = pytest.importorskip("geopandas")
    for feature in geojson_payload["features"]:
        feature["properties"]["PLN_AREA_N"] = "CENTRAL"
    geojson_payload["features"][1]["properties"]["subzone"] = None
    frame = gpd.GeoDataFrame.from_features(geojson_payload["features"])

    features = features_from_frame(frame, "subzone")

    assert [f.name for f in features] == ["Downtown Core", "Nowhere"]
    assert [field.name for field in dataclasses.fields(features[0])] == ["name", "geometry"]
