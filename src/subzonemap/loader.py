"""Concurrent loading of the boundary file and the population table."""

from __future__ import annotations

import json
import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

import requests

from .config import DataConfig, PathsConfig, is_remote_source
from .models import RegionFeature
from .population import PopulationParseResult, parse_population_rows, read_population_rows

_LOGGER = logging.getLogger("subzonemap.loader")

BOUNDARIES = "boundaries"
POPULATION = "population"


class DataLoadError(RuntimeError):
    """Raised when an input source cannot be fetched or parsed."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"Failed loading {source}: {message}")
        self.source = source


@dataclass(frozen=True, slots=True)
class MapSources:
    features: tuple[RegionFeature, ...]
    population: PopulationParseResult
    population_header: tuple[str, ...]


def _first_existing_column(columns: Iterable[str], candidates: Sequence[str]) -> str | None:
    existing = {str(col).lower(): str(col) for col in columns}
    for candidate in candidates:
        match = existing.get(candidate.lower())
        if match:
            return match
    return None


class SourceFetcher:
    """Reads local files or fetches `http(s)` sources with a bounded timeout."""

    def __init__(self, cfg: DataConfig) -> None:
        self.cfg = cfg
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": cfg.user_agent})

    def fetch_text(self, source: str) -> str:
        if is_remote_source(source):
            response = self._session.get(source, timeout=self.cfg.request_timeout_s)
            response.raise_for_status()
            return response.text
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Input file not found: {path}")
        return path.read_text(encoding="utf-8-sig")

    def close(self) -> None:
        self._session.close()


def load_boundaries(fetcher: SourceFetcher, source: str, region_property: str) -> tuple[RegionFeature, ...]:
    gpd = _require_geopandas()
    if is_remote_source(source):
        payload = json.loads(fetcher.fetch_text(source))
        if not isinstance(payload, dict) or not isinstance(payload.get("features"), list):
            raise ValueError("Expected a GeoJSON FeatureCollection")
        frame = gpd.GeoDataFrame.from_features(payload["features"], crs="EPSG:4326")
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Input file not found: {path}")
        frame = gpd.read_file(path)
        if frame.crs is not None and not frame.crs.equals("EPSG:4326", ignore_axis_order=True):
            frame = frame.to_crs("EPSG:4326")
    return features_from_frame(frame, region_property)


def features_from_frame(frame: Any, region_property: str) -> tuple[RegionFeature, ...]:
    """Turn GeoDataFrame rows into features named by `region_property`."""
    columns = [str(col) for col in frame.columns if str(col) != "geometry"]
    name_col = _first_existing_column(columns, [region_property])
    if name_col is None:
        available = ", ".join(columns)
        raise ValueError(
            f"Boundary features have no '{region_property}' property. Available properties: {available}"
        )

    features: list[RegionFeature] = []
    skipped = 0
    for row in frame.to_dict(orient="records"):
        geometry = row.pop("geometry", None)
        name_val = row.get(name_col)
        name = str(name_val).strip() if name_val is not None else ""
        if not name or name.casefold() == "nan" or geometry is None:
            skipped += 1
            continue
        features.append(RegionFeature(name=name, geometry=geometry))
    if skipped:
        _LOGGER.warning("Skipped %d boundary features without a name or geometry", skipped)
    return tuple(features)


def load_population(
    fetcher: SourceFetcher,
    source: str,
    *,
    region_column: str,
    population_column: str,
) -> tuple[PopulationParseResult, tuple[str, ...]]:
    header, rows = read_population_rows(fetcher.fetch_text(source))
    if not header:
        raise ValueError("Population table is empty")
    parsed = parse_population_rows(
        rows,
        region_column=region_column,
        population_column=population_column,
        header=header,
    )
    return parsed, tuple(header)


def load_map_sources(paths: PathsConfig, data: DataConfig) -> MapSources:
    """Fetch both inputs in parallel and return only once both have arrived."""
    fetcher = SourceFetcher(data)
    try:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="subzonemap-load") as pool:
            futures: dict[str, Future[Any]] = {
                BOUNDARIES: pool.submit(
                    load_boundaries, fetcher, paths.boundaries, data.region_property
                ),
                POPULATION: pool.submit(
                    load_population,
                    fetcher,
                    paths.population,
                    region_column=data.csv_region_column,
                    population_column=data.csv_population_column,
                ),
            }
            wait(futures.values(), return_when=FIRST_EXCEPTION)
            failures: list[DataLoadError] = []
            for name, future in futures.items():
                if future.done() and future.exception() is not None:
                    exc = future.exception()
                    failures.append(DataLoadError(name, str(exc)))
                    _LOGGER.error("Loading %s failed: %s", name, exc)
            if failures:
                for future in futures.values():
                    future.cancel()
                raise failures[0]
            features = futures[BOUNDARIES].result()
            population, header = futures[POPULATION].result()
    finally:
        fetcher.close()

    _LOGGER.info(
        "Loaded %d boundary features and %d population rows (%d rejected)",
        len(features),
        population.row_count,
        len(population.rejected),
    )
    return MapSources(features=features, population=population, population_header=header)


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for boundary loading") from exc
    return gpd
