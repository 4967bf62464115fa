"""Population table parsing and index construction."""

from __future__ import annotations

import csv
import io
import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from .keys import KeyNormalizer, normalize_region_key
from .models import PopulationIndex, PopulationRecord

_LOGGER = logging.getLogger("subzonemap.population")

# Census tables use "-" for subzones with no resident population.
_ZERO_MARKERS = {"-"}


@dataclass(slots=True)
class PopulationParseResult:
    records: list[PopulationRecord] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.records) + len(self.rejected)


def read_population_rows(text: str) -> tuple[list[str], list[dict[str, Any]]]:
    """Split CSV text into its header and dict rows."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    header = [str(name).strip() for name in (reader.fieldnames or [])]
    reader.fieldnames = header
    rows = [dict(row) for row in reader]
    return header, rows


def parse_population_value(raw: Any) -> float:
    """Parse a population cell into a finite non-negative float."""
    if raw is None:
        raise ValueError("missing population value")
    if isinstance(raw, bool):
        raise ValueError(f"invalid population value {raw!r}")
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip().replace(",", "").replace("_", "")
        if not text:
            raise ValueError("empty population value")
        if text in _ZERO_MARKERS:
            return 0.0
        value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"non-finite population value {raw!r}")
    if value < 0:
        raise ValueError(f"negative population value {raw!r}")
    return value


def _column_lookup(header: Iterable[str], wanted: str) -> str | None:
    by_lower = {str(col).strip().casefold(): col for col in header}
    return by_lower.get(wanted.strip().casefold())


def parse_population_rows(
    rows: Sequence[Mapping[str, Any]],
    *,
    region_column: str,
    population_column: str,
    header: Sequence[str] | None = None,
) -> PopulationParseResult:
    """Convert CSV dict rows into records, excluding malformed ones.

    Rows with an empty region name or an unparseable population are rejected
    and reported instead of entering the index as zero.
    """
    columns = list(header) if header is not None else (list(rows[0].keys()) if rows else [])
    region_col = _column_lookup(columns, region_column)
    pop_col = _column_lookup(columns, population_column)
    if columns and (region_col is None or pop_col is None):
        available = ", ".join(str(col) for col in columns)
        raise ValueError(
            f"Population table must have columns '{region_column}' and '{population_column}'. "
            f"Available columns: {available}"
        )

    result = PopulationParseResult()
    # Header is line 1.
    for row_number, row in enumerate(rows, start=2):
        raw_key = row.get(region_col) if region_col is not None else None
        key = str(raw_key).strip() if raw_key is not None else ""
        if not key:
            message = f"row {row_number}: empty region name"
            _LOGGER.warning("Skipping population %s", message)
            result.rejected.append(message)
            continue
        try:
            population = parse_population_value(row.get(pop_col) if pop_col is not None else None)
        except ValueError as exc:
            message = f"row {row_number} ({key}): {exc}"
            _LOGGER.warning("Skipping population %s", message)
            result.rejected.append(message)
            continue
        result.records.append(
            PopulationRecord(region_key=key, population=population, row_number=row_number)
        )
    return result


def build_population_index(
    records: Iterable[PopulationRecord],
    normalize: KeyNormalizer = normalize_region_key,
) -> PopulationIndex:
    """Build the normalized-key lookup; later duplicates overwrite earlier ones."""
    entries: dict[str, float] = {}
    for record in records:
        key = normalize(record.region_key)
        if not key:
            continue
        if key in entries:
            _LOGGER.debug(
                "Duplicate population key %s: %s replaced by %s",
                key,
                entries[key],
                record.population,
            )
        entries[key] = float(record.population)
    return PopulationIndex(entries)


def duplicate_keys(
    records: Iterable[PopulationRecord],
    normalize: KeyNormalizer = normalize_region_key,
) -> list[str]:
    counts = Counter(normalize(record.region_key) for record in records)
    return sorted(key for key, count in counts.items() if key and count > 1)
