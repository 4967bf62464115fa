"""Region-key normalization shared by both sides of the population join."""

from __future__ import annotations

import unicodedata
from typing import Callable

KeyNormalizer = Callable[[str], str]


def _canonical_spacing(raw: str) -> str:
    text = unicodedata.normalize("NFKC", str(raw))
    return " ".join(text.split())


def normalize_region_key(raw: str) -> str:
    """Default join key: NFKC, collapsed whitespace, uppercase."""
    return _canonical_spacing(raw).upper()


def casefold_region_key(raw: str) -> str:
    return _canonical_spacing(raw).casefold()


def exact_region_key(raw: str) -> str:
    # Only trims; "Bukit Merah" and "BUKIT MERAH" stay distinct.
    return str(raw).strip()


_RULES: dict[str, KeyNormalizer] = {
    "upper": normalize_region_key,
    "casefold": casefold_region_key,
    "exact": exact_region_key,
}


def resolve_normalizer(rule: str) -> KeyNormalizer:
    """Return the normalizer registered under `rule` (upper, casefold, exact)."""
    try:
        return _RULES[rule.strip().casefold()]
    except KeyError as exc:
        allowed = ", ".join(sorted(_RULES))
        raise ValueError(f"Unknown key normalization '{rule}'; expected one of: {allowed}") from exc
