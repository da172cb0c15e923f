"""Utility helpers for the Letterstream service."""

from __future__ import annotations

import random
import re
import unicodedata
from typing import Iterable, Sequence, TypeVar


T = TypeVar("T")

TRAILING_YEAR_RE = re.compile(r"\s*\((\d{4})\)\s*$")


def slugify(value: str) -> str:
    """Return a URL-friendly slug."""

    value = unicodedata.normalize("NFKD", value)
    value = value.encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-zA-Z0-9]+", "-", value)
    value = value.strip("-")
    value = re.sub(r"-+", "-", value)
    return value.lower() or "film"


def split_title_year(name: str) -> tuple[str, str | None]:
    """Split ``"Dune (2021)"`` into ``("Dune", "2021")``."""

    match = TRAILING_YEAR_RE.search(name)
    if not match:
        return name.strip(), None
    return name[: match.start()].strip(), match.group(1)


def fallback_film_id(slug: str) -> str:
    """Synthesize a stable identifier for films without external ids."""

    return f"unknown_{slug.replace('/', '_')}"


def parse_skip(value: object) -> int:
    """Parse a pagination offset; anything invalid or negative becomes 0."""

    if value is None:
        return 0
    match = re.match(r"\s*(-?\d+)", str(value))
    if not match:
        return 0
    return max(0, int(match.group(1)))


def shuffled(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a uniformly random permutation of ``items`` as a new list."""

    generator = rng or random
    return generator.sample(list(items), len(items))


def unique_by(items: Iterable[T], key) -> list[T]:
    """Keep the first item for every key, preserving order."""

    seen: set = set()
    kept: list[T] = []
    for item in items:
        marker = key(item)
        if marker in seen:
            continue
        seen.add(marker)
        kept.append(item)
    return kept
