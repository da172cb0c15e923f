"""Fetches a Letterboxd user's rated films as raw scrape candidates."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable

import httpx
from selectolax.lexbor import LexborHTMLParser

from ..config import Settings
from ..errors import TransientExternalError, ZeroQualifyingFilmsError
from ..utils import slugify

logger = logging.getLogger(__name__)

RATED_CLASS_RE = re.compile(r"\brated-(\d+)\b")
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass(slots=True)
class RawCandidate:
    """One film entry as scraped from the ratings page."""

    name: str
    rating: float
    slug: str
    url: str
    letterboxd_id: str | None = None


def parse_rated_films(html: str, *, site_url: str = "https://letterboxd.com") -> list[RawCandidate]:
    """Extract film entries, in page order, from a ``films/by/rated-date`` page."""

    tree = LexborHTMLParser(html)
    candidates: list[RawCandidate] = []
    for item in tree.css("li.griditem"):
        component = item.css_first(".react-component")
        if component is None:
            continue
        attrs = component.attributes
        film_slug = attrs.get("data-item-slug")
        name = attrs.get("data-item-name")
        if not name:
            continue
        if not film_slug:
            film_slug = slugify(name)

        rating = 0.0
        rating_span = item.css_first("span.rating")
        if rating_span is not None:
            match = RATED_CLASS_RE.search(rating_span.attributes.get("class") or "")
            if match:
                rating = int(match.group(1)) / 2

        candidates.append(
            RawCandidate(
                name=name,
                rating=rating,
                slug=f"/film/{film_slug}/",
                url=f"{site_url.rstrip('/')}/film/{film_slug}/",
                letterboxd_id=attrs.get("data-film-id"),
            )
        )
    return candidates


def select_qualifying(
    candidates: Iterable[RawCandidate], *, min_rating: float = 3.0, limit: int = 10
) -> list[RawCandidate]:
    """Keep films rated at least ``min_rating`` in feed order, up to ``limit``."""

    qualifying = [candidate for candidate in candidates if candidate.rating >= min_rating]
    if not qualifying:
        raise ZeroQualifyingFilmsError(f"No films found with rating >= {min_rating} stars")
    return qualifying[:limit]


class LetterboxdFeed:
    """Downloads and parses the configured user's ratings page."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def fetch(self) -> list[RawCandidate]:
        url = self._settings.letterboxd_films_url
        logger.info("Fetching rated films from %s", url)
        try:
            response = await self._client.get(url, headers={"User-Agent": USER_AGENT})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransientExternalError(f"Letterboxd request failed: {exc}") from exc

        candidates = parse_rated_films(response.text, site_url=str(self._settings.letterboxd_url))
        logger.info("Found %s films on the ratings page", len(candidates))
        return candidates
