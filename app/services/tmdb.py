"""Utilities for resolving film metadata from The Movie Database (TMDB)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import httpx

from ..config import Settings
from ..models import FilmRecord
from ..utils import fallback_film_id, split_title_year

if TYPE_CHECKING:
    from .letterboxd import RawCandidate

logger = logging.getLogger(__name__)

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
METAHUB_POSTER_URL = "https://images.metahub.space/poster/medium/{id}"
METAHUB_LOGO_URL = "https://images.metahub.space/logo/medium/{id}"


@dataclass(slots=True)
class FilmMatch:
    """Normalized view of a TMDB movie match."""

    id: str
    name: str
    year: str
    runtime: int
    poster: str | None
    tmdb_id: int

    def to_record(self) -> FilmRecord:
        return FilmRecord(
            id=self.id,
            name=self.name,
            year=self.year,
            runtime=self.runtime,
            poster=self.poster,
            tmdb_id=self.tmdb_id,
        )


def artwork_urls(film_id: str) -> dict[str, str]:
    """Return Metahub poster/logo URLs for IMDb identifiers."""

    if not film_id.startswith("tt"):
        return {}
    return {
        "poster": METAHUB_POSTER_URL.format(id=film_id),
        "logo": METAHUB_LOGO_URL.format(id=film_id),
    }


class TMDBClient:
    """Looks up runtime and poster art, degrading to empty results on failure."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._poster_cache: dict[str, str | None] = {}

    @property
    def enabled(self) -> bool:
        return bool(self._settings.tmdb_api_key)

    async def enrich_candidate(self, candidate: "RawCandidate") -> FilmRecord:
        """Turn a scraped candidate into a film record, never raising."""

        clean_name, year_hint = split_title_year(candidate.name)
        fallback = FilmRecord(
            id=fallback_film_id(candidate.slug),
            name=clean_name or candidate.name,
            year=year_hint or "Unknown",
            runtime=0,
        )
        if not self.enabled:
            logger.warning("TMDB API key not configured; using fallback for %s", candidate.name)
            return fallback

        match = await self.resolve_by_name_and_year(clean_name, year_hint)
        if match is None:
            logger.warning("Film not found on TMDB: %s", candidate.name)
            return fallback
        if match.poster:
            self._poster_cache.setdefault(match.id, match.poster)
        return match.to_record()

    async def resolve_by_name_and_year(
        self, name: str, year_hint: str | None = None
    ) -> FilmMatch | None:
        """Return the best TMDB match with runtime and IMDb id, if any."""

        if not self.enabled or not name.strip():
            return None
        try:
            candidate = await self._search(name, year_hint)
            if candidate is None:
                return None
            details = await self._fetch_details(int(candidate["id"]))
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.error("TMDB API error for %s: %s", name, exc)
            return None

        tmdb_id = int(candidate["id"])
        external = (details or {}).get("external_ids") or {}
        imdb_id = (details or {}).get("imdb_id") or external.get("imdb_id")
        release_date = candidate.get("release_date") or ""
        return FilmMatch(
            id=imdb_id or f"tmdb_{tmdb_id}",
            name=candidate.get("title") or name,
            year=release_date[:4] if len(release_date) >= 4 else (year_hint or "Unknown"),
            runtime=int((details or {}).get("runtime") or 0),
            poster=self._build_image_url(candidate.get("poster_path")),
            tmdb_id=tmdb_id,
        )

    async def resolve_poster(self, film_id: str) -> str | None:
        """Return a poster URL for the film id, memoized for the process lifetime."""

        if film_id in self._poster_cache:
            return self._poster_cache[film_id]
        if not self.enabled:
            return None

        try:
            if film_id.startswith("tt"):
                poster_path = await self._find_poster_by_imdb_id(film_id)
            elif film_id.startswith("tmdb_") and film_id[5:].isdigit():
                details = await self._fetch_details(int(film_id[5:]))
                poster_path = (details or {}).get("poster_path")
            else:
                poster_path = None
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("TMDB poster lookup failed for %s: %s", film_id, exc)
            return None

        poster = self._build_image_url(poster_path)
        self._poster_cache[film_id] = poster
        return poster

    async def _search(self, name: str, year_hint: str | None) -> dict[str, Any] | None:
        params: dict[str, Any] = {
            "query": name,
            "include_adult": "false",
            "page": 1,
            "api_key": self._settings.tmdb_api_key,
        }
        if year_hint:
            params["year"] = year_hint

        response = await self._client.get("/search/movie", params=params)
        response.raise_for_status()
        results = [
            result for result in response.json().get("results", []) if isinstance(result, dict)
        ]
        if not results:
            return None

        normalized = name.casefold()
        for result in results:
            title = str(result.get("title") or "").casefold()
            year = str(result.get("release_date") or "")[:4]
            if title == normalized and (year_hint is None or year == year_hint):
                return result
        return results[0]

    async def _fetch_details(self, tmdb_id: int) -> dict[str, Any] | None:
        params = {
            "api_key": self._settings.tmdb_api_key,
            "append_to_response": "external_ids",
        }
        response = await self._client.get(f"/movie/{tmdb_id}", params=params)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def _find_poster_by_imdb_id(self, imdb_id: str) -> str | None:
        params = {
            "api_key": self._settings.tmdb_api_key,
            "external_source": "imdb_id",
        }
        response = await self._client.get(f"/find/{imdb_id}", params=params)
        response.raise_for_status()
        results = response.json().get("movie_results") or []
        if not results:
            return None
        return results[0].get("poster_path")

    @staticmethod
    def _build_image_url(path: str | None) -> str | None:
        if not path:
            return None
        if path.startswith("http"):
            return path
        return f"{POSTER_BASE_URL}{path}"
