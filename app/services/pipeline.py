"""Scrape, enrich and migrate in one update run."""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Protocol, Sequence

import httpx

from ..config import Settings
from ..models import FilmRecord
from ..store import RecordStore
from .letterboxd import LetterboxdFeed, RawCandidate, select_qualifying
from .migration import MigrationResult, MigrationService, dedupe_by_id
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)


class CandidateFeed(Protocol):
    async def fetch(self) -> Sequence[RawCandidate]: ...


class Enricher(Protocol):
    async def enrich_candidate(self, candidate: RawCandidate) -> FilmRecord: ...


@dataclass
class UpdateReport:
    """Summary of a completed update run."""

    scraped: int
    qualifying: int
    recent: list[FilmRecord]
    migration: MigrationResult
    started_at: datetime
    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> dict[str, object]:
        return {
            "scraped": self.scraped,
            "qualifying": self.qualifying,
            "recent": len(self.recent),
            "withImdbId": sum(1 for film in self.recent if film.is_imdb_id),
            "withPoster": sum(1 for film in self.recent if film.poster),
            "migration": self.migration.to_payload(),
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat(),
        }


class UpdatePipeline:
    """Runs one scrape -> enrich -> migrate cycle."""

    def __init__(
        self,
        feed: CandidateFeed,
        enricher: Enricher,
        migrations: MigrationService,
        *,
        min_rating: float = 3.0,
        max_recent: int = 10,
        enrichment_delay: float = 0.3,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self._feed = feed
        self._enricher = enricher
        self._migrations = migrations
        self._min_rating = min_rating
        self._max_recent = max_recent
        self._enrichment_delay = enrichment_delay
        self._sleep = sleep

    async def run(self) -> UpdateReport:
        started_at = datetime.now(timezone.utc)
        logger.info("Update started at %s", started_at.isoformat())

        candidates = list(await self._feed.fetch())
        selected = select_qualifying(
            candidates, min_rating=self._min_rating, limit=self._max_recent
        )
        logger.info(
            "%s of %s films rated >= %s; taking %s",
            sum(1 for candidate in candidates if candidate.rating >= self._min_rating),
            len(candidates),
            self._min_rating,
            len(selected),
        )

        new_recent = dedupe_by_id(await self.enrich(selected))
        migration = await self._migrations.apply(new_recent)
        report = UpdateReport(
            scraped=len(candidates),
            qualifying=len(selected),
            recent=new_recent,
            migration=migration,
            started_at=started_at,
        )
        logger.info("Update completed: %s", report.to_payload())
        return report

    async def enrich(self, candidates: Sequence[RawCandidate]) -> list[FilmRecord]:
        """Enrich candidates one at a time, pausing between external calls."""

        enriched: list[FilmRecord] = []
        for index, candidate in enumerate(candidates):
            if index:
                await self._sleep(self._enrichment_delay)
            film = await self._enricher.enrich_candidate(candidate)
            logger.info(
                "[%s/%s] %s (%s stars) -> %s | %s | %smin",
                index + 1,
                len(candidates),
                candidate.name,
                candidate.rating,
                film.id,
                film.year,
                film.runtime,
            )
            enriched.append(film)
        return enriched


async def run_update(settings: Settings) -> UpdateReport:
    """Wire HTTP clients and storage from settings and run one update."""

    async with AsyncExitStack() as exit_stack:
        scrape_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0), follow_redirects=True
            )
        )
        tmdb_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                base_url=str(settings.tmdb_api_url),
                timeout=httpx.Timeout(15.0, connect=5.0),
            )
        )
        store = RecordStore(settings.collection_paths)
        pipeline = UpdatePipeline(
            LetterboxdFeed(settings, scrape_client),
            TMDBClient(settings, tmdb_client),
            MigrationService(store, threshold=settings.runtime_threshold),
            min_rating=settings.min_rating,
            max_recent=settings.max_recent,
            enrichment_delay=settings.enrichment_delay_seconds,
        )
        return await pipeline.run()


async def run_migration(settings: Settings, new_recent: Sequence[FilmRecord] | None = None) -> MigrationResult:
    """Run only the migration step; defaults to re-applying the stored recent window."""

    store = RecordStore(settings.collection_paths)
    if new_recent is None:
        new_recent = await store.load("recent")
    return await MigrationService(store, threshold=settings.runtime_threshold).apply(new_recent)
