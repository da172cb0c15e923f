"""Serves collections as shuffled, paginated Stremio catalogs."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from contextlib import suppress
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Sequence

from ..addons import AddonDefinition, CollectionName
from ..config import Settings
from ..models import FilmRecord
from ..store import RecordStore
from ..utils import shuffled
from .tmdb import TMDBClient, artwork_urls

logger = logging.getLogger(__name__)

SHUFFLE_INTERVAL_SECONDS = 12 * 60 * 60


@dataclass(frozen=True)
class ShuffleEntry:
    items: tuple[FilmRecord, ...]
    shuffled_at: float
    version: int


class CatalogCache:
    """Keeps one random order per collection, stable for a shuffle epoch."""

    def __init__(
        self,
        store: RecordStore,
        *,
        shuffle_interval: float = SHUFFLE_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ):
        self._store = store
        self._shuffle_interval = shuffle_interval
        self._clock = clock
        self._rng = rng or random.Random()
        self._entries: dict[str, ShuffleEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def get_ordered(self, name: CollectionName) -> tuple[FilmRecord, ...]:
        """Return the cached order, reshuffling when stale or out of date."""

        lock = self._locks.setdefault(name, asyncio.Lock())
        async with lock:
            snapshot = self._store.snapshot
            entry = self._entries.get(name)
            now = self._clock()
            if entry is not None and not self._is_stale(entry, snapshot.version, now):
                return entry.items

            items = tuple(shuffled(snapshot.collection(name), self._rng))
            self._entries[name] = ShuffleEntry(
                items=items, shuffled_at=now, version=snapshot.version
            )
            logger.info(
                "Shuffled %s: %s items. Next shuffle at %s",
                name,
                len(items),
                _isoformat(now + self._shuffle_interval),
            )
            return items

    def invalidate(self) -> None:
        self._entries.clear()

    def last_shuffle(self, name: CollectionName) -> float | None:
        entry = self._entries.get(name)
        return entry.shuffled_at if entry else None

    def _is_stale(self, entry: ShuffleEntry, version: int, now: float) -> bool:
        if not entry.items:
            return True
        if entry.version != version:
            return True
        return now - entry.shuffled_at > self._shuffle_interval


class CatalogService:
    """Read path for manifests and catalog pages plus the store reload cadence."""

    def __init__(
        self,
        settings: Settings,
        store: RecordStore,
        cache: CatalogCache,
        tmdb: TMDBClient | None = None,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self._settings = settings
        self._sleep = sleep
        self._store = store
        self._cache = cache
        self._tmdb = tmdb
        self._addons = {definition.key: definition for definition in settings.addon_definitions}
        self._reload_task: asyncio.Task[None] | None = None

    @property
    def addons(self) -> tuple[AddonDefinition, ...]:
        return tuple(self._addons.values())

    async def start(self) -> None:
        """Load the collections and launch the periodic reload loop."""

        await self._store.reload()
        if self._reload_task is None:
            self._reload_task = asyncio.create_task(self._reload_loop())

    async def stop(self) -> None:
        if self._reload_task is None:
            return
        self._reload_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._reload_task
        self._reload_task = None

    def get_addon(self, key: str) -> AddonDefinition:
        try:
            return self._addons[key]
        except KeyError:
            raise KeyError(f"Unknown add-on {key}") from None

    def manifest(self, key: str) -> dict[str, Any]:
        return self.get_addon(key).to_manifest()

    async def catalog_page(
        self, key: str, content_type: str, catalog_id: str, skip: int = 0
    ) -> dict[str, Any]:
        """Return ``{"metas": [...]}`` for one page of an add-on catalog."""

        addon = self.get_addon(key)
        if content_type != "movie" or catalog_id != addon.catalog_id:
            raise KeyError(f"Catalog {content_type}/{catalog_id} not found in {key}")

        if addon.shuffled:
            ordered: Sequence[FilmRecord] = await self._cache.get_ordered(addon.collection)
            page = ordered[skip : skip + self._settings.page_size]
        else:
            page = self._store.snapshot.collection(addon.collection)
        return {"metas": [await self._decorate(film) for film in page]}

    async def reload(self) -> dict[str, int]:
        """Re-read the collections from storage and drop every cached order."""

        snapshot = await self._store.reload()
        self._cache.invalidate()
        return snapshot.counts()

    def describe(self, base_url: str) -> dict[str, Any]:
        """Return the service self-description shown at the root URL."""

        snapshot = self._store.snapshot
        base = base_url.rstrip("/")
        info: dict[str, Any] = {
            "name": f"{self._settings.app_name} Stremio Addons",
            "description": "Film collections (3+ stars) with 12h random shuffle",
            "addons": [
                {
                    "name": addon.title,
                    "manifest": f"{base}/{addon.key}/manifest.json",
                    "films": len(snapshot.collection(addon.collection)),
                }
                for addon in self.addons
            ],
            "status": "online",
        }
        for addon in self.addons:
            if addon.shuffled:
                shuffled_at = self._cache.last_shuffle(addon.collection)
                info[f"lastShuffle{addon.key.capitalize()}"] = (
                    _isoformat(shuffled_at) if shuffled_at is not None else None
                )
        return info

    async def _reload_loop(self) -> None:
        while True:
            await self._sleep(self._settings.reload_interval_seconds)
            try:
                await self._store.reload()
            except Exception as exc:  # pragma: no cover - background safety net
                logger.exception("Scheduled reload failed: %s", exc)

    async def _decorate(self, film: FilmRecord) -> dict[str, Any]:
        meta = film.to_meta()
        if not self._settings.serve_enrichment:
            return meta
        if not film.poster and self._tmdb is not None:
            poster = await self._tmdb.resolve_poster(film.id)
            if poster:
                meta["poster"] = poster
        for key, url in artwork_urls(film.id).items():
            meta.setdefault(key, url)
        return meta


def _isoformat(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
