"""Moves films that leave the recent window into the short and long collections."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Literal, Sequence

from ..models import FilmRecord
from ..store import RecordStore
from ..utils import unique_by

logger = logging.getLogger(__name__)

RUNTIME_THRESHOLD = 120

Bucket = Literal["short", "long"]


@dataclass(frozen=True)
class MigrationResult:
    """Outcome of merging departed films into the permanent collections."""

    short: tuple[FilmRecord, ...]
    long: tuple[FilmRecord, ...]
    migrated: int = 0
    to_short: int = 0
    to_long: int = 0
    short_duplicates: int = 0
    long_duplicates: int = 0
    unknown_runtime: int = 0

    @property
    def changed(self) -> bool:
        return self.migrated > 0

    @property
    def duplicates_removed(self) -> int:
        return self.short_duplicates + self.long_duplicates

    def to_payload(self) -> dict[str, int]:
        return {
            "migrated": self.migrated,
            "short": len(self.short),
            "long": len(self.long),
            "toShort": self.to_short,
            "toLong": self.to_long,
            "duplicatesRemoved": self.duplicates_removed,
            "shortDuplicates": self.short_duplicates,
            "longDuplicates": self.long_duplicates,
            "unknownRuntime": self.unknown_runtime,
        }


def dedupe_by_id(records: Iterable[FilmRecord]) -> list[FilmRecord]:
    """Drop repeated ids keeping the first occurrence, order preserved."""

    return unique_by(records, key=lambda film: film.id)


def classify(film: FilmRecord, threshold: int = RUNTIME_THRESHOLD) -> Bucket:
    """Unknown runtimes go to the short bucket."""

    if not film.has_known_runtime or film.runtime < threshold:
        return "short"
    return "long"


def departed_films(
    previous_recent: Sequence[FilmRecord], new_recent: Sequence[FilmRecord]
) -> list[FilmRecord]:
    """Films present in the previous recent window but not in the new one."""

    current_ids = {film.id for film in new_recent}
    return [
        film for film in dedupe_by_id(previous_recent) if film.id not in current_ids
    ]


def migrate(
    previous_recent: Sequence[FilmRecord],
    new_recent: Sequence[FilmRecord],
    short: Sequence[FilmRecord],
    long: Sequence[FilmRecord],
    *,
    threshold: int = RUNTIME_THRESHOLD,
) -> MigrationResult:
    """Classify departed films by runtime and append them without duplicates.

    Existing entries always win: a departed film whose id is already in the
    target bucket, or already placed in the other bucket, is dropped and
    counted as a duplicate of the bucket it was headed to.
    """

    departed = departed_films(previous_recent, new_recent)
    if not departed:
        return MigrationResult(short=tuple(short), long=tuple(long))

    incoming: dict[Bucket, list[FilmRecord]] = {"short": [], "long": []}
    unknown_runtime = 0
    for film in departed:
        if not film.has_known_runtime:
            unknown_runtime += 1
        incoming[classify(film, threshold)].append(film)

    placed = {"short": {film.id for film in short}, "long": {film.id for film in long}}
    existing: dict[Bucket, Sequence[FilmRecord]] = {"short": short, "long": long}
    merged: dict[Bucket, tuple[FilmRecord, ...]] = {}
    duplicates: dict[Bucket, int] = {}
    for bucket, other in (("short", "long"), ("long", "short")):
        additions = [film for film in incoming[bucket] if film.id not in placed[other]]
        combined = [*existing[bucket], *additions]
        merged[bucket] = tuple(dedupe_by_id(combined))
        duplicates[bucket] = (
            len(existing[bucket]) + len(incoming[bucket]) - len(merged[bucket])
        )

    return MigrationResult(
        short=merged["short"],
        long=merged["long"],
        migrated=len(departed),
        to_short=len(incoming["short"]),
        to_long=len(incoming["long"]),
        short_duplicates=duplicates["short"],
        long_duplicates=duplicates["long"],
        unknown_runtime=unknown_runtime,
    )


class MigrationService:
    """Applies a new recent snapshot to the persisted collections."""

    def __init__(self, store: RecordStore, *, threshold: int = RUNTIME_THRESHOLD):
        self._store = store
        self._threshold = threshold

    async def apply(self, new_recent: Sequence[FilmRecord]) -> MigrationResult:
        """Migrate departed films, persist both buckets, then replace recent.

        ``recent`` is written last so a failed bucket write leaves the previous
        window in place and the next run detects the same departures again.
        """

        unique_recent = dedupe_by_id(new_recent)
        if len(unique_recent) < len(new_recent):
            logger.warning(
                "Dropped %s repeated ids from the new recent window",
                len(new_recent) - len(unique_recent),
            )
        new_recent = unique_recent

        previous_recent = await self._store.load("recent")
        short = await self._store.load("short")
        long = await self._store.load("long")
        logger.info(
            "Existing collections: recent=%s short=%s long=%s",
            len(previous_recent),
            len(short),
            len(long),
        )

        result = migrate(
            previous_recent, new_recent, short, long, threshold=self._threshold
        )
        if not result.changed:
            logger.info("No changes detected - all films still in the recent window")
        else:
            logger.info(
                "Migrating %s films: %s to short (<%smin), %s to long (>=%smin)",
                result.migrated,
                result.to_short,
                self._threshold,
                result.to_long,
                self._threshold,
            )
            if result.unknown_runtime:
                logger.warning(
                    "%s migrated films have no runtime data (added to short by default)",
                    result.unknown_runtime,
                )
            logger.info(
                "Duplicates removed: short=%s long=%s",
                result.short_duplicates,
                result.long_duplicates,
            )
            await self._store.save("short", result.short)
            await self._store.save("long", result.long)

        await self._store.save("recent", new_recent)
        return result
