"""JSON-file persistence for the recent, short and long film collections."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from pydantic import ValidationError

from .addons import CollectionName
from .errors import PersistenceError
from .models import CollectionDocument, FilmRecord

logger = logging.getLogger(__name__)

COLLECTION_NAMES: tuple[CollectionName, ...] = ("recent", "short", "long")


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable view of all collections as of one reload."""

    version: int
    recent: tuple[FilmRecord, ...] = ()
    short: tuple[FilmRecord, ...] = ()
    long: tuple[FilmRecord, ...] = ()

    def collection(self, name: CollectionName) -> tuple[FilmRecord, ...]:
        return getattr(self, name)

    def counts(self) -> dict[str, int]:
        return {name: len(self.collection(name)) for name in COLLECTION_NAMES}


class RecordStore:
    """Loads and atomically persists collection files."""

    def __init__(self, paths: Mapping[str, Path]):
        missing = [name for name in COLLECTION_NAMES if paths.get(name) is None]
        if missing:
            raise ValueError(f"Missing collection paths: {', '.join(missing)}")
        self._paths: dict[str, Path] = {name: Path(paths[name]) for name in COLLECTION_NAMES}
        self._snapshot = StoreSnapshot(version=0)

    @property
    def snapshot(self) -> StoreSnapshot:
        return self._snapshot

    def path_for(self, name: CollectionName) -> Path:
        return self._paths[name]

    async def load(self, name: CollectionName) -> tuple[FilmRecord, ...]:
        """Read a collection; unreadable files are treated as empty."""

        return await asyncio.to_thread(self._read, name)

    async def save(self, name: CollectionName, records: Iterable[FilmRecord]) -> None:
        """Atomically replace a collection file."""

        document = CollectionDocument(meta=list(records))
        await asyncio.to_thread(self._write, name, document)

    async def reload(self) -> StoreSnapshot:
        """Re-read every collection and publish a new snapshot if anything changed."""

        recent, short, long = await asyncio.gather(
            self.load("recent"), self.load("short"), self.load("long")
        )
        current = self._snapshot
        if (recent, short, long) == (current.recent, current.short, current.long) and current.version:
            logger.debug("Collections unchanged; keeping snapshot v%s", current.version)
            return current
        self._snapshot = StoreSnapshot(
            version=current.version + 1, recent=recent, short=short, long=long
        )
        logger.info(
            "Loaded collections v%s: recent=%s short=%s long=%s",
            self._snapshot.version,
            len(recent),
            len(short),
            len(long),
        )
        return self._snapshot

    def _read(self, name: CollectionName) -> tuple[FilmRecord, ...]:
        path = self._paths[name]
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning("Collection file %s does not exist; treating %s as empty", path, name)
            return ()
        except OSError as exc:
            logger.error("Error reading %s: %s", path, exc)
            return ()
        try:
            document = CollectionDocument.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.error("Collection file %s is invalid: %s", path, exc)
            return ()
        return tuple(document.meta)

    def _write(self, name: CollectionName, document: CollectionDocument) -> None:
        path = self._paths[name]
        payload = json.dumps(document.to_json_payload(), indent=2, ensure_ascii=False)
        temp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                delete=False,
                dir=str(path.parent),
                prefix=f".{path.name}.",
                suffix=".tmp",
            ) as handle:
                temp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, path)
        except OSError as exc:
            if temp_name is not None:
                Path(temp_name).unlink(missing_ok=True)
            raise PersistenceError(f"Error writing {path}: {exc}") from exc
        logger.info("Saved %s (%s films)", path, len(document.meta))
