"""Module executed when running ``python -m letterstream``."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

import uvicorn
from pydantic import ValidationError

from app.config import settings
from app.errors import UpdateError
from app.models import CollectionDocument
from app.services.pipeline import run_migration, run_update

logger = logging.getLogger("letterstream")


def serve() -> int:
    """Start the uvicorn server using the configured settings."""

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
    return 0


def update() -> int:
    """Scrape, enrich and migrate once; non-zero exit leaves storage untouched."""

    try:
        report = asyncio.run(run_update(settings))
    except UpdateError as exc:
        logger.error("Update failed: %s", exc)
        return 1
    print(json.dumps(report.to_payload(), indent=2))
    return 0


def migrate(input_path: Path | None) -> int:
    """Apply a recent snapshot (or re-apply the stored one) to the collections."""

    new_recent = None
    if input_path is not None:
        try:
            document = CollectionDocument.model_validate_json(
                input_path.read_text(encoding="utf-8")
            )
        except (OSError, ValidationError) as exc:
            logger.error("Cannot read %s: %s", input_path, exc)
            return 1
        new_recent = document.meta
        if len(new_recent) > settings.max_recent:
            logger.warning(
                "%s holds %s films; keeping the first %s",
                input_path,
                len(new_recent),
                settings.max_recent,
            )
            new_recent = new_recent[: settings.max_recent]
    try:
        result = asyncio.run(run_migration(settings, new_recent))
    except UpdateError as exc:
        logger.error("Migration failed: %s", exc)
        return 1
    print(json.dumps(result.to_payload(), indent=2))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="letterstream")
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("serve", help="run the catalog server (default)")
    commands.add_parser("update", help="scrape, enrich and migrate once")
    migrate_parser = commands.add_parser("migrate", help="run only the migration step")
    migrate_parser.add_argument(
        "--input",
        type=Path,
        default=None,
        help="JSON file shaped like {\"meta\": [...]} to use as the new recent window",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    if args.command == "update":
        return update()
    if args.command == "migrate":
        return migrate(args.input)
    return serve()


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    sys.exit(main())
