"""Add-on definitions exposed to Stremio clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal


CollectionName = Literal["recent", "short", "long"]

ADDON_VERSION = "1.0.1"


@dataclass(frozen=True)
class AddonDefinition:
    """Describes one add-on namespace backed by a single film collection."""

    key: str
    collection: CollectionName
    catalog_id: str
    title: str
    description: str
    logo: str
    shuffled: bool = True

    def to_manifest(self) -> dict[str, Any]:
        """Return the static Stremio manifest for this add-on."""

        return {
            "id": f"com.letterstream.{self.key}",
            "version": ADDON_VERSION,
            "name": self.title,
            "description": self.description,
            "logo": self.logo,
            "resources": ["catalog"],
            "types": ["movie"],
            "catalogs": [
                {
                    "type": "movie",
                    "id": self.catalog_id,
                    "name": self.title,
                    "extra": [{"name": "skip", "isRequired": False}],
                }
            ],
        }


ADDONS: tuple[AddonDefinition, ...] = (
    AddonDefinition(
        key="recent",
        collection="recent",
        catalog_id="letterstream_recent",
        title="Letterstream Recent Top 10",
        description="The ten most recently rated films scoring 3 stars or more.",
        logo="https://via.placeholder.com/256x256/40bcf4/ffffff?text=L10",
        shuffled=False,
    ),
    AddonDefinition(
        key="short",
        collection="short",
        catalog_id="letterstream_short",
        title="Letterstream -120 min",
        description="Film collection under 120 minutes (3+ stars) - Shuffled every 12 hours",
        logo="https://via.placeholder.com/256x256/00e054/ffffff?text=L-120",
    ),
    AddonDefinition(
        key="long",
        collection="long",
        catalog_id="letterstream_long",
        title="Letterstream +120 min",
        description="Film collection 120+ minutes (3+ stars) - Shuffled every 12 hours",
        logo="https://via.placeholder.com/256x256/ff8000/ffffff?text=L%2B120",
    ),
)
