"""Pydantic models describing film records and collection files."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

ContentType = Literal["movie"]


class FilmRecord(BaseModel):
    """Represents a single film stored in a collection and served to Stremio."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    type: ContentType = "movie"
    name: str
    year: str = "Unknown"
    runtime: int = 0
    poster: str | None = None
    logo: str | None = None
    tmdb_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("tmdbId", "tmdb_id"),
        serialization_alias="tmdbId",
    )

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: object) -> object:
        if value is None or value == "":
            return "Unknown"
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("runtime", mode="before")
    @classmethod
    def _coerce_runtime(cls, value: object) -> object:
        if value is None or value == "":
            return 0
        if isinstance(value, float):
            return int(value)
        return value

    @field_validator("poster", "logo", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def has_known_runtime(self) -> bool:
        return self.runtime > 0

    @property
    def is_imdb_id(self) -> bool:
        return self.id.startswith("tt")

    def to_meta(self) -> dict[str, Any]:
        """Return a Stremio-compatible meta object for catalog listings."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CollectionDocument(BaseModel):
    """On-disk shape of a collection file."""

    meta: list[FilmRecord] = Field(default_factory=list)

    def to_json_payload(self) -> dict[str, Any]:
        return {"meta": [film.to_meta() for film in self.meta]}
