"""Pydantic models describing tracked series and metadata payloads."""

from __future__ import annotations

from typing import NamedTuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

MISSING_COVER = "N/A"


def is_usable_cover(value: str | None) -> bool:
    """Return whether ``value`` is a usable cover reference."""

    if not value:
        return False
    value = value.strip()
    return bool(value) and value != MISSING_COVER


class SeriesRecord(BaseModel):
    """A single series tracked in the catalog."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(default=0, ge=0)
    title: str
    year: str = ""
    external_id: str = Field(
        default="",
        validation_alias=AliasChoices("external_id", "imdb_id"),
    )
    episodes_watched: int = Field(default=0, ge=0)
    total_episodes: int = Field(default=0, ge=0)
    status: str = "Watching"
    cover_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("cover_url", "CoverURL"),
    )

    @property
    def progress(self) -> int:
        """Percentage of episodes watched, not clamped to 100."""

        if self.total_episodes <= 0:
            return 0
        return self.episodes_watched * 100 // self.total_episodes

    @property
    def has_cover(self) -> bool:
        return is_usable_cover(self.cover_url)

    def display_title(self) -> str:
        title = (self.title or "").strip() or self.external_id or "Untitled"
        if self.year:
            return f"{title} ({self.year})"
        return title

    def to_payload(self) -> dict[str, object]:
        """Return the JSON listing entry including the derived progress."""

        payload = self.model_dump(mode="json")
        payload["progress"] = self.progress
        return payload


class CatalogStats(NamedTuple):
    """Aggregate counters shown alongside the catalog."""

    total: int
    fully_watched: int


def calculate_stats(records: list[SeriesRecord]) -> CatalogStats:
    """Count records and those whose progress is exactly complete."""

    fully_watched = sum(1 for record in records if record.progress == 100)
    return CatalogStats(total=len(records), fully_watched=fully_watched)


def estimate_total_episodes(total_seasons: str | None, per_season: int) -> int:
    """Estimate an episode count from the number of seasons.

    OMDb only reports seasons, so the result is ``seasons * per_season`` and
    should be treated as a rough estimate. Unknown season counts give ``0``.
    """

    if not total_seasons:
        return 0
    try:
        seasons = int(str(total_seasons).strip())
    except ValueError:
        return 0
    if seasons <= 0:
        return 0
    return seasons * per_season


class SeriesMetadata(BaseModel):
    """Subset of an OMDb title lookup used by the tracker."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(validation_alias=AliasChoices("title", "Title"))
    year: str = Field(default="", validation_alias=AliasChoices("year", "Year"))
    total_seasons: str | None = Field(
        default=None, validation_alias=AliasChoices("total_seasons", "totalSeasons")
    )
    external_id: str = Field(
        default="", validation_alias=AliasChoices("external_id", "imdbID")
    )
    poster: str | None = Field(
        default=None, validation_alias=AliasChoices("poster", "Poster")
    )

    def to_record(self, *, episodes_per_season: int) -> SeriesRecord:
        """Build a new, unsaved catalog record from this lookup result."""

        return SeriesRecord(
            title=self.title,
            year=self.year,
            external_id=self.external_id,
            total_episodes=estimate_total_episodes(
                self.total_seasons, episodes_per_season
            ),
            cover_url=self.poster if is_usable_cover(self.poster) else None,
        )


class SearchItem(BaseModel):
    """A single OMDb search hit."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(validation_alias=AliasChoices("title", "Title"))
    year: str = Field(default="", validation_alias=AliasChoices("year", "Year"))
    external_id: str = Field(
        default="", validation_alias=AliasChoices("external_id", "imdbID")
    )
    type: str = Field(default="", validation_alias=AliasChoices("type", "Type"))
    poster: str | None = Field(
        default=None, validation_alias=AliasChoices("poster", "Poster")
    )
