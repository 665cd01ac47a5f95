"""Raw TMDB API models for the records returned by /discover/movie."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, field_validator


class TMDBMovieDiscover(BaseModel):
    """A movie result from TMDB's discover API.

    Only the fields the catalog keeps are declared; the rest are ignored.
    The rank inputs (vote_average, popularity) must arrive as JSON numbers.
    """

    id: int | str
    release_date: date
    vote_average: float = Field(allow_inf_nan=False)
    popularity: float = Field(allow_inf_nan=False)
    title: str | None = None
    overview: str | None = None
    original_language: str | None = None
    poster_path: str | None = None
    vote_count: int = 0
    genre_ids: list[int] = Field(default_factory=list)

    @field_validator("id", "vote_average", "popularity", mode="before")
    @classmethod
    def _reject_bools_and_strings(cls, value, info):
        if isinstance(value, bool):
            raise ValueError(f"{info.field_name} must not be a boolean")
        if info.field_name != "id" and isinstance(value, str):
            raise ValueError(f"{info.field_name} must be a number, not a string")
        return value

    @field_validator("release_date", mode="before")
    @classmethod
    def _release_date_is_iso_text(cls, value):
        if not isinstance(value, (str, date)):
            raise ValueError("release_date must be an ISO date string")
        return value
