"""Movie records, week buckets and the composite rank keys used by both indexes."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

from pydantic import ValidationError

from peanut_gallery.config import TMDB_IMAGE_BASE
from peanut_gallery.data.tmdb_models import TMDBMovieDiscover
from peanut_gallery.errors import MalformedRecord

SCORE = "score"
POPULARITY = "popularity"
DIMENSIONS = (SCORE, POPULARITY)

# Attribute names match the DynamoDB table and its two GSIs
WEEK_BUCKET_ATTR = "year-week"
SORT_KEY_ATTRS = {SCORE: "score-id", POPULARITY: "popularity-id"}

WEEK_BUCKET_PATTERN = re.compile(r"^(\d{4})-W(\d{2})$")

# Fixed-width value encoding: 6 decimal places, 20 integer digits after a sign digit
_VALUE_SCALE = Decimal("0.000001")
_VALUE_WIDTH = 20
_VALUE_LIMIT = 10 ** _VALUE_WIDTH

# Ids are inverted inside printable ASCII ("!".."}") and terminated with "~",
# so a descending index read returns equal values with ids ascending.
_ID_LOW, _ID_HIGH = 0x21, 0x7D
_ID_TERMINATOR = "~"
_KEY_SEPARATOR = "#"


def week_bucket(day: date) -> str:
    """ISO week label for a date, e.g. 2024-01-03 -> "2024-W01"."""
    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year:04d}-W{iso_week:02d}"


def parse_week_bucket(bucket: str) -> tuple[date, date]:
    """Return the (Monday, Sunday) of an ISO week label.

    Raises ValueError for labels that are not a real ISO week.
    """
    match = WEEK_BUCKET_PATTERN.match(bucket)
    if not match:
        raise ValueError(f"Not a week bucket: {bucket!r}")
    year, week = int(match.group(1)), int(match.group(2))
    monday = date.fromisocalendar(year, week, 1)
    return monday, date.fromisocalendar(year, week, 7)


def encode_value(value: float) -> str:
    """Encode a number so lexical order of the result matches numeric order."""
    try:
        scaled = int((Decimal(str(value)) / _VALUE_SCALE).quantize(Decimal(1), rounding=ROUND_HALF_EVEN))
    except (InvalidOperation, ValueError) as exc:
        raise MalformedRecord(f"Cannot encode rank value {value!r}") from exc
    if abs(scaled) >= _VALUE_LIMIT:
        raise MalformedRecord(f"Rank value {value!r} is out of range")
    if scaled >= 0:
        return "1" + str(scaled).zfill(_VALUE_WIDTH)
    return "0" + str(_VALUE_LIMIT + scaled).zfill(_VALUE_WIDTH)


def _invert_id(movie_id: str) -> str:
    return "".join(chr(_ID_LOW + _ID_HIGH - ord(c)) for c in movie_id) + _ID_TERMINATOR


def validate_id(movie_id: str) -> str:
    if not movie_id or any(not _ID_LOW <= ord(c) <= _ID_HIGH for c in movie_id):
        raise MalformedRecord(f"Unsupported movie id {movie_id!r}")
    return movie_id


def composite_key(value: float, movie_id: str) -> str:
    """Rank key: encoded value, then the inverted id as a deterministic tie-break."""
    return encode_value(value) + _KEY_SEPARATOR + _invert_id(validate_id(movie_id))


def id_from_composite_key(key: str) -> str:
    """Recover the movie id embedded in a composite rank key.

    Raises ValueError if the key was not produced by composite_key().
    """
    value_part, sep, inverted = key.partition(_KEY_SEPARATOR)
    if (
        not sep
        or len(value_part) != _VALUE_WIDTH + 1
        or not value_part.isdigit()
        or len(inverted) < 2
        or not inverted.endswith(_ID_TERMINATOR)
    ):
        raise ValueError(f"Not a composite rank key: {key!r}")
    movie_id = "".join(chr(_ID_LOW + _ID_HIGH - ord(c)) for c in inverted[:-1])
    if any(not _ID_LOW <= ord(c) <= _ID_HIGH for c in movie_id):
        raise ValueError(f"Not a composite rank key: {key!r}")
    return movie_id


def _to_decimal(value: float) -> Decimal:
    """Convert a float to Decimal for DynamoDB compatibility."""
    return Decimal(str(round(value, 6)))


def _describe_errors(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'record'}: {error['msg']}"
        for error in exc.errors()
    )


@dataclass(frozen=True)
class Movie:
    """One catalog entry. Rank keys and week bucket are derived, never stored separately."""

    id: str
    release_date: date
    score: float
    popularity: float
    title: str = ""
    overview: str = ""
    original_language: str = ""
    vote_count: int = 0
    poster_url: str = ""
    tmdb_url: str = ""
    genre_ids: tuple[int, ...] = field(default_factory=tuple)

    @property
    def week_bucket(self) -> str:
        return week_bucket(self.release_date)

    @property
    def score_sort_key(self) -> str:
        return composite_key(self.score, self.id)

    @property
    def popularity_sort_key(self) -> str:
        return composite_key(self.popularity, self.id)

    def sort_key(self, dimension: str) -> str:
        if dimension == SCORE:
            return self.score_sort_key
        if dimension == POPULARITY:
            return self.popularity_sort_key
        raise ValueError(f"Unknown dimension {dimension!r}")

    @classmethod
    def from_tmdb(cls, raw: dict) -> "Movie":
        """Map a TMDB /discover/movie result to a Movie.

        Raises:
            MalformedRecord: a required field is missing or malformed.
        """
        try:
            record = TMDBMovieDiscover.model_validate(raw)
        except ValidationError as exc:
            raw_id = raw.get("id") if isinstance(raw, dict) else None
            raise MalformedRecord(f"Movie {raw_id}: {_describe_errors(exc)}") from exc

        movie_id = validate_id(str(record.id))
        # Fail the record here rather than at upsert time
        encode_value(record.vote_average)
        encode_value(record.popularity)

        return cls(
            id=movie_id,
            release_date=record.release_date,
            score=record.vote_average,
            popularity=record.popularity,
            title=record.title or "",
            overview=record.overview or "",
            original_language=record.original_language or "",
            vote_count=record.vote_count,
            poster_url=f"{TMDB_IMAGE_BASE}{record.poster_path}" if record.poster_path else "",
            tmdb_url=f"https://www.themoviedb.org/movie/{movie_id}",
            genre_ids=tuple(record.genre_ids),
        )

    def to_item(self) -> dict:
        """Base-table item; carries both index keys so one put updates all three views."""
        return {
            "id": self.id,
            WEEK_BUCKET_ATTR: self.week_bucket,
            "score": _to_decimal(self.score),
            "popularity": _to_decimal(self.popularity),
            SORT_KEY_ATTRS[SCORE]: self.score_sort_key,
            SORT_KEY_ATTRS[POPULARITY]: self.popularity_sort_key,
            "releaseDate": self.release_date.isoformat(),
            "title": self.title,
            "overview": self.overview,
            "originalLanguage": self.original_language,
            "voteCount": self.vote_count,
            "posterUrl": self.poster_url,
            "tmdbUrl": self.tmdb_url,
            "genreIds": list(self.genre_ids),
        }

    @classmethod
    def from_item(cls, item: dict) -> "Movie":
        return cls(
            id=item["id"],
            release_date=date.fromisoformat(item["releaseDate"]),
            score=float(item["score"]),
            popularity=float(item["popularity"]),
            title=item.get("title", ""),
            overview=item.get("overview", ""),
            original_language=item.get("originalLanguage", ""),
            vote_count=int(item.get("voteCount", 0)),
            poster_url=item.get("posterUrl", ""),
            tmdb_url=item.get("tmdbUrl", ""),
            genre_ids=tuple(int(g) for g in item.get("genreIds", [])),
        )

    def to_dict(self) -> dict:
        """JSON-friendly shape returned by the gateway."""
        return {
            "id": self.id,
            "weekBucket": self.week_bucket,
            "score": self.score,
            "popularity": self.popularity,
            "scoreSortKey": self.score_sort_key,
            "popularitySortKey": self.popularity_sort_key,
            "releaseDate": self.release_date.isoformat(),
            "title": self.title,
            "overview": self.overview,
            "originalLanguage": self.original_language,
            "voteCount": self.vote_count,
            "posterUrl": self.poster_url,
            "tmdbUrl": self.tmdb_url,
            "genreIds": list(self.genre_ids),
        }
