"""Query/mutation gateway: validates population requests and serves ranked reads."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from peanut_gallery.bus.queue import RequestPublisher
from peanut_gallery.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, MAX_POPULATION_SPAN_DAYS
from peanut_gallery.data.movie import DIMENSIONS, Movie, id_from_composite_key, parse_week_bucket
from peanut_gallery.data.population import PopulationRequest, split_into_weeks
from peanut_gallery.errors import PublishError, ValidationError
from peanut_gallery.store.catalog import MovieReader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PopulateResult:
    initiated_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"initiatedIds": list(self.initiated_ids)}


@dataclass(frozen=True)
class MoviePage:
    movies: list[Movie] = field(default_factory=list)
    next_cursor: str | None = None

    def to_dict(self) -> dict:
        return {
            "movies": [movie.to_dict() for movie in self.movies],
            "nextCursor": self.next_cursor,
        }


def encode_cursor(sort_key: str) -> str:
    return base64.urlsafe_b64encode(sort_key.encode("ascii")).decode("ascii")


def decode_cursor(cursor: str) -> str:
    """Return the composite sort key inside a cursor.

    Raises:
        ValidationError: the cursor was not produced by encode_cursor().
    """
    try:
        sort_key = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("ascii")
        id_from_composite_key(sort_key)
    except (AttributeError, UnicodeError, binascii.Error, ValueError) as exc:
        raise ValidationError(f"Invalid cursor {cursor!r}") from exc
    return sort_key


def _parse_date(value, name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}") from exc


class Gateway:
    """Entry point shared by API callers and the scheduler.

    Holds only a publish capability on the bus and a read capability on the
    catalog; keeps no state between calls.
    """

    def __init__(
        self,
        publisher: RequestPublisher,
        reader: MovieReader,
        max_span_days: int = MAX_POPULATION_SPAN_DAYS,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self.publisher = publisher
        self.reader = reader
        self.max_span_days = max_span_days
        self.max_page_size = max_page_size

    def populate_movies(self, start_date: date | str, end_date: date | str) -> PopulateResult:
        """Publish one population request per ISO week in [start_date, end_date].

        A failed publish is logged and skipped; only the ids that made it onto
        the bus are returned. Repeating the call with the same range is safe.

        Raises:
            ValidationError: unparseable dates, end before start, or a span
                wider than max_span_days. Nothing is published.
        """
        start = _parse_date(start_date, "startDate")
        end = _parse_date(end_date, "endDate")
        if end < start:
            raise ValidationError(f"endDate {end} is before startDate {start}")
        span_days = (end - start).days + 1
        if span_days > self.max_span_days:
            raise ValidationError(f"Range of {span_days} days exceeds the {self.max_span_days}-day maximum")

        initiated_ids = []
        sub_ranges = split_into_weeks(start, end)
        for week_start, week_end in sub_ranges:
            request = PopulationRequest.new(week_start, week_end)
            try:
                self.publisher.publish(request)
            except PublishError:
                logger.exception("Could not enqueue population of %s..%s", week_start, week_end)
                continue
            initiated_ids.append(request.request_id)

        logger.info(
            "Enqueued %d/%d population requests for %s..%s",
            len(initiated_ids), len(sub_ranges), start, end,
        )
        return PopulateResult(initiated_ids=initiated_ids)

    def query_movies(
        self,
        week_bucket: str,
        dimension: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        cursor: str | None = None,
    ) -> MoviePage:
        """Read one page of movies for a week, best first.

        Raises:
            ValidationError: bad week bucket, dimension, page size or cursor.
        """
        try:
            parse_week_bucket(week_bucket)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"weekBucket must look like 2024-W01, got {week_bucket!r}") from exc
        if dimension not in DIMENSIONS:
            raise ValidationError(f"dimension must be one of {', '.join(DIMENSIONS)}, got {dimension!r}")
        if isinstance(page_size, bool) or not isinstance(page_size, int) or not 1 <= page_size <= self.max_page_size:
            raise ValidationError(f"pageSize must be an integer between 1 and {self.max_page_size}, got {page_size!r}")
        after_key = decode_cursor(cursor) if cursor else None

        page = self.reader.query_by_index(week_bucket, dimension, page_size, after_key)
        next_cursor = encode_cursor(page.last_key) if page.last_key else None
        return MoviePage(movies=page.movies, next_cursor=next_cursor)
