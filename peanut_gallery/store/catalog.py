"""Catalog store interfaces and the in-memory backend used for local runs and tests."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol

from peanut_gallery.data.movie import DIMENSIONS, SORT_KEY_ATTRS, WEEK_BUCKET_ATTR, Movie


@dataclass(frozen=True)
class IndexPage:
    """One page of a rank index.

    last_key is the composite sort key of the last entry when more entries
    follow it, otherwise None.
    """

    movies: list[Movie]
    last_key: str | None = None


class MovieWriter(Protocol):
    """Upsert-only capability handed to the population worker."""

    def upsert(self, movie: Movie) -> None:
        ...


class MovieReader(Protocol):
    """Ranked read capability handed to the gateway."""

    def query_by_index(
        self,
        week_bucket: str,
        dimension: str,
        page_size: int,
        after_key: str | None = None,
    ) -> IndexPage:
        ...


class InMemoryCatalogStore:
    """Dict-backed catalog keyed by movie id.

    Rank indexes are derived from the stored items at read time, so the base
    record and its index entries can never disagree. A lock makes each upsert
    all-or-nothing relative to concurrent readers and writers.
    """

    def __init__(self):
        self._items: dict[str, dict] = {}
        self._lock = threading.Lock()

    def upsert(self, movie: Movie) -> None:
        item = movie.to_item()
        with self._lock:
            self._items[movie.id] = item

    def get(self, movie_id: str) -> Movie | None:
        with self._lock:
            item = self._items.get(movie_id)
        return Movie.from_item(item) if item else None

    def query_by_index(
        self,
        week_bucket: str,
        dimension: str,
        page_size: int,
        after_key: str | None = None,
    ) -> IndexPage:
        if dimension not in DIMENSIONS:
            raise ValueError(f"Unknown dimension {dimension!r}")
        sort_attr = SORT_KEY_ATTRS[dimension]

        with self._lock:
            entries = [
                item for item in self._items.values()
                if item[WEEK_BUCKET_ATTR] == week_bucket
            ]
        entries.sort(key=lambda item: item[sort_attr], reverse=True)
        if after_key is not None:
            entries = [item for item in entries if item[sort_attr] < after_key]

        page = entries[:page_size]
        last_key = page[-1][sort_attr] if page and len(entries) > page_size else None
        return IndexPage(movies=[Movie.from_item(item) for item in page], last_key=last_key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
