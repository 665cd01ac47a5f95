"""TMDB client: the provider fetch capability consumed by the population worker."""

from __future__ import annotations

import logging
from datetime import date

import requests

from peanut_gallery.config import (
    TMDB_API_KEY,
    TMDB_BASE_URL,
    TMDB_MAX_PAGES,
    TMDB_REQUEST_TIMEOUT_SECONDS,
)
from peanut_gallery.errors import ProviderError

logger = logging.getLogger(__name__)

# TMDB refuses page numbers above this
TMDB_PAGE_LIMIT = 500


class TmdbProvider:
    """Fetches movies released in a date range from TMDB's discover endpoint.

    Every failure mode (network error, timeout, rate limit, non-2xx status,
    a payload that is not the expected shape) is raised as ProviderError so the
    bus can redeliver the request later.
    """

    def __init__(
        self,
        api_key: str = TMDB_API_KEY,
        base_url: str = TMDB_BASE_URL,
        max_pages: int = TMDB_MAX_PAGES,
        timeout: float = TMDB_REQUEST_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.max_pages = min(max_pages, TMDB_PAGE_LIMIT)
        self.timeout = timeout

    def _tmdb_get(self, endpoint: str, params: dict | None = None) -> dict:
        """Make a GET request to TMDB API."""
        url = f"{self.base_url}{endpoint}"
        default_params = {"api_key": self.api_key}
        if params:
            default_params.update(params)
        try:
            resp = requests.get(url, params=default_params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderError(f"TMDB request to {endpoint} failed: {exc}") from exc

        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After", "?")
            raise ProviderError(f"TMDB rate limit hit on {endpoint} (retry after {retry_after}s)")
        try:
            resp.raise_for_status()
            data = resp.json()
        except (requests.HTTPError, ValueError) as exc:
            raise ProviderError(f"TMDB request to {endpoint} failed: {exc}") from exc
        if not isinstance(data, dict):
            raise ProviderError(f"TMDB returned a non-object payload for {endpoint}")
        return data

    def fetch(self, start_date: date, end_date: date) -> list[dict]:
        """Return the raw TMDB records for movies released in [start_date, end_date].

        Pages through /discover/movie until the last page or max_pages.
        Records are returned as-is; mapping and validation happen in the worker.
        """
        params = {
            "primary_release_date.gte": start_date.isoformat(),
            "primary_release_date.lte": end_date.isoformat(),
            "sort_by": "popularity.desc",
            "include_adult": "false",
        }
        records: list[dict] = []
        page = 1
        while True:
            data = self._tmdb_get("/discover/movie", {**params, "page": str(page)})
            results = data.get("results")
            if not isinstance(results, list):
                raise ProviderError(f"TMDB discover page {page} has no results list")
            records.extend(results)

            try:
                total_pages = int(data.get("total_pages", page))
            except (TypeError, ValueError) as exc:
                raise ProviderError(f"TMDB discover page {page} has a bad total_pages") from exc

            if page >= min(total_pages, self.max_pages):
                break
            page += 1

        if total_pages > self.max_pages:
            logger.warning(
                "TMDB has %d pages for %s..%s, only the first %d were fetched",
                total_pages, start_date, end_date, self.max_pages,
            )
        logger.info("Fetched %d TMDB records for %s..%s", len(records), start_date, end_date)
        return records
