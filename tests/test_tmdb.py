"""Tests for the TMDB provider with requests.get patched out."""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import requests

from peanut_gallery.data.tmdb import TmdbProvider
from peanut_gallery.errors import ProviderError

START, END = date(2024, 1, 1), date(2024, 1, 7)


def _response(status_code=200, payload=None, headers=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = headers or {}
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp


def _page(page, total_pages, ids):
    return {"page": page, "total_pages": total_pages, "results": [{"id": i} for i in ids]}


@pytest.fixture
def tmdb():
    return TmdbProvider(api_key="test-key", max_pages=5)


@patch("peanut_gallery.data.tmdb.requests.get")
def test_fetch_pages_through_discover(mock_get, tmdb):
    mock_get.side_effect = [
        _response(payload=_page(1, 3, [1, 2])),
        _response(payload=_page(2, 3, [3])),
        _response(payload=_page(3, 3, [4])),
    ]

    records = tmdb.fetch(START, END)

    assert [r["id"] for r in records] == [1, 2, 3, 4]
    assert mock_get.call_count == 3
    url = mock_get.call_args.args[0]
    params = mock_get.call_args.kwargs["params"]
    assert url == "https://api.themoviedb.org/3/discover/movie"
    assert params["api_key"] == "test-key"
    assert params["primary_release_date.gte"] == "2024-01-01"
    assert params["primary_release_date.lte"] == "2024-01-07"
    assert params["page"] == "3"
    assert mock_get.call_args.kwargs["timeout"] == tmdb.timeout


@patch("peanut_gallery.data.tmdb.requests.get")
def test_fetch_stops_at_max_pages(mock_get, tmdb):
    mock_get.side_effect = [_response(payload=_page(p, 40, [p])) for p in range(1, 6)]

    records = tmdb.fetch(START, END)

    assert len(records) == 5
    assert mock_get.call_count == 5


@patch("peanut_gallery.data.tmdb.requests.get")
def test_empty_week_is_not_an_error(mock_get, tmdb):
    mock_get.return_value = _response(payload={"page": 1, "total_pages": 0, "results": []})

    assert tmdb.fetch(START, END) == []


@patch("peanut_gallery.data.tmdb.requests.get")
def test_rate_limit_is_a_provider_error(mock_get, tmdb):
    mock_get.return_value = _response(status_code=429, headers={"Retry-After": "10"})

    with pytest.raises(ProviderError, match="rate limit"):
        tmdb.fetch(START, END)


@pytest.mark.parametrize(
    "outcome",
    [
        requests.Timeout("read timed out"),
        requests.ConnectionError("connection refused"),
        _response(status_code=503),
        _response(payload=["not", "an", "object"]),
        _response(payload={"page": 1, "total_pages": 1}),
        _response(payload={"page": 1, "total_pages": "many", "results": []}),
    ],
)
@patch("peanut_gallery.data.tmdb.requests.get")
def test_transport_and_payload_failures_are_provider_errors(mock_get, tmdb, outcome):
    if isinstance(outcome, Exception):
        mock_get.side_effect = outcome
    else:
        mock_get.return_value = outcome

    with pytest.raises(ProviderError):
        tmdb.fetch(START, END)


@patch("peanut_gallery.data.tmdb.requests.get")
def test_invalid_json_is_a_provider_error(mock_get, tmdb):
    resp = _response()
    resp.json.side_effect = ValueError("Expecting value")
    mock_get.return_value = resp

    with pytest.raises(ProviderError):
        tmdb.fetch(START, END)
