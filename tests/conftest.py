"""Shared fixtures: fake clock, scripted provider and in-memory pipeline pieces."""

from datetime import date

import pytest

from peanut_gallery.bus.queue import InMemoryPopulationBus
from peanut_gallery.errors import ProviderError
from peanut_gallery.service.gateway import Gateway
from peanut_gallery.service.worker import PopulationWorker
from peanut_gallery.store.catalog import InMemoryCatalogStore


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider:
    """Returns scripted records per call; an Exception in the script is raised instead."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[tuple[date, date]] = []

    def fetch(self, start_date: date, end_date: date) -> list[dict]:
        self.calls.append((start_date, end_date))
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return list(response)


def tmdb_record(movie_id, release_date="2024-01-03", vote_average=7.0, popularity=50.0, **extra) -> dict:
    record = {
        "id": movie_id,
        "title": f"Movie {movie_id}",
        "release_date": release_date,
        "vote_average": vote_average,
        "popularity": popularity,
        "vote_count": 100,
        "overview": "",
        "original_language": "en",
        "poster_path": f"/{movie_id}.jpg",
        "genre_ids": [18],
    }
    record.update(extra)
    return record


@pytest.fixture(autouse=True)
def aws_test_credentials(monkeypatch):
    """Keep boto3 from looking for real credentials or a real region."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-2")


@pytest.fixture
def make_record():
    return tmdb_record


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bus(clock):
    return InMemoryPopulationBus(visibility_timeout=30, max_redeliveries=3, clock=clock)


@pytest.fixture
def store():
    return InMemoryCatalogStore()


@pytest.fixture
def gateway(bus, store):
    return Gateway(publisher=bus, reader=store)


@pytest.fixture
def provider():
    return FakeProvider([])


@pytest.fixture
def worker(bus, provider, store):
    return PopulationWorker(consumer=bus, provider=provider, writer=store)


@pytest.fixture
def failing_provider():
    return FakeProvider(ProviderError("TMDB rate limit hit"))
