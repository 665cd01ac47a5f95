"""Population worker: fetch a week from TMDB and upsert it into the catalog."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Protocol

from peanut_gallery.bus.queue import Delivery, RequestConsumer
from peanut_gallery.data.movie import Movie
from peanut_gallery.data.population import PopulationRequest
from peanut_gallery.errors import BusError, MalformedRecord, PersistenceError, ProviderError
from peanut_gallery.store.catalog import MovieWriter

logger = logging.getLogger(__name__)


class MovieProvider(Protocol):
    """Fetch capability on the external catalog (TmdbProvider in production)."""

    def fetch(self, start_date: date, end_date: date) -> list[dict]:
        ...


@dataclass(frozen=True)
class PopulationOutcome:
    upserted: int
    skipped: int


class PopulationWorker:
    """Processes one population request at a time.

    Provider and persistence failures fail the whole message: it is left
    unacked and the bus redelivers it after the visibility window (or
    dead-letters it once the redelivery budget is spent). A single malformed
    record is logged and skipped.
    """

    def __init__(self, consumer: RequestConsumer, provider: MovieProvider, writer: MovieWriter):
        self.consumer = consumer
        self.provider = provider
        self.writer = writer

    def process(self, request: PopulationRequest) -> PopulationOutcome:
        """Fetch and upsert every movie for the request's range.

        Raises:
            ProviderError: TMDB failed; nothing was written.
            PersistenceError: one or more upserts failed. Every record is still
                attempted; the ones that landed are rewritten identically on
                redelivery.
        """
        records = self.provider.fetch(request.start_date, request.end_date)

        upserted = skipped = 0
        failures: list[PersistenceError] = []
        for record in records:
            try:
                movie = Movie.from_tmdb(record)
            except MalformedRecord as exc:
                skipped += 1
                logger.warning("Request %s: skipping record: %s", request.request_id, exc)
                continue
            try:
                self.writer.upsert(movie)
            except PersistenceError as exc:
                failures.append(exc)
                continue
            upserted += 1

        if failures:
            raise PersistenceError(
                f"Request {request.request_id}: {len(failures)} of {upserted + len(failures)} upserts failed"
            ) from failures[0]

        logger.info(
            "Request %s (%s..%s, attempt %d): %d upserted, %d skipped",
            request.request_id, request.start_date, request.end_date,
            request.attempt, upserted, skipped,
        )
        return PopulationOutcome(upserted=upserted, skipped=skipped)

    def handle(self, delivery: Delivery) -> bool:
        """Process a delivery and ack it on success. Returns whether it was acked."""
        request = delivery.request
        try:
            self.process(request)
        except (ProviderError, PersistenceError):
            logger.exception(
                "Request %s failed on attempt %d, leaving it for redelivery",
                request.request_id, request.attempt,
            )
            return False
        self.consumer.ack(delivery)
        return True

    def poll_once(self, max_messages: int = 1) -> int:
        """Receive and handle one batch. Returns the number of acked messages."""
        return sum(self.handle(delivery) for delivery in self.consumer.receive(max_messages))

    def run(
        self,
        max_messages: int = 1,
        idle_sleep: float = 1.0,
        stop_after: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Poll until stop_after batches have been received (forever if None)."""
        polls = 0
        while stop_after is None or polls < stop_after:
            polls += 1
            try:
                acked = self.poll_once(max_messages)
            except BusError:
                logger.exception("Receive from the population queue failed")
                sleep(idle_sleep)
                continue
            if not acked:
                sleep(idle_sleep)
