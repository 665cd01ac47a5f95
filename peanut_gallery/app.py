"""Builds the object graph once per process: store, bus, provider and the three services."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

from peanut_gallery.config import BACKEND
from peanut_gallery.data.tmdb import TmdbProvider
from peanut_gallery.service.gateway import Gateway
from peanut_gallery.service.scheduler import DailyScheduler
from peanut_gallery.service.worker import MovieProvider, PopulationWorker

if TYPE_CHECKING:
    from peanut_gallery.bus.queue import InMemoryPopulationBus
    from peanut_gallery.bus.sns_sqs import SnsSqsPopulationBus
    from peanut_gallery.store.catalog import InMemoryCatalogStore
    from peanut_gallery.store.dynamo import DynamoCatalogStore


@dataclass
class Services:
    store: InMemoryCatalogStore | DynamoCatalogStore
    bus: InMemoryPopulationBus | SnsSqsPopulationBus
    gateway: Gateway
    worker: PopulationWorker
    scheduler: DailyScheduler


def build_services(backend: str = BACKEND, provider: MovieProvider | None = None) -> Services:
    """Wire the pipeline for the "aws" or "memory" backend.

    The gateway only sees publish + read, the worker only receive/ack + upsert.
    """
    if backend == "memory":
        from peanut_gallery.bus.queue import InMemoryPopulationBus
        from peanut_gallery.store.catalog import InMemoryCatalogStore

        store = InMemoryCatalogStore()
        bus = InMemoryPopulationBus()
    elif backend == "aws":
        from peanut_gallery.bus.sns_sqs import SnsSqsPopulationBus
        from peanut_gallery.store.dynamo import DynamoCatalogStore

        store = DynamoCatalogStore()
        bus = SnsSqsPopulationBus()
    else:
        raise ValueError(f"Unknown backend {backend!r} (expected 'aws' or 'memory')")

    gateway = Gateway(publisher=bus, reader=store)
    worker = PopulationWorker(consumer=bus, provider=provider or TmdbProvider(), writer=store)
    return Services(
        store=store,
        bus=bus,
        gateway=gateway,
        worker=worker,
        scheduler=DailyScheduler(gateway),
    )


@lru_cache(maxsize=1)
def get_services() -> Services:
    """Process-wide services, built on first use (reused by warm Lambda containers)."""
    return build_services()
