"""Daily trigger for the trailing population window."""

from __future__ import annotations

import logging
import time
from datetime import date, timedelta
from typing import Callable

from peanut_gallery.config import SCHEDULE_INTERVAL_SECONDS, TRAILING_WINDOW_DAYS
from peanut_gallery.errors import PeanutGalleryError
from peanut_gallery.service.gateway import Gateway, PopulateResult

logger = logging.getLogger(__name__)


class DailyScheduler:
    """Calls Gateway.populate_movies for [today - trailing_days, today].

    Goes through the same entry point and validation as a user request. The
    clock and sleep are injectable so tests need no real time.
    """

    def __init__(
        self,
        gateway: Gateway,
        trailing_days: int = TRAILING_WINDOW_DAYS,
        interval_seconds: float = SCHEDULE_INTERVAL_SECONDS,
        today: Callable[[], date] = date.today,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.gateway = gateway
        self.trailing_days = trailing_days
        self.interval_seconds = interval_seconds
        self.today = today
        self.sleep = sleep

    def run_once(self) -> PopulateResult:
        end = self.today()
        start = end - timedelta(days=self.trailing_days)
        result = self.gateway.populate_movies(start, end)
        logger.info("Scheduled population %s..%s: %d requests", start, end, len(result.initiated_ids))
        return result

    def run_forever(self, max_runs: int | None = None) -> None:
        runs = 0
        while max_runs is None or runs < max_runs:
            runs += 1
            try:
                self.run_once()
            except PeanutGalleryError:
                logger.exception("Scheduled population failed")
            if max_runs is None or runs < max_runs:
                self.sleep(self.interval_seconds)
