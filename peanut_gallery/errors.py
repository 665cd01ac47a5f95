"""Error taxonomy for the population pipeline."""

from __future__ import annotations


class PeanutGalleryError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(PeanutGalleryError):
    """Bad caller input. Surfaced synchronously, never retried."""


class ProviderError(PeanutGalleryError):
    """TMDB failed: timeout, rate limit, or a malformed payload."""


class PersistenceError(PeanutGalleryError):
    """The catalog store rejected or could not complete a write or read."""


class BusError(PeanutGalleryError):
    """The request bus could not complete a receive or ack."""


class PublishError(BusError):
    """A population request could not be handed to the bus.

    The outcome is unknown (a timeout may hide a successful publish); callers
    may retry since the worker is idempotent.
    """


class MalformedRecord(PeanutGalleryError):
    """A single raw provider record could not be mapped to a Movie."""


class MalformedMessage(PeanutGalleryError):
    """A bus message body is not a valid population request."""


class PoisonMessage(PeanutGalleryError):
    """A population request that exhausted its redeliveries and sits on the dead-letter queue.

    deliveries is None when the backend cannot tell how often the original
    queue handed the message out (an SQS dead-letter peek only sees its own
    receive count).
    """

    def __init__(self, request, deliveries: int | None = None):
        detail = f" after {deliveries} deliveries" if deliveries is not None else ""
        super().__init__(
            f"Request {request.request_id} ({request.start_date} to {request.end_date}) "
            f"was dead-lettered{detail}"
        )
        self.request = request
        self.deliveries = deliveries
