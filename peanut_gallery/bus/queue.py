"""Population request bus interfaces and the in-memory backend.

The in-memory bus reproduces the SNS -> SQS -> DLQ semantics the AWS backend
gets from the services themselves:

- a received message stays invisible for the visibility window and becomes
  visible again unless it is acked before the window ends;
- each redelivery increments the request's attempt counter;
- a message already delivered max_redeliveries + 1 times is moved to the
  dead-letter queue the next time it comes due instead of being redelivered.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Protocol

from peanut_gallery.config import MAX_REDELIVERIES, VISIBILITY_TIMEOUT_SECONDS
from peanut_gallery.data.population import PopulationRequest
from peanut_gallery.errors import PoisonMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Delivery:
    """A request handed to one consumer, plus what it needs to ack it."""

    request: PopulationRequest
    receipt_handle: str
    message_id: str


class RequestPublisher(Protocol):
    """Publish capability handed to the gateway."""

    def publish(self, request: PopulationRequest) -> str:
        ...


class RequestConsumer(Protocol):
    """Consume capability handed to the worker."""

    def receive(self, max_messages: int = 1) -> list[Delivery]:
        ...

    def ack(self, delivery: Delivery) -> None:
        ...


@dataclass
class _Message:
    message_id: str
    body: str
    receive_count: int = 0
    visible_at: float = 0.0
    receipt_handle: str | None = None

    def request(self) -> PopulationRequest:
        return PopulationRequest.from_json(self.body).with_attempt(max(self.receive_count - 1, 0))


class InMemoryPopulationBus:
    """Thread-safe queue with a visibility window and an attached dead-letter queue."""

    def __init__(
        self,
        visibility_timeout: float = VISIBILITY_TIMEOUT_SECONDS,
        max_redeliveries: int = MAX_REDELIVERIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.visibility_timeout = visibility_timeout
        self.max_redeliveries = max_redeliveries
        self.clock = clock
        self._queue: OrderedDict[str, _Message] = OrderedDict()
        self._dead_letters: list[_Message] = []
        self._lock = threading.Lock()

    def publish(self, request: PopulationRequest) -> str:
        message = _Message(message_id=uuid.uuid4().hex, body=request.with_attempt(0).to_json())
        with self._lock:
            self._queue[message.message_id] = message
        logger.debug("Published request %s as message %s", request.request_id, message.message_id)
        return message.message_id

    def receive(self, max_messages: int = 1) -> list[Delivery]:
        now = self.clock()
        deliveries = []
        with self._lock:
            for message in list(self._queue.values()):
                if len(deliveries) >= max_messages:
                    break
                if message.visible_at > now:
                    continue
                if message.receive_count > self.max_redeliveries:
                    del self._queue[message.message_id]
                    self._dead_letters.append(message)
                    logger.warning(
                        "Message %s dead-lettered after %d deliveries",
                        message.message_id, message.receive_count,
                    )
                    continue

                message.receive_count += 1
                message.visible_at = now + self.visibility_timeout
                message.receipt_handle = uuid.uuid4().hex
                deliveries.append(
                    Delivery(
                        request=message.request(),
                        receipt_handle=message.receipt_handle,
                        message_id=message.message_id,
                    )
                )
        return deliveries

    def ack(self, delivery: Delivery) -> None:
        with self._lock:
            message = self._queue.get(delivery.message_id)
            if message is not None and message.receipt_handle == delivery.receipt_handle:
                del self._queue[delivery.message_id]
                return
        # The window expired and the message went to another consumer (or the DLQ)
        logger.warning(
            "Ignoring stale ack for message %s (request %s)",
            delivery.message_id, delivery.request.request_id,
        )

    def dead_letters(self) -> list[PoisonMessage]:
        with self._lock:
            return [
                PoisonMessage(message.request(), deliveries=message.receive_count)
                for message in self._dead_letters
            ]

    def __len__(self) -> int:
        """Messages still on the main queue, visible or in flight."""
        with self._lock:
            return len(self._queue)
