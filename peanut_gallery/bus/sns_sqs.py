"""AWS request bus: SNS topic fanned out to an SQS queue with a redrive policy.

Dead-lettering is done by SQS itself (maxReceiveCount on the queue's redrive
policy, see deploy/provision.py), so this class only publishes, receives and
deletes.
"""

from __future__ import annotations

import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from peanut_gallery.bus.queue import Delivery
from peanut_gallery.config import (
    AWS_REGION,
    MOVIE_POPULATION_DEAD_LETTER_QUEUE_URL,
    MOVIE_POPULATION_REQUEST_QUEUE_URL,
    MOVIE_POPULATION_REQUEST_TOPIC_ARN,
    PUBLISH_TIMEOUT_SECONDS,
    RECEIVE_WAIT_SECONDS,
    VISIBILITY_TIMEOUT_SECONDS,
)
from peanut_gallery.data.population import PopulationRequest
from peanut_gallery.errors import BusError, MalformedMessage, PoisonMessage, PublishError

logger = logging.getLogger(__name__)

SQS_MAX_BATCH = 10


def get_sns_client():
    """SNS client whose calls give up after PUBLISH_TIMEOUT_SECONDS."""
    config = Config(
        connect_timeout=PUBLISH_TIMEOUT_SECONDS,
        read_timeout=PUBLISH_TIMEOUT_SECONDS,
        retries={"max_attempts": 2, "mode": "standard"},
    )
    return boto3.client("sns", region_name=AWS_REGION, config=config)


def get_sqs_client():
    """SQS client with a read timeout longer than the long-poll wait."""
    config = Config(read_timeout=RECEIVE_WAIT_SECONDS + 10)
    return boto3.client("sqs", region_name=AWS_REGION, config=config)


def delivery_from_message(message: dict) -> Delivery:
    """Build a Delivery from an SQS message (ReceiveMessage shape or Lambda event record).

    attempt is ApproximateReceiveCount - 1 so the first delivery is attempt 0.

    Raises:
        MalformedMessage: the body is not a population request.
    """
    attributes = message.get("Attributes") or message.get("attributes") or {}
    receive_count = int(attributes.get("ApproximateReceiveCount", "1"))
    request = PopulationRequest.from_json(message.get("Body", message.get("body")))
    return Delivery(
        request=request.with_attempt(max(receive_count - 1, 0)),
        receipt_handle=message.get("ReceiptHandle", message.get("receiptHandle", "")),
        message_id=message.get("MessageId", message.get("messageId", "")),
    )


class SnsSqsPopulationBus:
    def __init__(
        self,
        topic_arn: str = MOVIE_POPULATION_REQUEST_TOPIC_ARN,
        queue_url: str = MOVIE_POPULATION_REQUEST_QUEUE_URL,
        dead_letter_queue_url: str = MOVIE_POPULATION_DEAD_LETTER_QUEUE_URL,
        sns_client=None,
        sqs_client=None,
        wait_seconds: int = RECEIVE_WAIT_SECONDS,
        visibility_timeout: int = VISIBILITY_TIMEOUT_SECONDS,
    ):
        self.topic_arn = topic_arn
        self.queue_url = queue_url
        self.dead_letter_queue_url = dead_letter_queue_url
        self.sns = sns_client if sns_client is not None else get_sns_client()
        self.sqs = sqs_client if sqs_client is not None else get_sqs_client()
        self.wait_seconds = wait_seconds
        self.visibility_timeout = visibility_timeout

    def publish(self, request: PopulationRequest) -> str:
        try:
            response = self.sns.publish(
                TopicArn=self.topic_arn,
                Message=request.with_attempt(0).to_json(),
                MessageAttributes={
                    "requestId": {"DataType": "String", "StringValue": request.request_id},
                },
            )
        except (BotoCoreError, ClientError) as exc:
            raise PublishError(f"Failed to publish request {request.request_id}: {exc}") from exc
        return response["MessageId"]

    def _receive(self, queue_url: str, max_messages: int, wait_seconds: int, visibility_timeout: int) -> list[dict]:
        try:
            response = self.sqs.receive_message(
                QueueUrl=queue_url,
                MaxNumberOfMessages=min(max_messages, SQS_MAX_BATCH),
                WaitTimeSeconds=wait_seconds,
                VisibilityTimeout=visibility_timeout,
                MessageSystemAttributeNames=["ApproximateReceiveCount"],
            )
        except (BotoCoreError, ClientError) as exc:
            raise BusError(f"Failed to receive from {queue_url}: {exc}") from exc
        return response.get("Messages", [])

    def receive(self, max_messages: int = 1) -> list[Delivery]:
        deliveries = []
        for message in self._receive(self.queue_url, max_messages, self.wait_seconds, self.visibility_timeout):
            try:
                deliveries.append(delivery_from_message(message))
            except MalformedMessage:
                # Left unacked: the redrive policy dead-letters it after maxReceiveCount
                logger.exception("Malformed message %s on population queue", message.get("MessageId"))
        return deliveries

    def ack(self, delivery: Delivery) -> None:
        try:
            self.sqs.delete_message(QueueUrl=self.queue_url, ReceiptHandle=delivery.receipt_handle)
        except (BotoCoreError, ClientError) as exc:
            raise BusError(f"Failed to ack message {delivery.message_id}: {exc}") from exc

    def dead_letters(self, max_messages: int = SQS_MAX_BATCH) -> list[PoisonMessage]:
        """Peek at dead-lettered requests without consuming them (visibility 0)."""
        if not self.dead_letter_queue_url:
            raise BusError("MOVIE_POPULATION_DEAD_LETTER_QUEUE_URL is not configured")
        poisoned = []
        for message in self._receive(self.dead_letter_queue_url, max_messages, 0, 0):
            try:
                poisoned.append(PoisonMessage(delivery_from_message(message).request))
            except MalformedMessage:
                logger.warning("Unreadable dead letter %s: %r", message.get("MessageId"), message.get("Body"))
        return poisoned
