"""Lambda entry points: API gateway, SQS population consumer and the daily schedule."""

from __future__ import annotations

import base64
import json
import logging

from peanut_gallery.app import Services, get_services
from peanut_gallery.bus.sns_sqs import delivery_from_message
from peanut_gallery.config import DEFAULT_PAGE_SIZE
from peanut_gallery.errors import (
    MalformedMessage,
    PersistenceError,
    ProviderError,
    ValidationError,
)
from peanut_gallery.log import setup_logging

logger = logging.getLogger(__name__)

POPULATE_MOVIES = "populateMovies"
QUERY_MOVIES = "queryMovies"


def _response(status_code: int, body: dict) -> dict:
    return {
        "statusCode": status_code,
        "headers": {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": "*",
        },
        "body": json.dumps(body),
    }


def _request_payload(event: dict) -> dict:
    body = event.get("body") or "{}"
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    payload = json.loads(body)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def graphql_handler(event: dict, context=None, services: Services | None = None) -> dict:
    """POST {"operation": ..., "variables": {...}} from API Gateway (proxy integration)."""
    setup_logging()
    gateway = (services or get_services()).gateway

    try:
        payload = _request_payload(event)
        operation = payload.get("operation")
        variables = payload.get("variables") or {}
        if not isinstance(variables, dict):
            raise ValidationError("variables must be an object")

        if operation == POPULATE_MOVIES:
            result = gateway.populate_movies(variables.get("startDate"), variables.get("endDate"))
        elif operation == QUERY_MOVIES:
            result = gateway.query_movies(
                variables.get("weekBucket"),
                variables.get("dimension"),
                variables.get("pageSize", DEFAULT_PAGE_SIZE),
                variables.get("cursor"),
            )
        else:
            raise ValidationError(f"Unknown operation {operation!r}")
    except (ValueError, ValidationError) as exc:
        # json.JSONDecodeError and binascii.Error are ValueErrors
        return _response(400, {"error": str(exc)})
    except PersistenceError:
        logger.exception("Catalog read failed")
        return _response(503, {"error": "Catalog temporarily unavailable"})

    return _response(200, {"data": {operation: result.to_dict()}})


def population_handler(event: dict, context=None, services: Services | None = None) -> dict:
    """SQS event source batch with partial batch responses.

    Records listed in batchItemFailures stay on the queue and are redelivered;
    Lambda deletes the rest.
    """
    setup_logging()
    worker = (services or get_services()).worker

    failures = []
    for record in event.get("Records", []):
        message_id = record.get("messageId", "")
        try:
            delivery = delivery_from_message(record)
            worker.process(delivery.request)
        except MalformedMessage:
            logger.exception("Malformed population message %s", message_id)
            failures.append(message_id)
        except (ProviderError, PersistenceError):
            logger.exception("Population message %s failed, leaving it for redelivery", message_id)
            failures.append(message_id)

    return {"batchItemFailures": [{"itemIdentifier": message_id} for message_id in failures]}


def schedule_handler(event: dict, context=None, services: Services | None = None) -> dict:
    """EventBridge daily rule target."""
    setup_logging()
    result = (services or get_services()).scheduler.run_once()
    return result.to_dict()
