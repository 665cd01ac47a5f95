"""Create the DynamoDB table, SNS topic and SQS queues the pipeline runs on.

Every step is idempotent, so this can be re-run against an existing account.
"""

from __future__ import annotations

import json
import logging

import boto3

from peanut_gallery.config import (
    AWS_REGION,
    MAX_REDELIVERIES,
    MOVIE_POPULATION_DEAD_LETTER_QUEUE_NAME,
    MOVIE_POPULATION_REQUEST_QUEUE_NAME,
    MOVIE_POPULATION_REQUEST_TOPIC_NAME,
    MOVIE_TABLE,
    POPULARITY_INDEX,
    SCORE_INDEX,
    VISIBILITY_TIMEOUT_SECONDS,
)
from peanut_gallery.data.movie import POPULARITY, SCORE, SORT_KEY_ATTRS, WEEK_BUCKET_ATTR

logger = logging.getLogger(__name__)

# 14 days, the SQS maximum, so dead letters survive until someone looks
DEAD_LETTER_RETENTION_SECONDS = 14 * 24 * 60 * 60


def _rank_index(index_name: str, sort_attr: str) -> dict:
    return {
        "IndexName": index_name,
        "KeySchema": [
            {"AttributeName": WEEK_BUCKET_ATTR, "KeyType": "HASH"},
            {"AttributeName": sort_attr, "KeyType": "RANGE"},
        ],
        "Projection": {"ProjectionType": "ALL"},
    }


def ensure_movie_table(dynamodb_client, table_name: str = MOVIE_TABLE) -> str:
    """Create the movie table with both rank GSIs if it does not exist."""
    try:
        dynamodb_client.create_table(
            TableName=table_name,
            AttributeDefinitions=[
                {"AttributeName": "id", "AttributeType": "S"},
                {"AttributeName": WEEK_BUCKET_ATTR, "AttributeType": "S"},
                {"AttributeName": SORT_KEY_ATTRS[SCORE], "AttributeType": "S"},
                {"AttributeName": SORT_KEY_ATTRS[POPULARITY], "AttributeType": "S"},
            ],
            KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
            GlobalSecondaryIndexes=[
                _rank_index(SCORE_INDEX, SORT_KEY_ATTRS[SCORE]),
                _rank_index(POPULARITY_INDEX, SORT_KEY_ATTRS[POPULARITY]),
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        logger.info("Creating table %s", table_name)
    except dynamodb_client.exceptions.ResourceInUseException:
        logger.info("Table %s already exists", table_name)
    dynamodb_client.get_waiter("table_exists").wait(TableName=table_name)
    return table_name


def _queue_arn(sqs_client, queue_url: str) -> str:
    response = sqs_client.get_queue_attributes(QueueUrl=queue_url, AttributeNames=["QueueArn"])
    return response["Attributes"]["QueueArn"]


def ensure_population_bus(sns_client, sqs_client) -> dict:
    """Create topic -> queue -> dead-letter queue and subscribe the queue to the topic."""
    topic_arn = sns_client.create_topic(Name=MOVIE_POPULATION_REQUEST_TOPIC_NAME)["TopicArn"]

    dead_letter_url = sqs_client.create_queue(
        QueueName=MOVIE_POPULATION_DEAD_LETTER_QUEUE_NAME,
        Attributes={"MessageRetentionPeriod": str(DEAD_LETTER_RETENTION_SECONDS)},
    )["QueueUrl"]
    dead_letter_arn = _queue_arn(sqs_client, dead_letter_url)

    queue_url = sqs_client.create_queue(QueueName=MOVIE_POPULATION_REQUEST_QUEUE_NAME)["QueueUrl"]
    queue_arn = _queue_arn(sqs_client, queue_url)

    send_from_topic = {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": "sns.amazonaws.com"},
                "Action": "sqs:SendMessage",
                "Resource": queue_arn,
                "Condition": {"ArnEquals": {"aws:SourceArn": topic_arn}},
            }
        ],
    }
    sqs_client.set_queue_attributes(
        QueueUrl=queue_url,
        Attributes={
            "VisibilityTimeout": str(VISIBILITY_TIMEOUT_SECONDS),
            "RedrivePolicy": json.dumps(
                {"deadLetterTargetArn": dead_letter_arn, "maxReceiveCount": str(MAX_REDELIVERIES + 1)}
            ),
            "Policy": json.dumps(send_from_topic),
        },
    )

    sns_client.subscribe(
        TopicArn=topic_arn,
        Protocol="sqs",
        Endpoint=queue_arn,
        Attributes={"RawMessageDelivery": "true"},
    )
    logger.info("Population bus ready: %s -> %s (DLQ %s)", topic_arn, queue_url, dead_letter_url)
    return {
        "MOVIE_POPULATION_REQUEST_TOPIC_ARN": topic_arn,
        "MOVIE_POPULATION_REQUEST_QUEUE_URL": queue_url,
        "MOVIE_POPULATION_DEAD_LETTER_QUEUE_URL": dead_letter_url,
    }


def ensure_resources(region: str = AWS_REGION) -> dict:
    """Provision everything and return the environment values the services need."""
    table_name = ensure_movie_table(boto3.client("dynamodb", region_name=region))
    env = ensure_population_bus(
        boto3.client("sns", region_name=region),
        boto3.client("sqs", region_name=region),
    )
    return {"MOVIE_TABLE_NAME": table_name, **env}
