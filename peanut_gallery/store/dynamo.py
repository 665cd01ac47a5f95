"""DynamoDB catalog store: PeanutGalleryMovies table with two rank GSIs."""

from __future__ import annotations

import logging

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from peanut_gallery.config import AWS_REGION, MOVIE_TABLE, POPULARITY_INDEX, SCORE_INDEX
from peanut_gallery.data.movie import (
    DIMENSIONS,
    POPULARITY,
    SCORE,
    SORT_KEY_ATTRS,
    WEEK_BUCKET_ATTR,
    Movie,
)
from peanut_gallery.errors import PersistenceError
from peanut_gallery.store.catalog import IndexPage

logger = logging.getLogger(__name__)

INDEX_NAMES = {SCORE: SCORE_INDEX, POPULARITY: POPULARITY_INDEX}


def get_dynamodb_resource():
    """Get a DynamoDB resource."""
    return boto3.resource("dynamodb", region_name=AWS_REGION)


class DynamoCatalogStore:
    """Catalog store backed by a single DynamoDB table.

    Table schema:
        PK: id (string)
        GSI moviesByScore: year-week / score-id
        GSI moviesByPopularity: year-week / popularity-id

    Each upsert is one PutItem, so the base record and both index key
    attributes change together. The GSIs themselves are eventually consistent
    and may briefly lag a completed upsert.
    """

    def __init__(self, table=None, table_name: str = MOVIE_TABLE):
        self.table = table if table is not None else get_dynamodb_resource().Table(table_name)

    def upsert(self, movie: Movie) -> None:
        try:
            self.table.put_item(Item=movie.to_item())
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(f"Failed to upsert movie {movie.id}: {exc}") from exc

    def get(self, movie_id: str) -> Movie | None:
        try:
            response = self.table.get_item(Key={"id": movie_id})
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(f"Failed to read movie {movie_id}: {exc}") from exc
        item = response.get("Item")
        return Movie.from_item(item) if item else None

    def query_by_index(
        self,
        week_bucket: str,
        dimension: str,
        page_size: int,
        after_key: str | None = None,
    ) -> IndexPage:
        """Read one page of a rank index, highest key first.

        Asks for page_size + 1 items so the presence of a following page is
        known without a second round trip. DynamoDB may return fewer items than
        the limit (1 MB response cap), in which case the query continues from
        LastEvaluatedKey.
        """
        if dimension not in DIMENSIONS:
            raise ValueError(f"Unknown dimension {dimension!r}")
        sort_attr = SORT_KEY_ATTRS[dimension]

        condition = Key(WEEK_BUCKET_ATTR).eq(week_bucket)
        if after_key is not None:
            condition = condition & Key(sort_attr).lt(after_key)
        query_args = {
            "IndexName": INDEX_NAMES[dimension],
            "KeyConditionExpression": condition,
            "ScanIndexForward": False,
        }

        items: list[dict] = []
        try:
            while len(items) <= page_size:
                query_args["Limit"] = page_size + 1 - len(items)
                response = self.table.query(**query_args)
                items.extend(response.get("Items", []))
                last_evaluated = response.get("LastEvaluatedKey")
                if not last_evaluated:
                    break
                query_args["ExclusiveStartKey"] = last_evaluated
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(f"Failed to query {INDEX_NAMES[dimension]} for {week_bucket}: {exc}") from exc

        page = items[:page_size]
        last_key = page[-1][sort_attr] if page and len(items) > page_size else None
        return IndexPage(movies=[Movie.from_item(item) for item in page], last_key=last_key)
