"""Population requests: the unit of work carried by the bus."""

from __future__ import annotations

import json
import uuid
from datetime import date, timedelta

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from peanut_gallery.errors import MalformedMessage


class PopulationRequest(BaseModel):
    """Fetch every movie released between start_date and end_date (inclusive).

    attempt counts previous deliveries and is owned by the bus: 0 on the first
    delivery, incremented on each redelivery.

    On the wire the fields are camelCase (requestId, startDate, endDate,
    attempt), serialized with to_json() and decoded with from_json().
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    request_id: StrictStr = Field(..., min_length=1)
    start_date: date
    end_date: date
    attempt: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _check_range(self) -> "PopulationRequest":
        if self.end_date < self.start_date:
            raise ValueError(f"endDate {self.end_date} is before startDate {self.start_date}")
        return self

    @classmethod
    def new(cls, start_date: date, end_date: date) -> "PopulationRequest":
        return cls(request_id=uuid.uuid4().hex, start_date=start_date, end_date=end_date)

    def with_attempt(self, attempt: int) -> "PopulationRequest":
        return self.model_copy(update={"attempt": attempt})

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_dict(cls, data: dict) -> "PopulationRequest":
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise MalformedMessage(f"Invalid population request: {exc}") from exc

    @classmethod
    def from_json(cls, body: str) -> "PopulationRequest":
        """Decode a queue message body, unwrapping an SNS notification envelope if present."""
        try:
            envelope = json.loads(body)
        except (TypeError, ValueError) as exc:
            raise MalformedMessage(f"Message body is not JSON: {body!r}") from exc
        if isinstance(envelope, dict) and envelope.get("Type") == "Notification" and "Message" in envelope:
            body = envelope["Message"]
        if not isinstance(body, (str, bytes)):
            raise MalformedMessage(f"SNS envelope carries a non-string message: {body!r}")
        try:
            return cls.model_validate_json(body)
        except ValidationError as exc:
            raise MalformedMessage(f"Invalid population request: {exc}") from exc


def split_into_weeks(start_date: date, end_date: date) -> list[tuple[date, date]]:
    """Split an inclusive range into ISO-week (Monday..Sunday) sub-ranges.

    The first and last sub-ranges are clipped to the requested range, so every
    sub-range falls inside exactly one week bucket.

    >>> split_into_weeks(date(2024, 1, 6), date(2024, 1, 9))
    [(datetime.date(2024, 1, 6), datetime.date(2024, 1, 7)), (datetime.date(2024, 1, 8), datetime.date(2024, 1, 9))]
    """
    ranges = []
    current = start_date
    while current <= end_date:
        sunday = current + timedelta(days=6 - current.weekday())
        ranges.append((current, min(sunday, end_date)))
        current = sunday + timedelta(days=1)
    return ranges
