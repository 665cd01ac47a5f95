"""Tests for population requests: week splitting and the bus message codec."""

import json
from datetime import date

import pytest

from peanut_gallery.data.movie import week_bucket
from peanut_gallery.data.population import PopulationRequest, split_into_weeks
from peanut_gallery.errors import MalformedMessage


def test_single_iso_week_is_one_sub_range():
    assert split_into_weeks(date(2024, 1, 1), date(2024, 1, 7)) == [(date(2024, 1, 1), date(2024, 1, 7))]


def test_same_day_is_one_sub_range():
    assert split_into_weeks(date(2024, 5, 15), date(2024, 5, 15)) == [(date(2024, 5, 15), date(2024, 5, 15))]


def test_range_is_split_on_monday_boundaries():
    ranges = split_into_weeks(date(2024, 1, 6), date(2024, 1, 22))
    assert ranges == [
        (date(2024, 1, 6), date(2024, 1, 7)),
        (date(2024, 1, 8), date(2024, 1, 14)),
        (date(2024, 1, 15), date(2024, 1, 21)),
        (date(2024, 1, 22), date(2024, 1, 22)),
    ]


def test_each_sub_range_covers_exactly_one_week_bucket():
    ranges = split_into_weeks(date(2023, 12, 20), date(2024, 2, 10))
    buckets = [week_bucket(start) for start, _ in ranges]

    assert all(week_bucket(start) == week_bucket(end) for start, end in ranges)
    assert len(buckets) == len(set(buckets))
    assert ranges[0][0] == date(2023, 12, 20)
    assert ranges[-1][1] == date(2024, 2, 10)
    # contiguous, no gaps or overlaps
    for (_, prev_end), (next_start, _) in zip(ranges, ranges[1:]):
        assert (next_start - prev_end).days == 1


def test_new_requests_get_unique_ids_and_attempt_zero():
    first = PopulationRequest.new(date(2024, 1, 1), date(2024, 1, 7))
    second = PopulationRequest.new(date(2024, 1, 1), date(2024, 1, 7))
    assert first.request_id != second.request_id
    assert first.attempt == 0


def test_wire_format_matches_message_schema():
    request = PopulationRequest(request_id="abc", start_date=date(2024, 1, 1), end_date=date(2024, 1, 7), attempt=2)
    assert json.loads(request.to_json()) == {
        "requestId": "abc",
        "startDate": "2024-01-01",
        "endDate": "2024-01-07",
        "attempt": 2,
    }
    assert PopulationRequest.from_json(request.to_json()) == request


def test_from_json_unwraps_sns_envelope():
    inner = PopulationRequest(request_id="abc", start_date=date(2024, 1, 1), end_date=date(2024, 1, 7))
    envelope = json.dumps({"Type": "Notification", "MessageId": "m-1", "Message": inner.to_json()})
    assert PopulationRequest.from_json(envelope) == inner


@pytest.mark.parametrize(
    "body",
    [
        "not json",
        "[1, 2]",
        json.dumps({"requestId": "abc", "startDate": "2024-01-01"}),
        json.dumps({"requestId": "abc", "startDate": "yesterday", "endDate": "2024-01-07"}),
        json.dumps({"requestId": "abc", "startDate": "2024-01-07", "endDate": "2024-01-01"}),
        json.dumps({"requestId": None, "startDate": "2024-01-01", "endDate": "2024-01-07", "attempt": 0}),
        json.dumps({"requestId": "", "startDate": "2024-01-01", "endDate": "2024-01-07"}),
        json.dumps({"requestId": 42, "startDate": "2024-01-01", "endDate": "2024-01-07"}),
        json.dumps({"requestId": "abc", "startDate": "2024-01-01", "endDate": "2024-01-07", "attempt": -1}),
        json.dumps({"Type": "Notification", "Message": {"requestId": "abc"}}),
        None,
    ],
)
def test_from_json_rejects_malformed_bodies(body):
    with pytest.raises(MalformedMessage):
        PopulationRequest.from_json(body)


def test_null_request_id_is_not_coerced_to_a_string():
    body = json.dumps({"requestId": None, "startDate": "2024-01-01", "endDate": "2024-01-07", "attempt": 0})

    with pytest.raises(MalformedMessage, match="requestId"):
        PopulationRequest.from_json(body)


def test_from_dict_reports_malformed_messages():
    with pytest.raises(MalformedMessage):
        PopulationRequest.from_dict({"requestId": "abc", "startDate": "2024-01-01"})


def test_with_attempt_keeps_everything_else():
    request = PopulationRequest.new(date(2024, 1, 1), date(2024, 1, 7))
    redelivered = request.with_attempt(3)

    assert redelivered.attempt == 3
    assert redelivered.request_id == request.request_id
    assert request.attempt == 0
