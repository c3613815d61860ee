from datetime import datetime, timezone
from unittest import mock

import pytest

from storefront.ksuid import ENCODED_LENGTH, EPOCH, new_id, parse_id


def test_new_id_is_27_alphanumeric_characters():
    value = new_id()
    assert len(value) == ENCODED_LENGTH
    assert value.isalnum()
    assert value.isascii()


def test_new_ids_are_unique():
    values = {new_id() for _ in range(200)}
    assert len(values) == 200


def test_round_trip_preserves_timestamp_and_payload():
    payload = bytes(range(16))
    with mock.patch("time.time", return_value=EPOCH + 60.7), mock.patch(
        "os.urandom", return_value=payload
    ):
        value = new_id()
    stamp, parsed_payload = parse_id(value)
    assert stamp == datetime.fromtimestamp(EPOCH + 60, tz=timezone.utc)
    assert parsed_payload == payload


def test_current_id_timestamp_is_close_to_now():
    stamp, payload = parse_id(new_id())
    now = datetime.now(timezone.utc)
    assert abs((now - stamp).total_seconds()) < 5
    assert len(payload) == 16


def test_ids_sort_by_creation_second():
    with mock.patch("time.time", return_value=EPOCH + 1000):
        earlier = new_id()
    with mock.patch("time.time", return_value=EPOCH + 1001):
        later = new_id()
    assert earlier < later


def test_nil_identifier():
    stamp, payload = parse_id("000000000000000000000000000")
    assert stamp == datetime(2014, 5, 13, 16, 53, 20, tzinfo=timezone.utc)
    assert payload == bytes(16)


def test_max_identifier():
    _, payload = parse_id("aWgEPTl1tmebfsQzFP4bxwgy80V")
    assert payload == b"\xff" * 16


@pytest.mark.parametrize(
    "value",
    [
        "",
        "abc",
        "0" * 28,
        "!" * 27,
        "00000000000000000000000000-",
        "zzzzzzzzzzzzzzzzzzzzzzzzzzz",
    ],
)
def test_invalid_identifiers_are_rejected(value):
    with pytest.raises(ValueError):
        parse_id(value)