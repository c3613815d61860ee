import struct
from datetime import datetime, timedelta, timezone

import pytest

from storefront.timecodec import marshal_time, unmarshal_time


def test_origin_in_utc_has_fixed_bytes():
    data = marshal_time(datetime(1, 1, 1, tzinfo=timezone.utc))
    assert data == b"\x01" + bytes(8) + bytes(4) + b"\xff\xff"


def test_unix_epoch_seconds_field():
    data = marshal_time(datetime(1970, 1, 1, tzinfo=timezone.utc))
    assert struct.unpack(">q", data[1:9])[0] == 62135596800


def test_utc_round_trip_keeps_microseconds():
    moment = datetime(2024, 3, 5, 10, 20, 30, 123456, tzinfo=timezone.utc)
    decoded = unmarshal_time(marshal_time(moment))
    assert decoded == moment
    assert decoded.utcoffset() == timedelta(0)


def test_naive_is_treated_as_utc():
    naive = datetime(2023, 7, 1, 12, 0, 0)
    assert marshal_time(naive) == marshal_time(naive.replace(tzinfo=timezone.utc))


def test_fixed_offset_round_trip():
    zone = timezone(timedelta(hours=5, minutes=30))
    moment = datetime(2022, 12, 31, 23, 59, 59, tzinfo=zone)
    data = marshal_time(moment)
    assert data[0] == 1
    assert len(data) == 15
    assert struct.unpack(">h", data[13:15])[0] == 5 * 60 + 30
    decoded = unmarshal_time(data)
    assert decoded == moment
    assert decoded.utcoffset() == timedelta(hours=5, minutes=30)


def test_negative_offset_round_trip():
    zone = timezone(-timedelta(hours=8))
    moment = datetime(2021, 6, 15, 8, 0, tzinfo=zone)
    decoded = unmarshal_time(marshal_time(moment))
    assert decoded == moment
    assert decoded.utcoffset() == -timedelta(hours=8)


def test_offset_with_seconds_uses_version_two():
    zone = timezone(timedelta(hours=1, seconds=15))
    moment = datetime(2020, 1, 2, 3, 4, 5, tzinfo=zone)
    data = marshal_time(moment)
    assert data[0] == 2
    assert len(data) == 16
    decoded = unmarshal_time(data)
    assert decoded == moment
    assert decoded.utcoffset() == timedelta(hours=1, seconds=15)


def test_offset_of_minus_one_minute_is_rejected():
    zone = timezone(-timedelta(minutes=1))
    with pytest.raises(ValueError, match="zone offset"):
        marshal_time(datetime(2020, 1, 1, tzinfo=zone))


def test_empty_data_is_rejected():
    with pytest.raises(ValueError, match="no data"):
        unmarshal_time(b"")


def test_unknown_version_is_rejected():
    data = marshal_time(datetime(2020, 1, 1, tzinfo=timezone.utc))
    with pytest.raises(ValueError, match="unsupported version"):
        unmarshal_time(b"\x07" + data[1:])


def test_wrong_length_is_rejected():
    data = marshal_time(datetime(2020, 1, 1, tzinfo=timezone.utc))
    with pytest.raises(ValueError, match="invalid length"):
        unmarshal_time(data[:-1])
    with pytest.raises(ValueError, match="invalid length"):
        unmarshal_time(data + b"\x00")


def test_out_of_range_seconds_are_rejected():
    data = struct.pack(">Bqih", 1, 2**62, 0, -1)
    with pytest.raises(ValueError):
        unmarshal_time(data)