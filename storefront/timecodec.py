"""Binary encoding of timestamps in the wire layout used between services.

Layout: a version byte, the seconds since 0001-01-01T00:00:00Z as a
big-endian int64, the nanoseconds as a big-endian int32 and the zone
offset in minutes as a big-endian int16, where -1 marks UTC. Version 2
appends one signed byte holding the leftover seconds of the offset.
"""

from __future__ import annotations

import struct
from datetime import datetime, timedelta, timezone

_VERSION_V1 = 1
_VERSION_V2 = 2
_UTC_MARKER = -1
_HEADER = struct.Struct(">Bqih")
_OFFSET_SECONDS = struct.Struct(">b")
_ORIGIN = datetime(1, 1, 1, tzinfo=timezone.utc)


def _split_offset(seconds: int) -> tuple[int, int]:
    """Split an offset into whole minutes and seconds, truncating toward zero."""
    sign = -1 if seconds < 0 else 1
    minutes = sign * (abs(seconds) // 60)
    return minutes, seconds - minutes * 60


def marshal_time(value: datetime) -> bytes:
    """Encode ``value``; a naive datetime is taken to be in UTC.

    Raises ValueError for an offset that the layout cannot represent.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    if value.tzinfo is timezone.utc:
        offset_min, offset_sec = _UTC_MARKER, 0
    else:
        offset = value.utcoffset() or timedelta(0)
        offset_min, offset_sec = _split_offset(offset.days * 86400 + offset.seconds)
        if offset_min == _UTC_MARKER:
            raise ValueError("unexpected zone offset")
    delta = value - _ORIGIN
    seconds = delta.days * 86400 + delta.seconds
    nanoseconds = delta.microseconds * 1000
    version = _VERSION_V2 if offset_sec else _VERSION_V1
    data = _HEADER.pack(version, seconds, nanoseconds, offset_min)
    if version == _VERSION_V2:
        data += _OFFSET_SECONDS.pack(offset_sec)
    return data


def unmarshal_time(data: bytes) -> datetime:
    """Decode bytes produced by :func:`marshal_time` into an aware datetime.

    Nanoseconds are truncated to microseconds. Raises ValueError for
    empty, malformed or out-of-range input.
    """
    if not data:
        raise ValueError("no data")
    version = data[0]
    if version not in (_VERSION_V1, _VERSION_V2):
        raise ValueError("unsupported version")
    expected = _HEADER.size + (1 if version == _VERSION_V2 else 0)
    if len(data) != expected:
        raise ValueError("invalid length")
    _, seconds, nanoseconds, offset_min = _HEADER.unpack(data[: _HEADER.size])
    offset = offset_min * 60
    if version == _VERSION_V2:
        offset += _OFFSET_SECONDS.unpack(data[_HEADER.size :])[0]
    try:
        moment = _ORIGIN + timedelta(seconds=seconds, microseconds=nanoseconds // 1000)
        if offset == _UTC_MARKER * 60:
            return moment
        return moment.astimezone(timezone(timedelta(seconds=offset)))
    except OverflowError as exc:
        raise ValueError("time out of range") from exc