"""K-sortable unique identifiers: 27-character base62 strings.

An identifier packs a 32-bit timestamp (seconds since the custom epoch)
followed by 16 random bytes, so identifiers sort by creation second.
"""

from __future__ import annotations

import os
import string
import time
from datetime import datetime, timezone

EPOCH = 1_400_000_000
ENCODED_LENGTH = 27

_TIMESTAMP_BYTES = 4
_PAYLOAD_BYTES = 16
_RAW_BYTES = _TIMESTAMP_BYTES + _PAYLOAD_BYTES
_LIMIT = 1 << (8 * _RAW_BYTES)
_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
_INDEX = {char: position for position, char in enumerate(_ALPHABET)}


def _encode(raw: bytes) -> str:
    value = int.from_bytes(raw, "big")
    digits = []
    while value:
        value, remainder = divmod(value, len(_ALPHABET))
        digits.append(_ALPHABET[remainder])
    return "".join(reversed(digits)).rjust(ENCODED_LENGTH, _ALPHABET[0])


def new_id() -> str:
    """Return a fresh identifier stamped with the current time."""
    timestamp = (int(time.time()) - EPOCH) & 0xFFFFFFFF
    raw = timestamp.to_bytes(_TIMESTAMP_BYTES, "big") + os.urandom(_PAYLOAD_BYTES)
    return _encode(raw)


def parse_id(value: str) -> tuple[datetime, bytes]:
    """Split an identifier into its UTC timestamp and random payload.

    Raises ValueError when the text is not a valid identifier.
    """
    if not isinstance(value, str) or len(value) != ENCODED_LENGTH:
        raise ValueError(f"identifier must be {ENCODED_LENGTH} characters: {value!r}")
    number = 0
    for char in value:
        try:
            digit = _INDEX[char]
        except KeyError:
            raise ValueError(f"invalid character {char!r} in identifier") from None
        number = number * len(_ALPHABET) + digit
    if number >= _LIMIT:
        raise ValueError(f"identifier out of range: {value!r}")
    raw = number.to_bytes(_RAW_BYTES, "big")
    seconds = int.from_bytes(raw[:_TIMESTAMP_BYTES], "big") + EPOCH
    return datetime.fromtimestamp(seconds, tz=timezone.utc), raw[_TIMESTAMP_BYTES:]