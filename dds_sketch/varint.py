"""Little-endian base-128 variable-length integer encoding.

Each byte carries 7 bits of the value, least significant group first. The
high bit is set on every byte except the last one, so the encoding is
self-terminating::

    >>> encode_varint(0)
    b'\\x00'
    >>> encode_varint(127)
    b'\\x7f'
    >>> encode_varint(300)
    b'\\xac\\x02'
"""
from __future__ import annotations

import operator

from .exceptions import EncodingError

_PAYLOAD_MASK = 0b0111_1111
_CONTINUATION_BIT = 0b1000_0000


def encode_varint(value: int) -> bytes:
    """Encode a non-negative integer as a varint."""
    try:
        value = operator.index(value)
    except TypeError as exc:
        raise EncodingError(f"Refusing to encode varint for non-integer {value!r}") from exc
    if value < 0:
        raise EncodingError(f"Refusing to encode varint for negative number {value}")

    out = bytearray()
    while True:
        byte = value & _PAYLOAD_MASK
        value >>= 7
        if value == 0:
            out.append(byte)
            return bytes(out)
        out.append(byte | _CONTINUATION_BIT)
