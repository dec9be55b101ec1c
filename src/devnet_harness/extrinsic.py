"""
Encoding of the storage-change extrinsic submitted by the harness.

SCALE COMPACT INTEGERS
----------------------
Byte strings are length-prefixed with a SCALE "compact" integer. The two low
bits of the first byte select the mode:

    0b00  single byte    value < 2^6        [vvvvvv00]
    0b01  two bytes      value < 2^14       little-endian (value << 2) | 0b01
    0b10  four bytes     value < 2^30       little-endian (value << 2) | 0b10
    0b11  big integer    value < 2^536      [(n - 4) << 2 | 0b11] + n LE bytes

STORAGE CHANGE EXTRINSIC
------------------------
Wire layout::

    [0x03] [compact len(key)] [key] [0x01] [compact len(value)] [value]
    [0x03] [compact len(key)] [key] [0x00]                          (value removed)

The leading byte is the extrinsic type tag. The byte after the key is an
option flag for the value.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Final


class ExtrinsicType(IntEnum):
    """Type tags of the development runtime's extrinsics."""

    AUTHORITIES_CHANGE = 0
    TRANSFER = 1
    INCLUDE_DATA = 2
    STORAGE_CHANGE = 3


class ExtrinsicDecodeError(Exception):
    """Raised when extrinsic or compact integer bytes are malformed."""


_SINGLE_BYTE_LIMIT: Final = 1 << 6
_TWO_BYTE_LIMIT: Final = 1 << 14
_FOUR_BYTE_LIMIT: Final = 1 << 30
_BIG_INT_MAX_BYTES: Final = 67
"""Widest big-integer payload: a 6-bit length field plus the 4-byte minimum."""


def encode_compact(value: int) -> bytes:
    """
    Encode a non-negative integer as a SCALE compact integer.

    Raises:
        ValueError: If value is negative or too large for the big-integer mode.
    """
    if value < 0:
        raise ValueError("Compact integer must be non-negative")

    if value < _SINGLE_BYTE_LIMIT:
        return bytes([value << 2])
    if value < _TWO_BYTE_LIMIT:
        return ((value << 2) | 0b01).to_bytes(2, "little")
    if value < _FOUR_BYTE_LIMIT:
        return ((value << 2) | 0b10).to_bytes(4, "little")

    # Big-integer mode stores the minimal little-endian representation, at least 4 bytes.
    length = max(4, (value.bit_length() + 7) // 8)
    if length > _BIG_INT_MAX_BYTES:
        raise ValueError(f"Compact integer too large: {length} bytes")
    return bytes([((length - 4) << 2) | 0b11]) + value.to_bytes(length, "little")


def decode_compact(data: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Decode a SCALE compact integer at the given offset.

    Returns:
        Tuple of (decoded_value, bytes_consumed).

    Raises:
        ExtrinsicDecodeError: If the input is truncated.
    """
    if offset >= len(data):
        raise ExtrinsicDecodeError("Truncated compact integer")

    mode = data[offset] & 0b11
    if mode == 0b00:
        return data[offset] >> 2, 1

    if mode == 0b01:
        width = 2
    elif mode == 0b10:
        width = 4
    else:
        width = (data[offset] >> 2) + 4
        end = offset + 1 + width
        if end > len(data):
            raise ExtrinsicDecodeError("Truncated compact integer")
        return int.from_bytes(data[offset + 1 : end], "little"), 1 + width

    end = offset + width
    if end > len(data):
        raise ExtrinsicDecodeError("Truncated compact integer")
    return int.from_bytes(data[offset:end], "little") >> 2, width


def _encode_bytes(data: bytes) -> bytes:
    return encode_compact(len(data)) + data


def _decode_bytes(data: bytes, offset: int) -> tuple[bytes, int]:
    length, consumed = decode_compact(data, offset)
    start = offset + consumed
    end = start + length
    if end > len(data):
        raise ExtrinsicDecodeError(f"Byte string needs {length} bytes, {len(data) - start} left")
    return data[start:end], end - offset


@dataclass(frozen=True, slots=True)
class StorageChangeExtrinsic:
    """
    Development-runtime extrinsic that sets or clears one storage entry.

    A value of None clears the key.
    """

    key: bytes
    """Storage key."""

    value: bytes | None
    """New value, or None to remove the entry."""

    def encode(self) -> bytes:
        """Serialize the extrinsic to its wire format."""
        out = bytearray([ExtrinsicType.STORAGE_CHANGE])
        out += _encode_bytes(self.key)
        if self.value is None:
            out.append(0)
        else:
            out.append(1)
            out += _encode_bytes(self.value)
        return bytes(out)

    @classmethod
    def decode(cls, data: bytes) -> StorageChangeExtrinsic:
        """
        Parse a serialized storage-change extrinsic.

        Raises:
            ExtrinsicDecodeError: If the type tag, option flag, or lengths are invalid,
                or trailing bytes remain.
        """
        if not data:
            raise ExtrinsicDecodeError("Empty extrinsic")
        if data[0] != ExtrinsicType.STORAGE_CHANGE:
            raise ExtrinsicDecodeError(f"Not a storage change extrinsic: type {data[0]}")

        key, consumed = _decode_bytes(data, 1)
        pos = 1 + consumed

        if pos >= len(data):
            raise ExtrinsicDecodeError("Missing value option flag")
        flag = data[pos]
        pos += 1

        value: bytes | None
        if flag == 0:
            value = None
        elif flag == 1:
            value, consumed = _decode_bytes(data, pos)
            pos += consumed
        else:
            raise ExtrinsicDecodeError(f"Invalid option flag {flag}")

        if pos != len(data):
            raise ExtrinsicDecodeError(f"{len(data) - pos} trailing bytes")

        return cls(key=key, value=value)
