"""Checksum implementations and computed-default factories.

This module provides the 8-bit and 16-bit checksums most often found at the
end of serial messages, plus factories that wrap them as ``Computed``
fragment defaults so a template can fill its checksum field from the bytes
that precede it.
"""

from __future__ import annotations

import struct
from typing import Callable

from ..messages import Computed


def sum8(data: bytes) -> int:
    """Calculate the 8-bit additive checksum (sum of bytes modulo 256).

    Example:
        >>> sum8(b"\\x01\\x02")
        3
    """
    return sum(data) & 0xFF


def xor8(data: bytes) -> int:
    """Calculate the 8-bit XOR checksum (longitudinal redundancy check).

    Example:
        >>> xor8(b"\\x01\\x03")
        2
    """
    result = 0
    for byte in data:
        result ^= byte
    return result


def crc16(data: bytes, poly: int = 0x1021, init: int = 0xFFFF) -> int:
    """Calculate CRC-16 checksum.

    Uses CRC-16-CCITT polynomial by default, common on serial instrument
    protocols.

    Args:
        data: Data to checksum
        poly: CRC polynomial (default: 0x1021 for CRC-16-CCITT)
        init: Initial CRC value (default: 0xFFFF)

    Returns:
        16-bit CRC value

    Example:
        >>> hex(crc16(b"123456789"))
        '0x29b1'
    """
    crc = init

    for byte in data:
        crc ^= byte << 8

        for _ in range(8):
            if crc & 0x8000:
                crc = (crc << 1) ^ poly
            else:
                crc <<= 1

        crc &= 0xFFFF  # Keep only 16 bits

    return crc


def crc16_bytes(data: bytes, poly: int = 0x1021, init: int = 0xFFFF) -> bytes:
    """Calculate CRC-16 checksum and return as 2 bytes (big-endian).

    Example:
        >>> crc16_bytes(b"123456789")
        b')\\xb1'
    """
    return struct.pack(">H", crc16(data, poly, init))


def verify_crc16(data: bytes, expected: int | bytes, poly: int = 0x1021, init: int = 0xFFFF) -> bool:
    """Verify CRC-16 checksum.

    Args:
        data: Data to verify
        expected: Expected CRC (as int or 2-byte big-endian bytes)

    Returns:
        True if CRC matches, False otherwise
    """
    if isinstance(expected, bytes):
        if len(expected) != 2:
            return False
        expected = struct.unpack(">H", expected)[0]

    return crc16(data, poly, init) == expected


def _checksum_default(func: Callable[[bytes], bytes], start: int) -> Computed:
    if start < 0:
        raise ValueError(f"start must be >= 0, got {start}")

    def compute(precedent: bytes) -> bytes:
        return func(precedent[start:])

    compute.__name__ = f"{func.__name__}_from_{start}"
    return Computed(compute)


def sum8_default(start: int = 0) -> Computed:
    """Computed default emitting ``sum8`` of the precedent from ``start`` on.

    Example:
        >>> sum8_default()(b"\\x01\\x02")
        b'\\x03'
    """

    def sum8_byte(data: bytes) -> bytes:
        return bytes([sum8(data)])

    return _checksum_default(sum8_byte, start)


def xor8_default(start: int = 0) -> Computed:
    """Computed default emitting ``xor8`` of the precedent from ``start`` on."""

    def xor8_byte(data: bytes) -> bytes:
        return bytes([xor8(data)])

    return _checksum_default(xor8_byte, start)


def crc16_default(start: int = 0, poly: int = 0x1021, init: int = 0xFFFF) -> Computed:
    """Computed default emitting big-endian CRC-16 of the precedent from ``start`` on.

    Example:
        >>> crc16_default(start=1)(b"\\x02123456789")
        b')\\xb1'
    """

    def crc16_pair(data: bytes) -> bytes:
        return crc16_bytes(data, poly, init)

    return _checksum_default(crc16_pair, start)
