"""Utility functions for serialframe.

This module provides checksums, computed-default factories and byte
formatting helpers.
"""

from __future__ import annotations

from .checksum import (
    crc16,
    crc16_bytes,
    crc16_default,
    sum8,
    sum8_default,
    verify_crc16,
    xor8,
    xor8_default,
)
from .hexfmt import hex_bytes

__all__ = [
    # Checksums
    "sum8",
    "xor8",
    "crc16",
    "crc16_bytes",
    "verify_crc16",
    # Computed defaults
    "sum8_default",
    "xor8_default",
    "crc16_default",
    # Formatting
    "hex_bytes",
]
