"""Byte formatting for log lines and CLI output."""

from __future__ import annotations

from typing import Iterable


def hex_bytes(data: int | bytes | bytearray | Iterable[int]) -> str:
    """Format bytes as space separated ``0xNN`` values.

    Example:
        >>> hex_bytes(b"\\xaa\\x05")
        '0xAA 0x05'
        >>> hex_bytes(0)
        '0x00'
    """
    if isinstance(data, int):
        data = [data]
    return " ".join(f"0x{b:02X}" for b in data)
