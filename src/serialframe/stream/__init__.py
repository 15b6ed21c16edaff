"""Stream buffering and message dispatch for serialframe.

This module provides the rolling byte buffer that recognizes messages as
bytes arrive, and the dispatcher that records them in a bounded history and
delivers them to subscribers.
"""

from __future__ import annotations

from .buffer import BufferState, StreamBuffer
from .dispatcher import DEFAULT_HISTORY_SIZE, Dispatcher, Subscription

__all__ = [
    "BufferState",
    "StreamBuffer",
    "Dispatcher",
    "Subscription",
    "DEFAULT_HISTORY_SIZE",
]
