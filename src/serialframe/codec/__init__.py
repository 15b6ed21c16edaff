"""Pattern matching, recognition and generation for serialframe.

This module provides the tri-state matcher, the message registry that
recognizes complete messages in a byte buffer, and the generator that builds
outbound messages from the same templates.
"""

from __future__ import annotations

from .decoder import split_fields
from .generator import generate
from .matcher import MatchResult, match
from .registry import MessageRegistry

__all__ = [
    "MatchResult",
    "match",
    "MessageRegistry",
    "generate",
    "split_fields",
]
