"""Declarative message model for serialframe.

This module provides fragments, pattern elements and message templates used
both to recognize inbound messages and to generate outbound ones.
"""

from __future__ import annotations

from .fragment import (
    WILDCARD,
    Computed,
    Fragment,
    Literal,
    Wildcard,
    computed,
    literal,
    parse_pattern,
    wildcard,
)
from .recognized import RecognizedMessage
from .template import MessageTemplate

__all__ = [
    "Fragment",
    "Literal",
    "Wildcard",
    "WILDCARD",
    "Computed",
    "literal",
    "wildcard",
    "computed",
    "parse_pattern",
    "MessageTemplate",
    "RecognizedMessage",
]
