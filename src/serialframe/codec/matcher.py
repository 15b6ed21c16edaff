"""Tri-state pattern matching.

Matching a buffer against a template has three outcomes. A plain boolean
would conflate "these bytes can never be this message" with "not enough
bytes yet", and the stream buffer would throw away valid partial data.
"""

from __future__ import annotations

import enum

from ..exceptions import TemplateError
from ..messages import MessageTemplate


class MatchResult(enum.Enum):
    """Outcome of comparing a buffer prefix with a template pattern."""

    NO_MATCH = 0
    INSUFFICIENT_DATA = 1
    MATCH = 2

    def __bool__(self) -> bool:
        return self is MatchResult.MATCH


def match(buffer: bytes | bytearray, template: MessageTemplate) -> MatchResult:
    """Compare the front of ``buffer`` with the pattern of ``template``.

    Literal elements require byte equality, wildcard elements accept any
    byte. Only the first ``template.length`` bytes of the buffer are looked
    at; anything after them is irrelevant to this template.

    Args:
        buffer: Accumulated bytes, oldest first
        template: Inbound template to compare against

    Returns:
        ``NO_MATCH`` if any available byte contradicts the pattern,
        ``INSUFFICIENT_DATA`` if the buffer is a consistent but short prefix,
        ``MATCH`` if the whole pattern is present

    Raises:
        TemplateError: If the template is generation-only

    Example:
        >>> from serialframe.messages import literal, wildcard
        >>> ping = MessageTemplate("PING", [literal("hdr", b"\\xAA"), wildcard("id")])
        >>> match(b"\\xAA", ping)
        <MatchResult.INSUFFICIENT_DATA: 1>
        >>> match(b"\\xAA\\x05", ping)
        <MatchResult.MATCH: 2>
        >>> match(b"\\x00", ping)
        <MatchResult.NO_MATCH: 0>
    """
    if not template.inbound:
        raise TemplateError(f"Template {template.name!r} is generation-only and cannot be matched")

    pattern = template.pattern
    available = min(len(buffer), len(pattern))

    for index in range(available):
        if not pattern[index].accepts(buffer[index]):
            return MatchResult.NO_MATCH

    if available < len(pattern):
        return MatchResult.INSUFFICIENT_DATA

    return MatchResult.MATCH
