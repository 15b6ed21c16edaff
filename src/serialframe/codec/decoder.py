"""Split recognized bytes into fragment values."""

from __future__ import annotations

from typing import Dict

from ..exceptions import TemplateError
from ..messages import MessageTemplate


def split_fields(template: MessageTemplate, data: bytes) -> Dict[str, bytes]:
    """Slice ``data`` into one value per fragment, in fragment order.

    Args:
        template: Inbound template that recognized ``data``
        data: Exactly ``template.length`` bytes

    Returns:
        Ordered mapping of fragment name to its bytes

    Raises:
        TemplateError: If ``data`` does not have the template's length

    Example:
        >>> from serialframe.messages import literal, wildcard
        >>> ping = MessageTemplate("PING", [literal("hdr", b"\\xAA"), wildcard("id")])
        >>> split_fields(ping, b"\\xAA\\x05")
        {'hdr': b'\\xaa', 'id': b'\\x05'}
    """
    if len(data) != template.length:
        raise TemplateError(
            f"Template {template.name!r} covers {template.length} bytes, got {len(data)}"
        )

    fields: Dict[str, bytes] = {}
    position = 0
    for fragment in template.fragments:
        size = fragment.length or 0
        fields[fragment.name] = bytes(data[position : position + size])
        position += size

    return fields
