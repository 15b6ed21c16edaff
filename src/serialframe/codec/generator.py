"""Outbound message generation.

This module provides the generate() function that turns a template and a map
of fragment overrides into the exact bytes to put on the wire.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..exceptions import InvalidFragmentDefault, MissingFragmentValue, UnknownFragment
from ..messages import Computed, Fragment, MessageTemplate


def _as_bytes(value: Any, fragment: Fragment) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, int) and not isinstance(value, bool):
        # A bare int is a single byte, not a zero-filled buffer
        value = [value]
    try:
        return bytes(value)
    except (TypeError, ValueError) as e:
        raise InvalidFragmentDefault(
            f"Override for fragment {fragment.name!r} is not bytes-like: {value!r}"
        ) from e


def generate(template: MessageTemplate, overrides: Optional[Mapping[str, Any]] = None) -> bytes:
    """Generate the bytes of one message.

    Fragments are emitted in declaration order. For each fragment the first
    available source wins:

    1. ``overrides[fragment.name]`` (emitted verbatim, no length check)
    2. a literal default
    3. a computed default, called with the bytes emitted so far
    4. the fragment pattern, when it is made only of literals

    Args:
        template: Template to generate (inbound or generation-only)
        overrides: Fragment name to bytes (or sequence of ints). A value of
            None counts as absent.

    Returns:
        The generated message

    Raises:
        MissingFragmentValue: If a fragment has no value from any source
        InvalidFragmentDefault: If an override or computed result is not bytes-like
        UnknownFragment: If an override names a fragment the template lacks

    Examples:
        ```python
        from serialframe.messages import MessageTemplate, computed, literal

        chk = MessageTemplate("CHK", [
            literal("body", b"\\x01\\x02"),
            computed("sum", lambda precedent: bytes([sum(precedent) % 256]), length=1),
        ])
        generate(chk)                           # b"\\x01\\x02\\x03"
        generate(chk, {"body": b"\\x05\\x05"})  # b"\\x05\\x05\\x0a"
        ```
    """
    overrides = dict(overrides or {})

    unknown = set(overrides) - set(template.fragment_names)
    if unknown:
        raise UnknownFragment(
            f"Message {template.name!r} has no fragment(s) {', '.join(sorted(unknown))}"
        )

    packet = bytearray()
    for fragment in template.fragments:
        value = overrides.get(fragment.name)

        if value is not None:
            packet.extend(_as_bytes(value, fragment))
        elif isinstance(fragment.default, Computed):
            # The function sees exactly the committed bytes, never the final message
            packet.extend(fragment.default(bytes(packet)))
        elif fragment.default is not None:
            packet.extend(fragment.default)
        elif fragment.literal_bytes is not None:
            packet.extend(fragment.literal_bytes)
        else:
            raise MissingFragmentValue(fragment.name, template.name)

    return bytes(packet)
