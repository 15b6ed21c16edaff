"""Message templates.

A template is the declarative description of one message type: an ordered,
immutable sequence of fragments. Its pattern is the concatenation of the
fragment patterns in fragment order.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Tuple

from ..exceptions import TemplateError
from .fragment import Fragment, PatternElement


class MessageTemplate:
    """Immutable definition of a message type.

    Inbound templates (the default) take part in recognition, so every one
    of their fragments must carry a fixed-length pattern. Templates created
    with ``inbound=False`` are generation-only: their fragments may omit the
    pattern entirely and the recognizer never considers them.

    Example:
        >>> from serialframe.messages import literal, wildcard
        >>> ping = MessageTemplate("PING", [literal("hdr", b"\\xAA"), wildcard("id", 1)])
        >>> ping.length
        2
        >>> ping.fragment_names
        ('hdr', 'id')

    Raises:
        TemplateError: If the name is empty, there are no fragments, fragment
            names repeat, or an inbound template has no fixed-length pattern
    """

    __slots__ = ("_name", "_fragments", "_inbound", "_pattern", "_description")

    def __init__(
        self,
        name: str,
        fragments: Iterable[Fragment],
        *,
        inbound: bool = True,
        description: str = "",
    ) -> None:
        if not isinstance(name, str) or not name:
            raise TemplateError(f"Template name must be a non-empty string, got {name!r}")

        fragments = tuple(fragments)
        if not fragments:
            raise TemplateError(f"Template {name!r} has no fragments")

        seen: set[str] = set()
        for fragment in fragments:
            if not isinstance(fragment, Fragment):
                raise TemplateError(f"Template {name!r}: expected Fragment, got {fragment!r}")
            if fragment.name in seen:
                raise TemplateError(f"Template {name!r}: duplicate fragment {fragment.name!r}")
            seen.add(fragment.name)

        pattern: Optional[Tuple[PatternElement, ...]] = None
        if inbound:
            missing = [f.name for f in fragments if f.pattern is None]
            if missing:
                raise TemplateError(
                    f"Inbound template {name!r} needs a fixed pattern for every fragment; "
                    f"missing: {', '.join(missing)}. Use inbound=False for generation-only messages."
                )
            pattern = tuple(e for f in fragments for e in f.pattern)  # type: ignore[union-attr]
            if not pattern:
                raise TemplateError(f"Inbound template {name!r} has an empty pattern")

        object.__setattr__(self, "_name", name)
        object.__setattr__(self, "_fragments", fragments)
        object.__setattr__(self, "_inbound", inbound)
        object.__setattr__(self, "_pattern", pattern)
        object.__setattr__(self, "_description", description)

    def __setattr__(self, key: str, value: object) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def name(self) -> str:
        return self._name

    @property
    def fragments(self) -> Tuple[Fragment, ...]:
        return self._fragments

    @property
    def inbound(self) -> bool:
        return self._inbound

    @property
    def description(self) -> str:
        return self._description

    @property
    def pattern(self) -> Tuple[PatternElement, ...]:
        """Concatenated fragment patterns.

        Raises:
            TemplateError: For generation-only templates
        """
        if self._pattern is None:
            raise TemplateError(f"Template {self._name!r} is generation-only and has no pattern")
        return self._pattern

    @property
    def length(self) -> int:
        """Pattern length in bytes."""
        return len(self.pattern)

    @property
    def fragment_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self._fragments)

    def fragment(self, name: str) -> Fragment:
        for fragment in self._fragments:
            if fragment.name == name:
                return fragment
        raise KeyError(name)

    def __iter__(self) -> Iterator[Fragment]:
        return iter(self._fragments)

    def __len__(self) -> int:
        return len(self._fragments)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MessageTemplate):
            return NotImplemented
        return (self._name, self._fragments, self._inbound) == (
            other._name,
            other._fragments,
            other._inbound,
        )

    def __hash__(self) -> int:
        return hash((self._name, self._fragments, self._inbound))

    def __repr__(self) -> str:
        direction = "" if self._inbound else ", inbound=False"
        return f"MessageTemplate({self._name!r}, {list(self.fragment_names)!r}{direction})"
