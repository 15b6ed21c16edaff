"""Message registry and recognizer.

The registry holds every known template in registration order. It answers
two questions about an accumulating byte buffer:

- could this buffer still be the start of some message?
- does the front of this buffer hold one complete message?

Registration order is significant. When several templates match the same
bytes, the one registered first wins.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, List, Mapping, Optional

from ..exceptions import TemplateError, UnknownMessage
from ..messages import Fragment, MessageTemplate, RecognizedMessage
from .decoder import split_fields
from .generator import generate
from .matcher import MatchResult, match


class MessageRegistry:
    """Ordered collection of message templates.

    Examples:
        ```python
        from serialframe.codec import MessageRegistry
        from serialframe.messages import literal, wildcard

        registry = MessageRegistry()
        registry.define("PING", [literal("hdr", b"\\xAA"), wildcard("id")])

        registry.could_be_start(b"\\xAA")        # True
        registry.recognize(b"\\xAA\\x05").type   # "PING"
        registry.generate("PING", {"id": b"\\x07"})  # b"\\xAA\\x07"
        ```
    """

    def __init__(self, templates: Optional[Iterable[MessageTemplate]] = None) -> None:
        self._templates: dict[str, MessageTemplate] = {}
        self._inbound: List[MessageTemplate] = []
        for template in templates or ():
            self.add(template)

    def add(self, template: MessageTemplate) -> MessageTemplate:
        """Register a template.

        Raises:
            TemplateError: If a template with the same name is registered
        """
        if not isinstance(template, MessageTemplate):
            raise TemplateError(f"Expected MessageTemplate, got {template!r}")
        if template.name in self._templates:
            raise TemplateError(f"Message {template.name!r} is already defined")

        self._templates[template.name] = template
        if template.inbound:
            self._inbound.append(template)
        return template

    def define(
        self,
        name: str,
        fragments: Iterable[Fragment],
        *,
        inbound: bool = True,
        description: str = "",
    ) -> MessageTemplate:
        """Build a template from fragments and register it."""
        return self.add(MessageTemplate(name, fragments, inbound=inbound, description=description))

    def get(self, name: str) -> MessageTemplate:
        """Look up a template by name.

        Raises:
            UnknownMessage: If no template has this name
        """
        try:
            return self._templates[name]
        except KeyError:
            raise UnknownMessage(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __iter__(self) -> Iterator[MessageTemplate]:
        return iter(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)

    @property
    def names(self) -> List[str]:
        return list(self._templates)

    @property
    def max_length(self) -> int:
        """Length of the longest inbound template, 0 if there is none."""
        return max((t.length for t in self._inbound), default=0)

    def could_be_start(self, buffer: bytes | bytearray) -> bool:
        """Check whether ``buffer`` is consistent with some inbound template.

        This is not "is a complete message", only "is not yet provably
        garbage". Stops at the first template that is consistent.
        """
        if not buffer:
            return False
        return any(match(buffer, t) is not MatchResult.NO_MATCH for t in self._inbound)

    def recognize(self, buffer: bytes | bytearray) -> Optional[RecognizedMessage]:
        """Recognize one complete message at the front of ``buffer``.

        Args:
            buffer: Accumulated bytes, oldest first

        Returns:
            The message built from the first template (in registration order)
            whose whole pattern matches, or None
        """
        for template in self._inbound:
            if match(buffer, template) is MatchResult.MATCH:
                raw = bytes(buffer[: template.length])
                return RecognizedMessage(
                    type=template.name,
                    raw=raw,
                    fields=split_fields(template, raw),
                )
        return None

    def generate(self, name: str, overrides: Optional[Mapping[str, Any]] = None) -> bytes:
        """Generate the bytes of the message called ``name``.

        Raises:
            UnknownMessage: If no template has this name
            GenerationError: See :func:`serialframe.codec.generator.generate`
        """
        return generate(self.get(name), overrides)
