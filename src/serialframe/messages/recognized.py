"""Recognized message model.

A RecognizedMessage is created by the recognizer at the moment a template
matches the front of the stream buffer. It is immutable and is shared, read
only, between the history ring and every notified subscriber.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecognizedMessage(BaseModel):
    """A message recognized in the incoming byte stream.

    Attributes:
        type: Name of the template that matched
        raw: The exact bytes consumed from the stream buffer
        fields: Fragment name to the slice of ``raw`` it covers
        received: UTC timestamp of recognition

    Example:
        >>> msg = RecognizedMessage(type="PING", raw=b"\\xaa\\x05", fields={"id": b"\\x05"})
        >>> msg.field("id")
        b'\\x05'
    """

    model_config = ConfigDict(
        # Shared between history and subscribers
        frozen=True,
        # Forbid extra fields not defined in schema
        extra="forbid",
    )

    type: str
    raw: bytes
    fields: Dict[str, bytes] = Field(default_factory=dict)
    received: datetime = Field(default_factory=_utcnow)

    def field(self, name: str) -> bytes:
        """Return the bytes of one fragment.

        Raises:
            KeyError: If the fragment is unknown
        """
        return self.fields[name]

    def __len__(self) -> int:
        return len(self.raw)

    def __str__(self) -> str:
        return f"{self.type}[{self.raw.hex(' ').upper()}]"
