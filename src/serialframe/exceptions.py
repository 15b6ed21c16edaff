"""Exception hierarchy for serialframe.

This module defines all custom exceptions used throughout the package.
All exceptions inherit from SerialFrameError for easy catching of any
serialframe-specific error.
"""

from __future__ import annotations


class SerialFrameError(Exception):
    """Base exception for all serialframe errors."""

    pass


class TemplateError(SerialFrameError):
    """Raised when a message template or fragment definition is invalid.

    Examples:
        - Duplicate fragment names within a template
        - Duplicate template names within a registry
        - Computed element used inside a matching pattern
        - Inbound template with a fragment that has no fixed pattern
    """

    pass


class UnknownMessage(SerialFrameError, KeyError):
    """Raised when a message name is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown message {name!r}")
        self.name = name

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class GenerationError(SerialFrameError):
    """Raised when generating the bytes of an outbound message fails.

    Generation errors are always local: they abort the single generate or
    send call and leave every other piece of state untouched.
    """

    pass


class MissingFragmentValue(GenerationError):
    """Raised when a fragment has no override, no default and no literal pattern."""

    def __init__(self, fragment: str, message: str | None = None) -> None:
        where = f" in message {message!r}" if message else ""
        super().__init__(f"Missing value for fragment {fragment!r}{where}")
        self.fragment = fragment
        self.message = message


class InvalidFragmentDefault(GenerationError):
    """Raised when a fragment default is neither bytes nor a computed function.

    Also raised when a computed default returns something that is not
    bytes-like.
    """

    pass


class UnknownFragment(GenerationError):
    """Raised when an override names a fragment the template does not have."""

    pass


class RecognitionTimeout(SerialFrameError, TimeoutError):
    """Raised when no matching message arrives before a wait expires."""

    def __init__(self, message_type: str | None, timeout: float) -> None:
        super().__init__(f"Timed out after {timeout}s waiting for message {message_type!r}")
        self.message_type = message_type
        self.timeout = timeout


class UnrecoverableDesync(SerialFrameError):
    """Raised when too many bytes are discarded without recognizing a message.

    Signals persistent corruption or a peer speaking a protocol none of the
    registered templates describe. The buffer is flushed as soon as the limit
    is crossed; the rest of the fed data is still processed and the error is
    raised once it has all been consumed.
    """

    def __init__(self, discarded: int, limit: int) -> None:
        super().__init__(
            f"Discarded {discarded} bytes without recognizing a message (limit {limit})"
        )
        self.discarded = discarded
        self.limit = limit


class TransportError(SerialFrameError):
    """Raised when the underlying byte transport fails.

    Examples:
        - Writing to a transport that is not open
        - Serial port could not be opened
        - Read loop terminated by an I/O error
    """

    pass
