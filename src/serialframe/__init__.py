"""serialframe: Pattern-based message framing for serial byte streams

A Python library that recognizes application messages in a continuous,
error-prone byte stream using declarative byte-pattern templates, and
generates outbound messages from the same templates.

Key Features:
- Declarative templates built from literal, wildcard and computed fragments
- Byte-by-byte recognition with resynchronization after corrupted bytes
- Subscriptions and "wait for next message" with timeout on asyncio
- Serial transport via pyserial-asyncio, loopback transport for tests

Quick Start:
    >>> from serialframe import Dispatcher, literal, wildcard
    >>>
    >>> dispatcher = Dispatcher()
    >>> _ = dispatcher.define_message("PING", [literal("hdr", b"\\xAA"), wildcard("id")])
    >>> [str(m) for m in dispatcher.feed(b"\\x00\\xAA\\x05")]
    ['PING[AA 05]']
    >>> dispatcher.generate("PING", {"id": b"\\x07"})
    b'\\xaa\\x07'
"""

from __future__ import annotations

from .codec import MatchResult, MessageRegistry, generate, match, split_fields
from .exceptions import (
    GenerationError,
    InvalidFragmentDefault,
    MissingFragmentValue,
    RecognitionTimeout,
    SerialFrameError,
    TemplateError,
    TransportError,
    UnknownFragment,
    UnknownMessage,
    UnrecoverableDesync,
)
from .helper import SerialPortHelper
from .messages import (
    WILDCARD,
    Computed,
    Fragment,
    Literal,
    MessageTemplate,
    RecognizedMessage,
    Wildcard,
    computed,
    literal,
    wildcard,
)
from .stream import BufferState, Dispatcher, StreamBuffer, Subscription
from .utils import crc16_default, hex_bytes, sum8_default, xor8_default

__version__ = "0.1.0"

__all__ = [
    # Message model
    "Fragment",
    "Literal",
    "Wildcard",
    "WILDCARD",
    "Computed",
    "literal",
    "wildcard",
    "computed",
    "MessageTemplate",
    "RecognizedMessage",
    # Recognition and generation
    "MatchResult",
    "match",
    "MessageRegistry",
    "generate",
    "split_fields",
    # Stream
    "BufferState",
    "StreamBuffer",
    "Dispatcher",
    "Subscription",
    "SerialPortHelper",
    # Computed defaults
    "sum8_default",
    "xor8_default",
    "crc16_default",
    "hex_bytes",
    # Exceptions
    "SerialFrameError",
    "TemplateError",
    "UnknownMessage",
    "GenerationError",
    "MissingFragmentValue",
    "InvalidFragmentDefault",
    "UnknownFragment",
    "RecognitionTimeout",
    "UnrecoverableDesync",
    "TransportError",
    # Version
    "__version__",
]
