"""Rolling byte buffer with resynchronization.

The buffer tracks two states:

- ``SEEKING``: no plausible message start; leading bytes that cannot start
  any template are discarded one at a time
- ``ACCUMULATING``: the buffer is a plausible message prefix; every newly
  appended byte is a recognition opportunity

Bytes are processed one at a time, so feeding a stream in one call or byte
by byte yields the same messages in the same order.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable, Iterator, List, Optional

from ..codec import MessageRegistry
from ..exceptions import UnrecoverableDesync
from ..messages import RecognizedMessage
from ..utils import hex_bytes

logger = logging.getLogger(__name__)


class BufferState(enum.Enum):
    """Recognition state of a StreamBuffer."""

    SEEKING = "seeking"
    ACCUMULATING = "accumulating"


class StreamBuffer:
    """Accumulates stream bytes and extracts recognized messages.

    Attributes:
        registry: Templates used for recognition
        desync_limit: Maximum number of bytes discarded in a row before
            ``UnrecoverableDesync`` is raised, None to never raise
        on_discard: Called with each discarded byte value

    Examples:
        ```python
        registry = MessageRegistry()
        registry.define("PING", [literal("hdr", b"\\xAA"), wildcard("id")])

        buffer = StreamBuffer(registry)
        messages = buffer.feed(b"\\x00\\xAA\\x05")
        # [RecognizedMessage(type="PING", raw=b"\\xAA\\x05", ...)]
        buffer.discarded  # 1
        ```
    """

    def __init__(
        self,
        registry: MessageRegistry,
        *,
        desync_limit: Optional[int] = None,
        on_discard: Optional[Callable[[int], None]] = None,
    ) -> None:
        if desync_limit is not None and desync_limit <= 0:
            raise ValueError(f"desync_limit must be > 0, got {desync_limit}")

        self.registry = registry
        self.desync_limit = desync_limit
        self.on_discard = on_discard
        self.state = BufferState.SEEKING
        self.discarded = 0
        self._buffer = bytearray()
        self._discarded_in_row = 0
        self._desync: Optional[UnrecoverableDesync] = None

    def __len__(self) -> int:
        return len(self._buffer)

    def __bytes__(self) -> bytes:
        return bytes(self._buffer)

    @property
    def pending(self) -> bytes:
        """Bytes not yet consumed by a recognized message."""
        return bytes(self._buffer)

    def feed(self, data: bytes | bytearray) -> List[RecognizedMessage]:
        """Append ``data`` and return every message it completes.

        Args:
            data: Newly arrived bytes, in stream order

        Returns:
            Recognized messages in stream order (possibly empty)

        Raises:
            UnrecoverableDesync: If more than ``desync_limit`` bytes were
                discarded in a row. The buffer is flushed when the limit is
                crossed, the rest of ``data`` is still processed, and the
                error is raised once all of it has been consumed.
        """
        return list(self.process(data))

    def process(self, data: bytes | bytearray) -> Iterator[RecognizedMessage]:
        """Append ``data`` byte by byte, yielding each message as it completes.

        The generator must be exhausted for all of ``data`` to be consumed.
        Messages are evicted from the buffer before they are yielded. A desync
        detected along the way is raised after the last byte.
        """
        self._desync = None
        for byte in data:
            self._buffer.append(byte)
            self._resync()

            # Discards can shift a complete message to the front, so keep
            # recognizing until the buffer holds only a partial one
            while self.state is BufferState.ACCUMULATING:
                message = self.registry.recognize(self._buffer)
                if message is None:
                    break

                self.evict(len(message.raw))
                self._discarded_in_row = 0
                logger.debug("Recognized %s", message)

                self.state = BufferState.SEEKING
                yield message

                # Leftover bytes are re-evaluated from SEEKING
                self._resync()

        desync, self._desync = self._desync, None
        if desync is not None:
            raise desync

    def _resync(self) -> None:
        # A buffer that can no longer start any template (including one that
        # was ACCUMULATING when a corrupt byte arrived) drops its head
        while self._buffer and not self.registry.could_be_start(self._buffer):
            self._discard_first()

        self.state = BufferState.ACCUMULATING if self._buffer else BufferState.SEEKING

    def _discard_first(self) -> None:
        byte = self._buffer.pop(0)
        self.discarded += 1
        self._discarded_in_row += 1
        logger.warning("Ignored %s", hex_bytes(byte))

        if self.on_discard is not None:
            self.on_discard(byte)

        if self.desync_limit is not None and self._discarded_in_row > self.desync_limit:
            discarded = self._discarded_in_row
            self.flush()
            logger.error("Discarded %d bytes in a row, buffer flushed", discarded)
            if self._desync is None:
                self._desync = UnrecoverableDesync(discarded, self.desync_limit)

    def evict(self, count: int) -> None:
        """Remove ``count`` bytes from the front of the buffer.

        A count of -1 removes everything, like :meth:`flush`.
        """
        if count == -1:
            self.flush()
            return
        if count < 0:
            raise ValueError(f"count must be >= 0 or -1, got {count}")
        del self._buffer[:count]
        if not self._buffer:
            self.state = BufferState.SEEKING

    def flush(self) -> None:
        """Discard all buffered bytes and return to SEEKING."""
        if self._buffer:
            logger.debug("Flushed %d buffered bytes", len(self._buffer))
        self._buffer.clear()
        self._discarded_in_row = 0
        self.state = BufferState.SEEKING
