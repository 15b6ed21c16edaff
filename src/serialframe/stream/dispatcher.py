"""Message dispatch for one stream session.

The Dispatcher owns every piece of mutable state of a session: the stream
buffer, the bounded history of recognized messages and the ordered list of
subscriptions. Nothing is module-global, so independent sessions can run
side by side.

Delivery is synchronous. All bytes of one ``feed`` call are consumed and
every resulting notification is delivered before ``feed`` returns.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Iterable, List, Mapping, Optional

from ..codec import MessageRegistry
from ..exceptions import RecognitionTimeout, UnrecoverableDesync
from ..messages import Fragment, MessageTemplate, RecognizedMessage
from .buffer import BufferState, StreamBuffer

logger = logging.getLogger(__name__)

MessageCallback = Callable[[RecognizedMessage], Any]

DEFAULT_HISTORY_SIZE = 10


@dataclass(eq=False)
class Subscription:
    """A listener for recognized messages.

    Attributes:
        message_type: Template name to listen for, None for every message
        callback: Called with each matching RecognizedMessage
        once: Remove the subscription after its first delivery
        active: False once the subscription has been removed
    """

    message_type: Optional[str]
    callback: MessageCallback
    once: bool = False
    active: bool = field(default=True, init=False)

    def accepts(self, message: RecognizedMessage) -> bool:
        return self.message_type is None or self.message_type == message.type


class Dispatcher:
    """Drives a StreamBuffer and fans recognized messages out to subscribers.

    Args:
        registry: Templates to recognize and generate; a new empty registry
            when omitted
        history_size: Number of recognized messages kept in ``history``
        desync_limit: See :class:`StreamBuffer`

    Examples:
        ```python
        dispatcher = Dispatcher()
        dispatcher.define_message("PING", [literal("hdr", b"\\xAA"), wildcard("id")])

        dispatcher.subscribe("PING", lambda msg: print(msg.field("id")))
        dispatcher.feed(b"\\x00\\xAA\\x05")  # prints b'\\x05'

        async def wait() -> None:
            msg = await dispatcher.wait_for("PING", timeout=1.0)
        ```
    """

    def __init__(
        self,
        registry: Optional[MessageRegistry] = None,
        *,
        history_size: int = DEFAULT_HISTORY_SIZE,
        desync_limit: Optional[int] = None,
    ) -> None:
        if history_size <= 0:
            raise ValueError(f"history_size must be > 0, got {history_size}")

        self.registry = registry if registry is not None else MessageRegistry()
        self.buffer = StreamBuffer(self.registry, desync_limit=desync_limit, on_discard=self._on_discard)
        self._history: Deque[RecognizedMessage] = deque(maxlen=history_size)
        self._subscriptions: List[Subscription] = []
        self._anomaly_callbacks: List[Callable[[int], Any]] = []
        self._queued: Deque[bytes] = deque()
        self._feeding = False

    # -- definitions and generation ------------------------------------------

    def define_message(
        self,
        name: str,
        fragments: Iterable[Fragment],
        *,
        inbound: bool = True,
        description: str = "",
    ) -> MessageTemplate:
        """Register a message template with this session's registry."""
        return self.registry.define(name, fragments, inbound=inbound, description=description)

    def generate(self, name: str, overrides: Optional[Mapping[str, Any]] = None) -> bytes:
        """Generate the bytes of an outbound message by name."""
        return self.registry.generate(name, overrides)

    # -- inbound stream --------------------------------------------------------

    def feed(self, data: bytes | bytearray) -> List[RecognizedMessage]:
        """Process newly arrived bytes.

        Every message is added to the history and delivered to subscribers
        as soon as it is recognized, before the next byte is examined.

        A callback that feeds more bytes while a batch is being processed
        does not interleave with it: the nested data is queued and processed
        after the current batch, within the outermost call, and the nested
        call returns an empty list.

        Returns:
            The messages recognized in ``data`` (and in any data fed by
            callbacks meanwhile), in stream order

        Raises:
            UnrecoverableDesync: After every queued byte has been processed,
                if the discard limit was crossed along the way
        """
        self._queued.append(bytes(data))
        if self._feeding:
            return []

        self._feeding = True
        recognized: List[RecognizedMessage] = []
        desync: Optional[UnrecoverableDesync] = None
        try:
            while self._queued:
                batch = self._queued.popleft()
                try:
                    for message in self.buffer.process(batch):
                        recognized.append(message)
                        self._history.append(message)
                        self._notify(message)
                except UnrecoverableDesync as e:
                    if desync is None:
                        desync = e
        finally:
            self._feeding = False
            self._queued.clear()

        if desync is not None:
            raise desync
        return recognized

    def flush(self) -> None:
        """Discard all buffered, unrecognized bytes and return to SEEKING."""
        self.buffer.flush()

    def remove_from_buffer(self, count: int) -> None:
        """Remove ``count`` bytes from the buffer front, -1 for all."""
        self.buffer.evict(count)

    @property
    def state(self) -> BufferState:
        return self.buffer.state

    @property
    def history(self) -> List[RecognizedMessage]:
        """Recently recognized messages, oldest first."""
        return list(self._history)

    @property
    def history_size(self) -> int:
        return self._history.maxlen or 0

    # -- subscriptions -----------------------------------------------------------

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)

    def subscribe(
        self,
        message_type: Optional[str],
        callback: MessageCallback,
        *,
        once: bool = False,
    ) -> Subscription:
        """Listen for messages of ``message_type`` (None for all types).

        Returns:
            The subscription, usable with :meth:`unsubscribe`
        """
        if not callable(callback):
            raise TypeError(f"callback must be callable, got {callback!r}")
        subscription = Subscription(message_type, callback, once)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a subscription.

        Returns:
            True if it was registered, False if it was already gone
        """
        subscription.active = False
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return False
        return True

    def on_anomaly(self, callback: Callable[[int], Any]) -> None:
        """Register a callback for each discarded noise byte."""
        self._anomaly_callbacks.append(callback)

    def _on_discard(self, byte: int) -> None:
        for callback in list(self._anomaly_callbacks):
            try:
                callback(byte)
            except Exception:
                logger.exception("Anomaly callback %r failed", callback)

    def _notify(self, message: RecognizedMessage) -> None:
        # Subscriptions added by a callback only see later messages
        for subscription in list(self._subscriptions):
            if not subscription.active or not subscription.accepts(message):
                continue
            if subscription.once:
                subscription.active = False
            try:
                subscription.callback(message)
            except Exception:
                logger.exception("Subscription callback for %s failed", message.type)
            finally:
                if subscription.once:
                    self.unsubscribe(subscription)

    # -- waiting -------------------------------------------------------------------

    async def wait_for(self, message_type: Optional[str], timeout: Optional[float]) -> RecognizedMessage:
        """Wait for the next message of ``message_type``.

        Delivery and timeout race; whichever happens first commits the
        outcome and the other is ignored. The one-shot subscription is always
        removed when this coroutine finishes, including on cancellation.

        Args:
            message_type: Template name to wait for, None for any message
            timeout: Seconds to wait, None to wait forever

        Returns:
            The first matching message recognized after the call

        Raises:
            RecognitionTimeout: If no matching message arrives in time
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[RecognizedMessage] = loop.create_future()

        def deliver(message: RecognizedMessage) -> None:
            if not future.done():
                future.set_result(message)

        subscription = self.subscribe(message_type, deliver, once=True)
        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            raise RecognitionTimeout(message_type, timeout or 0.0) from None
        finally:
            self.unsubscribe(subscription)
