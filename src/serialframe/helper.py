"""High-level serial port helper.

SerialPortHelper ties a transport to a Dispatcher: received bytes are fed to
the stream buffer, recognized messages reach subscribers, and outbound
messages are generated from the same templates and written one at a time.
"""

from __future__ import annotations

import asyncio
import logging
import random
import string
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from .codec import MessageRegistry
from .messages import Fragment, MessageTemplate, RecognizedMessage
from .stream import DEFAULT_HISTORY_SIZE, Dispatcher, Subscription
from .stream.dispatcher import MessageCallback
from .transport import SerialConfig, SerialTransport, Transport
from .utils import hex_bytes

logger = logging.getLogger(__name__)

DEFAULT_READ_MESSAGE_TIMEOUT = 60.0

EVENTS = ("open", "close", "error", "message", "anomaly")


def _random_name() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"serial-port-{suffix}"


class SerialPortHelper:
    """Message-level access to a serial link.

    Args:
        transport: The byte link, or a SerialConfig to open a SerialTransport
        registry: Message templates; a new empty registry when omitted
        name: Label used in log lines; random when omitted
        history_size: Number of recognized messages kept in ``history``
        read_message_timeout: Default seconds ``read_message`` waits
        desync_limit: Bytes discarded in a row before ``UnrecoverableDesync``
            is reported through the ``error`` event, None to disable

    Events (register with :meth:`on`):
        - ``open`` / ``close``: no arguments
        - ``error``: the exception
        - ``message``: every RecognizedMessage
        - ``anomaly``: every discarded noise byte

    Examples:
        ```python
        helper = SerialPortHelper(SerialConfig(port="/dev/ttyUSB0", baudrate=115200))
        helper.define_message("PING", [literal("hdr", b"\\xAA"), wildcard("id")])
        helper.define_message("PONG", [literal("hdr", b"\\xBB"), wildcard("id")])

        async with helper:
            await helper.send_message("PING", {"id": b"\\x01"})
            pong = await helper.read_message("PONG", timeout=2.0)
        ```
    """

    def __init__(
        self,
        transport: Union[Transport, SerialConfig],
        registry: Optional[MessageRegistry] = None,
        *,
        name: Optional[str] = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
        read_message_timeout: float = DEFAULT_READ_MESSAGE_TIMEOUT,
        desync_limit: Optional[int] = None,
    ) -> None:
        if read_message_timeout <= 0:
            raise ValueError(f"read_message_timeout must be > 0, got {read_message_timeout}")

        if isinstance(transport, SerialConfig):
            transport = SerialTransport(transport)

        self.name = name or _random_name()
        self.transport = transport
        self.read_message_timeout = read_message_timeout
        self.dispatcher = Dispatcher(registry, history_size=history_size, desync_limit=desync_limit)

        self._write_lock = asyncio.Lock()
        self._listeners: Dict[str, List[Callable[..., Any]]] = {event: [] for event in EVENTS}

        self.transport.attach_rx_callback(self._handle_data)
        self.transport.attach_error_callback(self._handle_error)
        self.dispatcher.subscribe(None, self._log_message)
        self.dispatcher.on_anomaly(self._handle_anomaly)

    def __repr__(self) -> str:
        return f"SerialPortHelper({self.name!r}, {type(self.transport).__name__})"

    # -- lifecycle -------------------------------------------------------------

    async def open(self) -> None:
        """Open the transport and emit ``open``."""
        logger.debug("[%s] Opening...", self.name)
        await self.transport.open()
        logger.info("[%s] Serial port open", self.name)
        self._emit("open")

    async def close(self) -> None:
        """Close the transport and emit ``close``."""
        await self.transport.close()
        logger.info("[%s] Serial port close", self.name)
        self._emit("close")

    async def __aenter__(self) -> SerialPortHelper:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def is_open(self) -> bool:
        return self.transport.is_open

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        """Register a listener for a lifecycle or stream event.

        Raises:
            ValueError: If ``event`` is not one of ``EVENTS``
        """
        if event not in self._listeners:
            raise ValueError(f"Unknown event {event!r}, expected one of {EVENTS}")
        self._listeners[event].append(callback)

    def _emit(self, event: str, *args: Any) -> None:
        for callback in list(self._listeners[event]):
            try:
                callback(*args)
            except Exception:
                logger.exception("[%s] %s listener failed", self.name, event)

    # -- messages --------------------------------------------------------------

    @property
    def registry(self) -> MessageRegistry:
        return self.dispatcher.registry

    @property
    def history(self) -> List[RecognizedMessage]:
        return self.dispatcher.history

    def define_message(
        self,
        name: str,
        fragments: Iterable[Fragment],
        *,
        inbound: bool = True,
        description: str = "",
    ) -> MessageTemplate:
        """Register a message template."""
        return self.dispatcher.define_message(name, fragments, inbound=inbound, description=description)

    def subscribe(
        self,
        message_type: Optional[str],
        callback: MessageCallback,
        *,
        once: bool = False,
    ) -> Subscription:
        """Listen for recognized messages of ``message_type``."""
        return self.dispatcher.subscribe(message_type, callback, once=once)

    def unsubscribe(self, subscription: Subscription) -> bool:
        return self.dispatcher.unsubscribe(subscription)

    async def read_message(
        self,
        message_type: Optional[str],
        timeout: Optional[float] = None,
    ) -> RecognizedMessage:
        """Wait for the next message of ``message_type``.

        Args:
            message_type: Template name, None for any message
            timeout: Seconds to wait, ``read_message_timeout`` when omitted

        Raises:
            RecognitionTimeout: If no matching message arrives in time
        """
        if timeout is None:
            timeout = self.read_message_timeout
        return await self.dispatcher.wait_for(message_type, timeout)

    async def write_bytes(self, data: bytes | bytearray | Iterable[int]) -> None:
        """Write raw bytes; concurrent calls are serialized.

        The next write only starts once the previous one has drained.
        """
        data = bytes(data)
        async with self._write_lock:
            await self.transport.write(data)
        logger.info("[%s] Sent: %s", self.name, hex_bytes(data))

    async def send_message(self, name: str, overrides: Optional[Mapping[str, Any]] = None) -> bytes:
        """Generate the message ``name`` and write it.

        Generation happens before anything is written, so a generation error
        leaves the link untouched. Override names are checked: a key that
        names no fragment of the message is an error, not silently ignored.

        Returns:
            The bytes written

        Raises:
            UnknownMessage: If ``name`` is not registered
            UnknownFragment: If an override names a fragment the message lacks
            GenerationError: If the message cannot be generated
        """
        data = self.dispatcher.generate(name, overrides)
        await self.write_bytes(data)
        return data

    def remove_from_buffer(self, count: int) -> None:
        """Remove ``count`` bytes from the receive buffer, -1 to empty it."""
        self.dispatcher.remove_from_buffer(count)

    def flush(self) -> None:
        """Discard every buffered, unrecognized byte."""
        self.dispatcher.flush()

    # -- transport callbacks ---------------------------------------------------

    def _handle_data(self, data: bytes) -> None:
        logger.debug("[%s] Received %s", self.name, hex_bytes(data))
        try:
            self.dispatcher.feed(data)
        except Exception as e:
            logger.error("[%s] Error: %s", self.name, e)
            self._emit("error", e)

    def _handle_error(self, error: Exception) -> None:
        logger.error("[%s] Error: %s", self.name, error)
        self._emit("error", error)

    def _handle_anomaly(self, byte: int) -> None:
        self._emit("anomaly", byte)

    def _log_message(self, message: RecognizedMessage) -> None:
        logger.info("[%s] New Message: %s", self.name, message)
        self._emit("message", message)
