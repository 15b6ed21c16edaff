"""In-process loopback transport for testing without hardware.

This module provides LoopbackTransport, a simulated serial link. It
simulates:

- Transmission delays
- Frame loss
- Bit errors
- Fragmented delivery (bytes arriving in small chunks)
- A remote peer sending bytes of its own (``inject``)

Design Patterns:
- Queue-based decoupling: a single RX task drains an asyncio.Queue, so
  chunks are delivered strictly in the order they were queued
- Channel simulation: probabilistic loss and bit error injection
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import List, Optional

from ..exceptions import TransportError
from ..utils import hex_bytes
from .config import LoopbackConfig
from .driver import Transport

logger = logging.getLogger(__name__)


class LoopbackTransport(Transport):
    """Simulated serial link echoing written bytes back to its RX callbacks.

    Attributes:
        config: Link simulation parameters
        rx_queue: Frames waiting for delivery, with their delivery delay
        sent: Every frame passed to ``write``, before channel effects

    Examples:
        ```python
        transport = LoopbackTransport(LoopbackConfig(chunk_size=1))
        transport.attach_rx_callback(dispatcher.feed)

        await transport.open()
        await transport.write(dispatcher.generate("PING", {"id": b"\\x05"}))
        await transport.settle()   # every queued byte has been delivered
        await transport.close()
        ```
    """

    def __init__(self, config: Optional[LoopbackConfig] = None) -> None:
        super().__init__()
        self.config = config if config is not None else LoopbackConfig()
        self.rx_queue: asyncio.Queue[tuple[bytes, float]] = asyncio.Queue()
        self.sent: List[bytes] = []
        self._random = random.Random(self.config.seed)
        self._rx_task: Optional[asyncio.Task[None]] = None

    @property
    def is_open(self) -> bool:
        return self._rx_task is not None

    async def open(self) -> None:
        """Start the background RX task."""
        if self._rx_task is not None:
            logger.debug("Loopback already open")
            return

        logger.info(
            "Loopback open: delay=%ss, loss=%.1f%%, BER=%.2f%%",
            self.config.transmission_delay,
            self.config.packet_loss_probability * 100,
            self.config.bit_error_rate * 100,
        )
        self._rx_task = asyncio.create_task(self._rx_loop(), name="Loopback-RX")

    async def write(self, data: bytes) -> None:
        """Simulate a transmission with channel effects.

        1. Record the frame in ``sent``
        2. Drop it with ``packet_loss_probability``
        3. Flip bits with ``bit_error_rate``
        4. Queue it for delivery after ``transmission_delay``

        Raises:
            TransportError: If the transport is not open
        """
        if self._rx_task is None:
            raise TransportError("Loopback not open. Call open() before write().")

        data = bytes(data)
        self.sent.append(data)

        if not self.config.echo:
            return

        if self._random.random() < self.config.packet_loss_probability:
            logger.info("Frame lost in channel (%d bytes)", len(data))
            return

        if self.config.bit_error_rate > 0:
            data = self._inject_bit_errors(data)

        await self.rx_queue.put((data, self.config.transmission_delay))

    def inject(self, data: bytes, delay: float = 0.0) -> None:
        """Queue bytes as if a remote device had sent them.

        Injected bytes bypass loss and bit errors, and are delivered in order
        with everything else in the queue.
        """
        self.rx_queue.put_nowait((bytes(data), delay))

    async def settle(self) -> None:
        """Wait until every queued frame has been delivered."""
        await self.rx_queue.join()

    async def close(self) -> None:
        """Stop the RX task. Frames still queued are dropped."""
        if self._rx_task is None:
            logger.debug("Loopback already closed")
            return

        task, self._rx_task = self._rx_task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Loopback closed")

    async def _rx_loop(self) -> None:
        """Deliver queued frames, chunk by chunk, to the RX callbacks."""
        while True:
            data, delay = await self.rx_queue.get()
            try:
                if delay > 0:
                    await asyncio.sleep(delay)
                for chunk in self._chunks(data):
                    logger.debug("Received %s", hex_bytes(chunk))
                    try:
                        self._deliver(chunk)
                    except Exception as e:
                        logger.exception("RX callback error")
                        self._report_error(e)
            finally:
                self.rx_queue.task_done()

    def _chunks(self, data: bytes) -> List[bytes]:
        size = self.config.chunk_size
        if size is None or size >= len(data):
            return [data]
        return [data[i : i + size] for i in range(0, len(data), size)]

    def _inject_bit_errors(self, data: bytes) -> bytes:
        """Flip each bit with probability ``bit_error_rate``."""
        corrupted = bytearray(data)
        num_errors = 0

        for byte_idx in range(len(corrupted)):
            for bit_idx in range(8):
                if self._random.random() < self.config.bit_error_rate:
                    corrupted[byte_idx] ^= 1 << bit_idx  # Flip bit
                    num_errors += 1

        if num_errors > 0:
            logger.info("Injected %d bit errors into %d bytes", num_errors, len(data))

        return bytes(corrupted)
