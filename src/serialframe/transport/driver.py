"""Abstract interface for byte transports.

This module provides a transport-agnostic abstraction for the byte link that
feeds the stream buffer, enabling:
- Testing without hardware via LoopbackTransport
- Real serial ports via SerialTransport
- Swappable transports without changing application code

Design Pattern: Strategy Pattern / Adapter Pattern
- Transport: Abstract interface
- LoopbackTransport: In-process simulation
- SerialTransport: pyserial-asyncio adapter
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, List

RxCallback = Callable[[bytes], None]
ErrorCallback = Callable[[Exception], None]


class Transport(ABC):
    """Abstract interface for an ordered, push-style byte transport.

    Received bytes are pushed to registered RX callbacks in arrival order,
    one call per received chunk. Writes are awaited until the bytes have
    been drained to the device.

    Examples:
        ```python
        from serialframe.transport import SerialConfig, SerialTransport

        transport = SerialTransport(SerialConfig(port="/dev/ttyUSB0", baudrate=115200))
        transport.attach_rx_callback(lambda data: print(data.hex()))

        await transport.open()
        await transport.write(b"\\xAA\\x01")
        await transport.close()
        ```
    """

    def __init__(self) -> None:
        self.rx_callbacks: List[RxCallback] = []
        self.error_callbacks: List[ErrorCallback] = []

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True between a successful open() and close()."""

    @abstractmethod
    async def open(self) -> None:
        """Open the link and start delivering received bytes.

        Raises:
            TransportError: If the link cannot be opened
        """

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Write ``data`` and wait until it has been drained.

        Raises:
            TransportError: If the transport is not open or the write fails
        """

    @abstractmethod
    async def close(self) -> None:
        """Stop delivering bytes and release the link. Safe to call twice."""

    def attach_rx_callback(self, callback: RxCallback) -> None:
        """Register a callback invoked with every received chunk.

        Multiple callbacks can be registered; all of them are invoked in
        registration order.
        """
        self.rx_callbacks.append(callback)

    def attach_error_callback(self, callback: ErrorCallback) -> None:
        """Register a callback invoked when the link reports an error."""
        self.error_callbacks.append(callback)

    def _deliver(self, data: bytes) -> None:
        for callback in list(self.rx_callbacks):
            callback(data)

    def _report_error(self, error: Exception) -> None:
        for callback in list(self.error_callbacks):
            callback(error)
