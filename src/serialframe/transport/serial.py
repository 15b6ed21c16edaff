"""Serial port transport built on pyserial-asyncio.

The port is opened with ``serial_asyncio.open_serial_connection``. A reader
task pulls whatever bytes are available and pushes each chunk to the RX
callbacks, so the rest of the package only ever sees ordered, push-style
delivery. Writes go through the stream writer and are drained before
``write`` returns.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import serial
import serial_asyncio

from ..exceptions import TransportError
from ..utils import hex_bytes
from .config import SerialConfig
from .driver import Transport

logger = logging.getLogger(__name__)

# Map string parity values to pyserial constants
_PARITY_MAP = {
    "N": serial.PARITY_NONE,
    "E": serial.PARITY_EVEN,
    "O": serial.PARITY_ODD,
    "M": serial.PARITY_MARK,
    "S": serial.PARITY_SPACE,
}

_STOPBITS_MAP = {
    1: serial.STOPBITS_ONE,
    1.5: serial.STOPBITS_ONE_POINT_FIVE,
    2: serial.STOPBITS_TWO,
}

_BYTESIZE_MAP = {
    5: serial.FIVEBITS,
    6: serial.SIXBITS,
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}


class SerialTransport(Transport):
    """Transport over a real (or pyserial URL) serial port.

    Attributes:
        config: Port and line settings

    Examples:
        ```python
        transport = SerialTransport(SerialConfig(port="/dev/ttyUSB0", baudrate=115200))
        transport.attach_rx_callback(dispatcher.feed)
        await transport.open()
        ```
    """

    def __init__(self, config: SerialConfig) -> None:
        super().__init__()
        self.config = config
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task[None]] = None

    @property
    def is_open(self) -> bool:
        return self._writer is not None

    async def open(self) -> None:
        """Open the port and start the reader task.

        Raises:
            TransportError: If pyserial cannot open the port
        """
        if self._writer is not None:
            logger.debug("%s already open", self.config.port)
            return

        try:
            self._reader, self._writer = await serial_asyncio.open_serial_connection(
                url=self.config.port,
                baudrate=self.config.baudrate,
                bytesize=_BYTESIZE_MAP[self.config.bytesize],
                parity=_PARITY_MAP[self.config.parity],
                stopbits=_STOPBITS_MAP[self.config.stopbits],
                rtscts=self.config.rtscts,
            )
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Could not open {self.config.port}: {e}") from e

        logger.info(
            "Opened %s @ %d baud (%d%s%s)",
            self.config.port,
            self.config.baudrate,
            self.config.bytesize,
            self.config.parity,
            self.config.stopbits,
        )
        self._read_task = asyncio.create_task(self._read_loop(), name=f"serial-rx-{self.config.port}")

    async def write(self, data: bytes) -> None:
        """Write ``data`` and wait for the writer to drain.

        Raises:
            TransportError: If the port is not open or the write fails
        """
        if self._writer is None:
            raise TransportError(f"{self.config.port} is not open. Call open() before write().")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Write to {self.config.port} failed: {e}") from e

        logger.debug("Wrote %s", hex_bytes(data))

    async def close(self) -> None:
        """Stop the reader task and close the port."""
        if self._writer is None:
            logger.debug("%s already closed", self.config.port)
            return

        writer, self._writer = self._writer, None
        task, self._read_task = self._read_task, None
        self._reader = None

        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        writer.close()
        try:
            await writer.wait_closed()
        except (serial.SerialException, OSError) as e:
            logger.warning("Error while closing %s: %s", self.config.port, e)

        logger.info("Closed %s", self.config.port)

    async def _read_loop(self) -> None:
        reader = self._reader
        assert reader is not None

        while True:
            try:
                chunk = await reader.read(self.config.read_chunk_size)
            except (serial.SerialException, OSError) as e:
                logger.error("Read from %s failed: %s", self.config.port, e)
                self._drop_connection()
                self._report_error(TransportError(f"Read from {self.config.port} failed: {e}"))
                return

            if not chunk:
                # EOF: the device went away
                logger.warning("%s reached end of stream", self.config.port)
                self._drop_connection()
                self._report_error(TransportError(f"{self.config.port} closed by peer"))
                return

            logger.debug("Received %s", hex_bytes(chunk))
            try:
                self._deliver(chunk)
            except Exception as e:
                logger.exception("RX callback error")
                self._report_error(e)

    def _drop_connection(self) -> None:
        """Mark the port closed after the reader task hit EOF or an error."""
        writer, self._writer = self._writer, None
        self._reader = None
        self._read_task = None
        if writer is not None:
            writer.close()
