"""Configuration for serial and loopback transports.

This module provides configuration dataclasses for the transports. Every
dataclass validates itself on construction and raises ValueError for values
the transport could never honor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

VALID_BYTESIZES = (5, 6, 7, 8)
VALID_PARITIES = ("N", "E", "O", "M", "S")
VALID_STOPBITS = (1, 1.5, 2)


@dataclass
class SerialConfig:
    """Line settings for a serial port.

    Attributes:
        port: Device path (``/dev/ttyUSB0``, ``COM3``) or pyserial URL
            (``loop://``, ``socket://host:port``)
        baudrate: Line speed in bits per second (default 9600)
        bytesize: Data bits, one of 5, 6, 7, 8 (default 8)
        parity: ``"N"`` none, ``"E"`` even, ``"O"`` odd, ``"M"`` mark,
            ``"S"`` space (default ``"N"``)
        stopbits: 1, 1.5 or 2 (default 1)
        rtscts: Hardware flow control (default False)
        read_chunk_size: Maximum bytes per read from the port (default 4096)

    Examples:
        ```python
        config = SerialConfig(port="/dev/ttyUSB0", baudrate=115200, parity="E")
        transport = SerialTransport(config)
        ```
    """

    port: str
    baudrate: int = 9600
    bytesize: int = 8
    parity: str = "N"
    stopbits: float = 1
    rtscts: bool = False
    read_chunk_size: int = 4096

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.port:
            raise ValueError(f"Invalid port ({self.port!r})")

        if self.baudrate <= 0:
            raise ValueError(f"baudrate must be > 0, got {self.baudrate}")

        if self.bytesize not in VALID_BYTESIZES:
            raise ValueError(f"bytesize must be one of {VALID_BYTESIZES}, got {self.bytesize}")

        self.parity = self.parity.upper()[:1] if self.parity else self.parity
        if self.parity not in VALID_PARITIES:
            raise ValueError(f"parity must be one of {VALID_PARITIES}, got {self.parity!r}")

        if self.stopbits not in VALID_STOPBITS:
            raise ValueError(f"stopbits must be one of {VALID_STOPBITS}, got {self.stopbits}")

        if self.read_chunk_size <= 0:
            raise ValueError(f"read_chunk_size must be > 0, got {self.read_chunk_size}")


@dataclass
class LoopbackConfig:
    """Configuration for the in-process loopback transport.

    Written bytes come back as received bytes, passed through a simulated
    noisy link.

    Attributes:
        transmission_delay: Seconds between a write and its echo (default 0.0)
        chunk_size: Deliver echoed bytes in chunks of this size, None for one
            chunk per write (default None). Small chunks exercise incremental
            recognition.
        packet_loss_probability: Probability of dropping a written frame
            (default 0.0)
        bit_error_rate: Probability of flipping each bit (default 0.0)
        echo: Echo written bytes back at all (default True)
        seed: Seed for the link's random generator, for reproducible runs

    Examples:
        ```python
        # Reproducible noisy link delivering one byte at a time
        config = LoopbackConfig(chunk_size=1, bit_error_rate=0.001, seed=7)
        transport = LoopbackTransport(config)
        ```
    """

    transmission_delay: float = 0.0
    chunk_size: Optional[int] = None
    packet_loss_probability: float = 0.0
    bit_error_rate: float = 0.0
    echo: bool = True
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.transmission_delay < 0:
            raise ValueError(f"transmission_delay must be >= 0, got {self.transmission_delay}")

        if self.chunk_size is not None and self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got {self.chunk_size}")

        if not 0.0 <= self.packet_loss_probability <= 1.0:
            raise ValueError(
                f"packet_loss_probability must be 0.0-1.0, got {self.packet_loss_probability}"
            )

        if not 0.0 <= self.bit_error_rate <= 1.0:
            raise ValueError(f"bit_error_rate must be 0.0-1.0, got {self.bit_error_rate}")
