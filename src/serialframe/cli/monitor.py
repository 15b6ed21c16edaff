"""Serial monitor CLI command."""

from __future__ import annotations

import asyncio
from pathlib import Path

from ..codec import MessageRegistry
from ..helper import SerialPortHelper
from ..messages import RecognizedMessage
from ..transport import SerialConfig
from .analyze import load_templates


def _print_message(message: RecognizedMessage) -> None:
    fields = " ".join(f"{name}={value.hex().upper()}" for name, value in message.fields.items())
    print(f"{message.received.isoformat()} {message}  {fields}", flush=True)


async def monitor(port: str, definitions: Path, baudrate: int = 9600) -> None:
    """Print every recognized message on ``port`` until cancelled.

    Args:
        port: Serial device or pyserial URL
        definitions: Python file defining the message templates
        baudrate: Line speed
    """
    registry = MessageRegistry(t for t in load_templates(definitions) if t.inbound)
    if not len(registry):
        raise ValueError(f"No inbound message templates found in {definitions}")

    helper = SerialPortHelper(SerialConfig(port=port, baudrate=baudrate), registry, name=port)
    helper.on("message", _print_message)

    closed = asyncio.Event()
    helper.on("error", lambda error: closed.set())

    async with helper:
        await closed.wait()
