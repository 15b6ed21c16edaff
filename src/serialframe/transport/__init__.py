"""Byte transport abstraction layer.

This module provides a transport-agnostic interface for the byte link the
stream buffer reads from, enabling:

- **Testing without hardware**: LoopbackTransport echoes writes back through
  a simulated noisy link
- **Real serial ports**: SerialTransport via pyserial-asyncio
- **Swappable backends**: switch links without changing application code

## Quick Start

```python
import asyncio

from serialframe import SerialPortHelper
from serialframe.messages import literal, wildcard
from serialframe.transport import LoopbackConfig, LoopbackTransport

async def main() -> None:
    helper = SerialPortHelper(LoopbackTransport(LoopbackConfig(chunk_size=1)))
    helper.define_message("PING", [literal("hdr", b"\\xAA"), wildcard("id")])

    async with helper:
        await helper.send_message("PING", {"id": b"\\x05"})
        msg = await helper.read_message("PING", timeout=1.0)
        print(msg)

asyncio.run(main())
```
"""

from serialframe.transport.config import LoopbackConfig, SerialConfig
from serialframe.transport.driver import Transport
from serialframe.transport.loopback import LoopbackTransport
from serialframe.transport.serial import SerialTransport

__all__ = [
    "Transport",
    "LoopbackTransport",
    "LoopbackConfig",
    "SerialTransport",
    "SerialConfig",
]
