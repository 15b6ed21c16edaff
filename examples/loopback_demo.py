#!/usr/bin/env python3
"""Loopback example for serialframe.

This example demonstrates:
1. Defining messages with literal, wildcard and computed fragments
2. Recognizing messages delivered one byte at a time through noise
3. Waiting for the next message of a type with a timeout
"""

from __future__ import annotations

import asyncio
import logging

from instrument_messages import registry

from serialframe import RecognitionTimeout, SerialPortHelper
from serialframe.transport import LoopbackConfig, LoopbackTransport


async def main() -> None:
    """Run the loopback example."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    print("=" * 60)
    print("serialframe Loopback Example")
    print("=" * 60)
    print()

    transport = LoopbackTransport(LoopbackConfig(chunk_size=1, transmission_delay=0.05))
    helper = SerialPortHelper(transport, registry, name="demo")
    helper.on("anomaly", lambda byte: print(f"   noise byte 0x{byte:02X} dropped"))

    async with helper:
        # 1. The device sends a reading, preceded by line noise
        print("1. Device sends noise + READ(channel=3, value=0x0102)")
        transport.inject(b"\x00\x13" + registry.generate("READ", {"channel": b"\x03", "value": b"\x01\x02"}))
        reading = await helper.read_message("READ", timeout=1.0)
        print(f"   {reading}  value={int.from_bytes(reading.field('value'), 'big')}")
        print()

        # 2. PING goes out and, on the loopback, comes straight back
        print("2. Host sends PING(id=7)")
        sent = await helper.send_message("PING", {"id": b"\x07"})
        ping = await helper.read_message("PING", timeout=1.0)
        print(f"   sent {sent.hex(' ')}, recognized {ping}")
        print()

        # 3. Nobody answers with a PONG
        print("3. Waiting for a PONG that never comes")
        try:
            await helper.read_message("PONG", timeout=0.2)
        except RecognitionTimeout as e:
            print(f"   {e}")
        print()

    print(f"History: {[str(m) for m in helper.history]}")


if __name__ == "__main__":
    asyncio.run(main())
