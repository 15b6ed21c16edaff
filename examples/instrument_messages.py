#!/usr/bin/env python3
"""Message definitions for a simple serial instrument.

The instrument speaks a binary protocol without length headers:

- PING  host -> device   AA <id>
- PONG  device -> host   BB <id>
- READ  device -> host   02 <channel> <value hi> <value lo> <sum8>
- STATUS device -> host  02 FF <flags> <sum8>
- RESET host -> device   55 <reason...>   (generation only, variable length)

This file doubles as input for ``serialframe --analyze``.
"""

from __future__ import annotations

from serialframe import MessageRegistry, literal, sum8_default, wildcard
from serialframe.messages import Fragment

registry = MessageRegistry()

PING = registry.define(
    "PING",
    [literal("hdr", b"\xAA"), wildcard("id", 1)],
    description="Liveness probe, answered by PONG with the same id",
)

PONG = registry.define(
    "PONG",
    [literal("hdr", b"\xBB"), wildcard("id", 1)],
)

# STATUS is registered before READ: both start with 02 and the status
# channel FF would otherwise be read as a measurement
STATUS = registry.define(
    "STATUS",
    [
        literal("stx", b"\x02"),
        literal("channel", b"\xFF"),
        wildcard("flags", 1),
        Fragment("sum", pattern=[None], default=sum8_default(start=1)),
    ],
)

READ = registry.define(
    "READ",
    [
        literal("stx", b"\x02"),
        wildcard("channel", 1),
        wildcard("value", 2),
        Fragment("sum", pattern=[None], default=sum8_default(start=1)),
    ],
)

RESET = registry.define(
    "RESET",
    [literal("cmd", b"\x55"), Fragment("reason", default=b"\x00")],
    inbound=False,
)
