"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from serialframe import MessageRegistry, MessageTemplate, computed, literal, wildcard


@pytest.fixture
def ping_template() -> MessageTemplate:
    """PING = AA <id>."""
    return MessageTemplate("PING", [literal("hdr", b"\xAA"), wildcard("id", 1)])


@pytest.fixture
def chk_template() -> MessageTemplate:
    """CHK = 01 02 <sum of precedent>."""
    return MessageTemplate(
        "CHK",
        [
            literal("body", b"\x01\x02"),
            computed("sum", lambda precedent: [sum(precedent) % 256], length=1),
        ],
    )


@pytest.fixture
def registry(ping_template: MessageTemplate) -> MessageRegistry:
    """Registry with PING, PONG and a 4-byte READ message."""
    registry = MessageRegistry([ping_template])
    registry.define("PONG", [literal("hdr", b"\xBB"), wildcard("id", 1)])
    registry.define("READ", [literal("stx", b"\x02"), wildcard("channel", 1), wildcard("value", 2)])
    return registry
