"""Unit tests for the stream buffer and dispatcher."""

from __future__ import annotations

import asyncio

import pytest

from serialframe.codec import MessageRegistry
from serialframe.exceptions import RecognitionTimeout, UnrecoverableDesync
from serialframe.messages import RecognizedMessage, literal, wildcard
from serialframe.stream import BufferState, Dispatcher, StreamBuffer


def _types(messages: list[RecognizedMessage]) -> list[str]:
    return [m.type for m in messages]


class TestStreamBuffer:
    """Test framing of the rolling byte buffer."""

    def test_noise_then_ping(self, registry: MessageRegistry) -> None:
        """Test leading noise is discarded and PING recognized."""
        buffer = StreamBuffer(registry)
        messages = buffer.feed(bytes([0x00, 0xAA, 0x05]))

        assert len(messages) == 1
        assert messages[0].type == "PING"
        assert messages[0].raw == bytes([0xAA, 0x05])
        assert buffer.discarded == 1
        assert len(buffer) == 0
        assert buffer.state is BufferState.SEEKING

    def test_noise_discarded_one_at_a_time(self, registry: MessageRegistry) -> None:
        """Test each noise byte is reported individually, in order."""
        dropped: list[int] = []
        buffer = StreamBuffer(registry, on_discard=dropped.append)

        buffer.feed(b"\x10\x11\x12")

        assert dropped == [0x10, 0x11, 0x12]
        assert buffer.state is BufferState.SEEKING
        assert buffer.pending == b""

    def test_partial_message_accumulates(self, registry: MessageRegistry) -> None:
        """Test a plausible prefix is kept until complete."""
        buffer = StreamBuffer(registry)

        assert buffer.feed(b"\x02\x03") == []
        assert buffer.state is BufferState.ACCUMULATING
        assert buffer.pending == b"\x02\x03"

        messages = buffer.feed(b"\x01\x02")
        assert _types(messages) == ["READ"]
        assert buffer.state is BufferState.SEEKING

    def test_back_to_back_messages(self, registry: MessageRegistry) -> None:
        """Test consecutive messages in one chunk."""
        buffer = StreamBuffer(registry)
        messages = buffer.feed(b"\xAA\x01\xBB\x02\x02\x09\x00\x10\xAA\x03")

        assert _types(messages) == ["PING", "PONG", "READ", "PING"]
        assert [m.raw for m in messages][2] == b"\x02\x09\x00\x10"

    def test_corrupt_byte_mid_message_resyncs(self) -> None:
        """Test a prefix that becomes impossible falls back to seeking."""
        registry = MessageRegistry()
        registry.define("CMD", [literal("hdr", b"\x01\x02"), wildcard("arg")])
        buffer = StreamBuffer(registry)

        # 01 FF can never become CMD: drop 01, then FF, then recognize
        messages = buffer.feed(b"\x01\xFF\x01\x02\x07")

        assert _types(messages) == ["CMD"]
        assert messages[0].raw == b"\x01\x02\x07"
        assert buffer.discarded == 2

    def test_leftover_bytes_reevaluated(self) -> None:
        """Test bytes after a message shifted forward by discards are recognized."""
        registry = MessageRegistry()
        registry.define("SHORT", [literal("hdr", b"\x01")])
        registry.define("LONG", [literal("hdr", b"\x02"), wildcard("body", 3), literal("end", b"\x09")])
        buffer = StreamBuffer(registry)

        # 02 01 01 01 is a plausible LONG until 07 arrives; after dropping 02
        # the buffer holds three complete SHORT messages and a noise byte
        messages = buffer.feed(b"\x02\x01\x01\x01\x07")

        assert _types(messages) == ["SHORT", "SHORT", "SHORT"]
        assert buffer.discarded == 2
        assert len(buffer) == 0

    def test_incremental_equivalence(self, registry: MessageRegistry) -> None:
        """Test byte-by-byte feeding equals feeding all at once."""
        stream = b"\x00\xAA\x01\x13\x02\x03\x01\x02\xBB\xBB\x05\xFF\xAA"

        whole = StreamBuffer(registry)
        at_once = whole.feed(stream)

        split = StreamBuffer(registry)
        one_by_one = [m for byte in stream for m in split.feed(bytes([byte]))]

        assert [m.raw for m in at_once] == [m.raw for m in one_by_one]
        assert _types(at_once) == _types(one_by_one)
        assert whole.pending == split.pending == b"\xAA"

    def test_overlapping_templates_tie_break(self) -> None:
        """Test registration order decides overlapping matches."""
        registry = MessageRegistry()
        registry.define("A", [literal("hdr", b"\x01"), wildcard("x")])
        registry.define("B", [wildcard("x"), literal("tail", b"\x02")])

        messages = StreamBuffer(registry).feed(b"\x01\x02")

        assert _types(messages) == ["A"]

    def test_flush_resets_state(self, registry: MessageRegistry) -> None:
        """Test flush empties the buffer and returns to seeking."""
        buffer = StreamBuffer(registry)
        buffer.feed(b"\x02\x03")

        buffer.flush()

        assert len(buffer) == 0
        assert buffer.state is BufferState.SEEKING
        assert buffer.feed(b"\x01\x02") == []

    def test_evict(self, registry: MessageRegistry) -> None:
        """Test prefix eviction and the -1 flush shorthand."""
        buffer = StreamBuffer(registry)
        buffer.feed(b"\x02\x03\x01")

        buffer.evict(1)
        assert buffer.pending == b"\x03\x01"

        buffer.evict(-1)
        assert buffer.pending == b""
        assert buffer.state is BufferState.SEEKING

        with pytest.raises(ValueError):
            buffer.evict(-2)

    def test_desync_limit(self, registry: MessageRegistry) -> None:
        """Test persistent garbage raises after the limit."""
        buffer = StreamBuffer(registry, desync_limit=3)

        buffer.feed(b"\x10\x11\x12")
        with pytest.raises(UnrecoverableDesync) as excinfo:
            buffer.feed(b"\x13\xAA")

        assert excinfo.value.discarded == 4
        # Bytes after the flush are still processed
        assert buffer.pending == b"\xAA"
        assert buffer.state is BufferState.ACCUMULATING

    def test_desync_mid_chunk_keeps_processing(self, registry: MessageRegistry) -> None:
        """Test a message after the noise in the same chunk is still recognized."""
        buffer = StreamBuffer(registry, desync_limit=2)
        messages: list[RecognizedMessage] = []

        with pytest.raises(UnrecoverableDesync) as excinfo:
            for message in buffer.process(b"\x10\x11\x12\xAA\x01\x13"):
                messages.append(message)

        assert [m.raw for m in messages] == [b"\xAA\x01"]
        assert excinfo.value.discarded == 3
        assert buffer.discarded == 4
        assert len(buffer) == 0

    def test_desync_counter_resets_on_recognition(self, registry: MessageRegistry) -> None:
        """Test recognized messages reset the discard run."""
        buffer = StreamBuffer(registry, desync_limit=2)

        buffer.feed(b"\x10\x11\xAA\x01\x12\x13\xAA\x02")

        assert buffer.discarded == 4

    def test_invalid_desync_limit(self, registry: MessageRegistry) -> None:
        """Test desync_limit validation."""
        with pytest.raises(ValueError, match="desync_limit must be > 0"):
            StreamBuffer(registry, desync_limit=0)


class TestDispatcher:
    """Test history and subscriptions."""

    def test_define_and_generate(self) -> None:
        """Test messages defined on the dispatcher are generated and recognized."""
        dispatcher = Dispatcher()
        dispatcher.define_message("PING", [literal("hdr", b"\xAA"), wildcard("id")])

        data = dispatcher.generate("PING", {"id": b"\x05"})

        assert _types(dispatcher.feed(data)) == ["PING"]

    def test_subscribers_notified_in_order(self, registry: MessageRegistry) -> None:
        """Test subscriptions are invoked in subscription order, filtered by type."""
        dispatcher = Dispatcher(registry)
        calls: list[str] = []

        dispatcher.subscribe("PING", lambda m: calls.append(f"first:{m.type}"))
        dispatcher.subscribe("PONG", lambda m: calls.append(f"pong:{m.type}"))
        dispatcher.subscribe("PING", lambda m: calls.append(f"second:{m.type}"))
        dispatcher.subscribe(None, lambda m: calls.append(f"any:{m.type}"))

        dispatcher.feed(b"\xAA\x01")

        assert calls == ["first:PING", "second:PING", "any:PING"]

    def test_once_subscription(self, registry: MessageRegistry) -> None:
        """Test a once subscription fires once and is removed right away."""
        dispatcher = Dispatcher(registry)
        received: list[RecognizedMessage] = []
        still_registered: list[bool] = []
        subscription = dispatcher.subscribe("PING", received.append, once=True)
        dispatcher.subscribe("PING", lambda m: still_registered.append(subscription in dispatcher.subscriptions))

        dispatcher.feed(b"\xAA\x01\xAA\x02")

        assert len(received) == 1
        assert received[0].raw == b"\xAA\x01"
        assert subscription.active is False
        assert still_registered == [False, False]

    def test_once_subscription_not_fired_by_other_types(self, registry: MessageRegistry) -> None:
        """Test a once subscription survives unrelated messages."""
        dispatcher = Dispatcher(registry)
        subscription = dispatcher.subscribe("PONG", lambda m: None, once=True)

        dispatcher.feed(b"\xAA\x01")

        assert subscription in dispatcher.subscriptions

    def test_unsubscribe(self, registry: MessageRegistry) -> None:
        """Test unsubscribe is idempotent."""
        dispatcher = Dispatcher(registry)
        received: list[RecognizedMessage] = []
        subscription = dispatcher.subscribe("PING", received.append)

        assert dispatcher.unsubscribe(subscription) is True
        assert dispatcher.unsubscribe(subscription) is False

        dispatcher.feed(b"\xAA\x01")
        assert received == []

    def test_unsubscribe_during_delivery(self, registry: MessageRegistry) -> None:
        """Test a subscription removed by an earlier callback is skipped."""
        dispatcher = Dispatcher(registry)
        received: list[str] = []
        targets = []

        dispatcher.subscribe("PING", lambda m: dispatcher.unsubscribe(targets[0]))
        targets.append(dispatcher.subscribe("PING", lambda m: received.append("later")))

        dispatcher.feed(b"\xAA\x01")

        assert received == []
        assert len(dispatcher.subscriptions) == 1

    def test_failing_callback_does_not_stop_delivery(self, registry: MessageRegistry) -> None:
        """Test one broken subscriber does not starve the others."""
        dispatcher = Dispatcher(registry)
        received: list[RecognizedMessage] = []

        def broken(message: RecognizedMessage) -> None:
            raise RuntimeError("boom")

        broken_once = dispatcher.subscribe("PING", broken, once=True)
        dispatcher.subscribe("PING", received.append)

        dispatcher.feed(b"\xAA\x01")

        assert len(received) == 1
        assert broken_once not in dispatcher.subscriptions

    def test_history_bounded(self, registry: MessageRegistry) -> None:
        """Test history keeps the newest messages, oldest evicted first."""
        dispatcher = Dispatcher(registry, history_size=3)

        for i in range(5):
            dispatcher.feed(bytes([0xAA, i]))

        assert dispatcher.history_size == 3
        assert [m.field("id") for m in dispatcher.history] == [b"\x02", b"\x03", b"\x04"]

    def test_default_history_size(self, registry: MessageRegistry) -> None:
        """Test the default history bound."""
        dispatcher = Dispatcher(registry)

        dispatcher.feed(b"\xAA\x00" * 15)

        assert len(dispatcher.history) == 10

    def test_anomaly_callbacks(self, registry: MessageRegistry) -> None:
        """Test discarded bytes are reported."""
        dispatcher = Dispatcher(registry)
        dropped: list[int] = []
        dispatcher.on_anomaly(dropped.append)

        dispatcher.feed(b"\x00\x01\xAA\x01")

        assert dropped == [0x00, 0x01]

    def test_messages_before_desync_are_delivered(self, registry: MessageRegistry) -> None:
        """Test recognition before a desync error still reaches subscribers."""
        dispatcher = Dispatcher(registry, desync_limit=2)
        received: list[RecognizedMessage] = []
        dispatcher.subscribe("PING", received.append)

        with pytest.raises(UnrecoverableDesync):
            dispatcher.feed(b"\xAA\x01\x10\x11\x12")

        assert len(received) == 1
        assert len(dispatcher.history) == 1

    def test_noise_over_limit_then_message_in_one_batch(self, registry: MessageRegistry) -> None:
        """Test the whole batch is consumed before the desync error is raised."""
        dispatcher = Dispatcher(registry, desync_limit=2)
        dropped: list[int] = []
        dispatcher.on_anomaly(dropped.append)

        with pytest.raises(UnrecoverableDesync):
            dispatcher.feed(b"\x10\x11\x12\xAA\x01")

        assert [m.raw for m in dispatcher.history] == [b"\xAA\x01"]
        assert dropped == [0x10, 0x11, 0x12]
        assert len(dispatcher.buffer) == 0

    def test_once_callback_feeding_again_fires_once(self, registry: MessageRegistry) -> None:
        """Test a once subscription stays spent when its callback feeds more bytes."""
        dispatcher = Dispatcher(registry)
        calls: list[bytes] = []

        def reply(message: RecognizedMessage) -> None:
            calls.append(message.raw)
            dispatcher.feed(b"\xAA\x02")

        dispatcher.subscribe("PING", reply, once=True)
        dispatcher.feed(b"\xAA\x01")

        assert calls == [b"\xAA\x01"]
        assert [m.raw for m in dispatcher.history] == [b"\xAA\x01", b"\xAA\x02"]

    def test_nested_feed_runs_after_current_batch(self, registry: MessageRegistry) -> None:
        """Test bytes fed from a callback never interleave with the batch in progress."""
        dispatcher = Dispatcher(registry)
        nested: list[list[RecognizedMessage]] = []

        def on_first(message: RecognizedMessage) -> None:
            nested.append(dispatcher.feed(b"\xBB\x09"))

        dispatcher.subscribe("PING", on_first, once=True)
        recognized = dispatcher.feed(b"\xAA\x01\xAA\x02")

        assert [m.raw for m in recognized] == [b"\xAA\x01", b"\xAA\x02", b"\xBB\x09"]
        assert nested == [[]]
        assert [m.type for m in dispatcher.history] == ["PING", "PING", "PONG"]

    def test_flush_and_remove_from_buffer(self, registry: MessageRegistry) -> None:
        """Test buffer management through the dispatcher."""
        dispatcher = Dispatcher(registry)
        dispatcher.feed(b"\x02\x03\x01")
        assert dispatcher.state is BufferState.ACCUMULATING

        dispatcher.remove_from_buffer(-1)

        assert dispatcher.state is BufferState.SEEKING
        assert dispatcher.feed(b"\x02") == []

        dispatcher.flush()
        assert len(dispatcher.buffer) == 0

    def test_invalid_history_size(self) -> None:
        """Test history_size validation."""
        with pytest.raises(ValueError, match="history_size must be > 0"):
            Dispatcher(history_size=0)


class TestWaitFor:
    """Test waiting for the next message of a type."""

    @pytest.mark.asyncio
    async def test_resolves_with_message(self, registry: MessageRegistry) -> None:
        """Test delivery before the timeout resolves the wait."""
        dispatcher = Dispatcher(registry)
        loop = asyncio.get_running_loop()
        loop.call_later(0.01, dispatcher.feed, b"\xBB\x07\xAA\x09")

        message = await dispatcher.wait_for("PING", timeout=1.0)

        assert message.raw == b"\xAA\x09"
        assert dispatcher.subscriptions == []

    @pytest.mark.asyncio
    async def test_times_out(self, registry: MessageRegistry) -> None:
        """Test no message within the timeout fails the wait."""
        dispatcher = Dispatcher(registry)

        with pytest.raises(RecognitionTimeout) as excinfo:
            await dispatcher.wait_for("PING", timeout=0.02)

        assert excinfo.value.message_type == "PING"
        assert isinstance(excinfo.value, TimeoutError)

    @pytest.mark.asyncio
    async def test_timeout_removes_subscription(self, registry: MessageRegistry) -> None:
        """Test an expired wait leaves no subscription behind."""
        dispatcher = Dispatcher(registry)

        with pytest.raises(RecognitionTimeout):
            await dispatcher.wait_for("PING", timeout=0.01)

        assert dispatcher.subscriptions == []
        # A late message must not reach the expired waiter
        assert _types(dispatcher.feed(b"\xAA\x01")) == ["PING"]

    @pytest.mark.asyncio
    async def test_cancellation_removes_subscription(self, registry: MessageRegistry) -> None:
        """Test cancelling the waiting task cleans up."""
        dispatcher = Dispatcher(registry)
        task = asyncio.create_task(dispatcher.wait_for("PING", timeout=None))
        await asyncio.sleep(0)
        assert len(dispatcher.subscriptions) == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert dispatcher.subscriptions == []

    @pytest.mark.asyncio
    async def test_only_next_message_resolves(self, registry: MessageRegistry) -> None:
        """Test messages received before the wait do not count."""
        dispatcher = Dispatcher(registry)
        dispatcher.feed(b"\xAA\x01")

        waiter = asyncio.create_task(dispatcher.wait_for("PING", timeout=1.0))
        await asyncio.sleep(0)
        dispatcher.feed(b"\xAA\x02\xAA\x03")

        message = await waiter
        assert message.field("id") == b"\x02"

    @pytest.mark.asyncio
    async def test_concurrent_waiters(self, registry: MessageRegistry) -> None:
        """Test several waiters for different types."""
        dispatcher = Dispatcher(registry)
        ping = asyncio.create_task(dispatcher.wait_for("PING", timeout=1.0))
        pong = asyncio.create_task(dispatcher.wait_for("PONG", timeout=1.0))
        await asyncio.sleep(0)

        dispatcher.feed(b"\xBB\x01\xAA\x02")

        assert (await ping).field("id") == b"\x02"
        assert (await pong).field("id") == b"\x01"
        assert dispatcher.subscriptions == []
