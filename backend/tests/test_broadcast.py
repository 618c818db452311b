"""Tests for the broadcast registry (tempchat.services.broadcast)."""

import asyncio

import pytest

from helpers import chat_message, decode_data_frame
from tempchat.services.broadcast import (
    BroadcastRegistry,
    ChannelClosed,
    StreamChannel,
    deleted_frame,
    messages_frame,
)


class BrokenChannel(StreamChannel):
    async def send(self, frame: str) -> None:
        raise ConnectionResetError("client went away")


@pytest.fixture
def store():
    return []


@pytest.fixture
def registry(store):
    return BroadcastRegistry(lambda: list(store))


async def drain(channel: StreamChannel) -> list[str]:
    frames = []
    while True:
        frame = await channel.receive(timeout=0.01)
        if frame is None:
            return frames
        frames.append(frame)


class TestFrames:
    def test_messages_frame_is_camel_case_json(self):
        frame = messages_frame([chat_message("m1", reply_to_id="m0")])
        payload = decode_data_frame(frame)
        assert payload["messages"][0]["id"] == "m1"
        assert payload["messages"][0]["replyToId"] == "m0"
        assert "reply_to_id" not in payload["messages"][0]

    def test_deleted_frame(self):
        assert decode_data_frame(deleted_frame("m1")) == {"deletedId": "m1"}


class TestChannel:
    @pytest.mark.asyncio
    async def test_receive_times_out_with_none(self):
        channel = StreamChannel()
        assert await channel.receive(timeout=0.01) is None

    @pytest.mark.asyncio
    async def test_closed_channel_refuses_and_drains(self):
        channel = StreamChannel()
        await channel.send("a")
        channel.close()
        channel.close()

        with pytest.raises(ChannelClosed):
            await channel.send("b")
        assert await channel.receive() == "a"
        with pytest.raises(ChannelClosed):
            await channel.receive()


class TestRegistration:
    def test_register_and_unregister_idempotent(self, registry):
        channel = StreamChannel()
        registry.register(channel, 0)
        assert registry.is_registered(channel)
        assert registry.subscriber_count == 1

        registry.unregister(channel)
        registry.unregister(channel)
        assert registry.subscriber_count == 0
        assert registry.watermark(channel) is None

    def test_close_drops_everyone_and_refuses_new(self, registry):
        first = StreamChannel()
        registry.register(first, 0)

        registry.close()
        assert registry.subscriber_count == 0
        assert first.closed

        late = StreamChannel()
        registry.register(late, 0)
        assert registry.subscriber_count == 0
        assert late.closed


class TestNotifyNewMessages:
    @pytest.mark.asyncio
    async def test_delta_pushed_once_and_watermark_advanced(self, store, registry):
        store.extend([chat_message("m1"), chat_message("m2"), chat_message("m3")])
        channel = StreamChannel()
        registry.register(channel, 1)

        assert await registry.notify_new_messages() == 1
        assert await registry.notify_new_messages() == 0

        frames = await drain(channel)
        assert len(frames) == 1
        assert [m["id"] for m in decode_data_frame(frames[0])["messages"]] == ["m2", "m3"]
        assert registry.watermark(channel) == 3

    @pytest.mark.asyncio
    async def test_up_to_date_subscriber_gets_nothing(self, store, registry):
        store.append(chat_message("m1"))
        channel = StreamChannel()
        registry.register(channel, 1)

        assert await registry.notify_new_messages() == 0
        assert await drain(channel) == []

    @pytest.mark.asyncio
    async def test_concurrent_passes_do_not_duplicate(self, store, registry):
        channel = StreamChannel()
        registry.register(channel, 0)
        store.extend([chat_message("m1"), chat_message("m2")])

        await asyncio.gather(
            registry.notify_new_messages(),
            registry.notify_new_messages(),
            registry.catch_up(channel),
        )

        frames = await drain(channel)
        assert len(frames) == 1
        assert registry.watermark(channel) == 2

    @pytest.mark.asyncio
    async def test_dead_channel_does_not_stop_the_pass(self, store, registry):
        before, dead, after = StreamChannel(), BrokenChannel(), StreamChannel()
        registry.register(before, 0)
        registry.register(dead, 0)
        registry.register(after, 0)
        store.append(chat_message("m1"))

        assert await registry.notify_new_messages() == 2

        assert not registry.is_registered(dead)
        for channel in (before, after):
            frames = await drain(channel)
            assert [m["id"] for m in decode_data_frame(frames[0])["messages"]] == ["m1"]
            assert registry.watermark(channel) == 1

    @pytest.mark.asyncio
    async def test_catch_up_unregisters_and_raises_on_failure(self, store, registry):
        dead = BrokenChannel()
        registry.register(dead, 0)
        store.append(chat_message("m1"))

        with pytest.raises(ConnectionResetError):
            await registry.catch_up(dead)
        assert not registry.is_registered(dead)

    @pytest.mark.asyncio
    async def test_catch_up_on_unknown_channel(self, registry):
        with pytest.raises(ChannelClosed):
            await registry.catch_up(StreamChannel())


class TestNotifyDeleted:
    @pytest.mark.asyncio
    async def test_reaches_everyone_and_keeps_watermarks(self, store, registry):
        store.append(chat_message("m1"))
        a, b, dead = StreamChannel(), StreamChannel(), BrokenChannel()
        registry.register(a, 1)
        registry.register(b, 0)
        registry.register(dead, 1)

        assert await registry.notify_deleted("m1") == 2

        for channel in (a, b):
            assert [decode_data_frame(f) for f in await drain(channel)] == [{"deletedId": "m1"}]
        assert registry.watermark(a) == 1
        assert registry.watermark(b) == 0
        assert not registry.is_registered(dead)
