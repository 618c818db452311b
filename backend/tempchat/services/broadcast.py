# tempchat/services/broadcast.py

"""
Process-local fan-out of new messages to open SSE connections.

Every subscriber is an outbound StreamChannel plus a watermark: the number of
messages already delivered down that channel. A pass reads the store once,
and for each subscriber that is behind sends the slice [watermark, len) and
only then advances the watermark. A channel that fails to accept a frame is
dropped, never retried.

One registry is built per application (see main.py lifespan) and handed to
whatever creates stream connections. Nothing here survives a restart.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Callable

from starlette.concurrency import run_in_threadpool

from tempchat.core.types import ChatMessage

logger = logging.getLogger(__name__)

CONNECTED_FRAME = ": connected\n\n"
KEEPALIVE_FRAME = ": keepalive\n\n"

_CLOSED = object()


def data_frame(payload: dict) -> str:
    return f"data: {json.dumps(payload, separators=(',', ':'))}\n\n"


def messages_frame(messages: list[ChatMessage]) -> str:
    return data_frame({"messages": [m.to_wire() for m in messages]})


def deleted_frame(message_id: str) -> str:
    return data_frame({"deletedId": message_id})


class ChannelClosed(Exception):
    pass


class StreamChannel:
    """Outbound frame queue for one SSE response; the response body drains it."""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, frame: str) -> None:
        if self._closed:
            raise ChannelClosed("channel is closed")
        await self._queue.put(frame)

    async def receive(self, timeout: float | None = None) -> str | None:
        """
        Next frame, or None when `timeout` elapses first.
        Raises ChannelClosed once the channel is closed and drained.
        """
        try:
            if timeout is None:
                item = await self._queue.get()
            else:
                item = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        if item is _CLOSED:
            # leave the marker for any other reader
            self._queue.put_nowait(_CLOSED)
            raise ChannelClosed("channel is closed")
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)


@dataclass(eq=False)
class Subscriber:
    channel: StreamChannel
    watermark: int
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class BroadcastRegistry:
    """
    Table of live subscribers.

    `load_messages` is a blocking callable returning the full ordered message
    list; it is run in the threadpool so store reads never stall the loop.
    """

    def __init__(self, load_messages: Callable[[], list[ChatMessage]]):
        self._load_messages = load_messages
        self._subscribers: dict[StreamChannel, Subscriber] = {}
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def is_registered(self, channel: StreamChannel) -> bool:
        return channel in self._subscribers

    def watermark(self, channel: StreamChannel) -> int | None:
        sub = self._subscribers.get(channel)
        return sub.watermark if sub is not None else None

    def register(self, channel: StreamChannel, initial_watermark: int) -> None:
        if self._closed:
            channel.close()
            return
        self._subscribers[channel] = Subscriber(channel, initial_watermark)
        logger.info(
            "Subscriber registered at watermark %d (%d open)",
            initial_watermark, len(self._subscribers),
        )

    def unregister(self, channel: StreamChannel) -> None:
        if self._subscribers.pop(channel, None) is not None:
            logger.info("Subscriber unregistered (%d open)", len(self._subscribers))

    async def snapshot(self) -> list[ChatMessage]:
        return await run_in_threadpool(self._load_messages)

    async def _push_delta(self, sub: Subscriber, messages: list[ChatMessage]) -> int:
        # The lock makes a second pass holding the same (or an older)
        # snapshot see the advanced watermark and send nothing.
        async with sub.lock:
            if self._subscribers.get(sub.channel) is not sub:
                return 0
            current = len(messages)
            if current <= sub.watermark:
                return 0
            delta = messages[sub.watermark:current]
            await sub.channel.send(messages_frame(delta))
            sub.watermark = current
            return len(delta)

    async def notify_new_messages(self) -> int:
        """
        Push pending deltas to every subscriber that is behind.
        Returns how many subscribers received a frame. Never raises for a
        bad channel.
        """
        messages = await self.snapshot()
        reached = 0
        for sub in list(self._subscribers.values()):
            try:
                if await self._push_delta(sub, messages):
                    reached += 1
            except Exception:
                logger.warning("Dropping subscriber after failed push", exc_info=True)
                self.unregister(sub.channel)
        return reached

    async def catch_up(self, channel: StreamChannel) -> int:
        """
        Deliver the pending delta to one subscriber. Returns the number of
        messages sent. A failed push unregisters the channel and re-raises.
        """
        sub = self._subscribers.get(channel)
        if sub is None:
            raise ChannelClosed("channel is not registered")
        messages = await self.snapshot()
        try:
            return await self._push_delta(sub, messages)
        except Exception:
            self.unregister(channel)
            raise

    async def notify_deleted(self, message_id: str) -> int:
        """
        Tell every subscriber that a message is gone. Watermarks are left
        alone; a client that misses this learns of it on its next full sync.
        """
        frame = deleted_frame(message_id)
        reached = 0
        for sub in list(self._subscribers.values()):
            try:
                async with sub.lock:
                    await sub.channel.send(frame)
                reached += 1
            except Exception:
                logger.warning("Dropping subscriber after failed push", exc_info=True)
                self.unregister(sub.channel)
        return reached

    def close(self) -> None:
        """Server shutdown: close every channel and empty the table."""
        self._closed = True
        for sub in list(self._subscribers.values()):
            sub.channel.close()
        count = len(self._subscribers)
        self._subscribers.clear()
        logger.info("Broadcast registry closed (%d subscribers dropped)", count)
