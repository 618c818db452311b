# tempchat/services/stream.py

import asyncio
import logging
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable

from tempchat.core.config import STREAM_TICK_SECONDS
from tempchat.services.broadcast import (
    CONNECTED_FRAME,
    KEEPALIVE_FRAME,
    BroadcastRegistry,
    ChannelClosed,
    StreamChannel,
)

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class StreamConnection:
    """
    One SSE client. CONNECTING -> OPEN -> CLOSED.

    While open, a ticker task wakes every `tick_seconds`, asks the registry
    for this subscriber's pending delta and sends a keepalive comment when
    there is none. The registry's own notify pass may deliver the same
    messages first; the watermark lock keeps that from sending them twice.
    """

    def __init__(
        self,
        registry: BroadcastRegistry,
        tick_seconds: float = STREAM_TICK_SECONDS,
        channel: StreamChannel | None = None,
    ):
        self.registry = registry
        self.tick_seconds = tick_seconds
        self.channel = channel or StreamChannel()
        self.state = StreamState.CONNECTING
        self._ticker: asyncio.Task | None = None

    async def open(self) -> None:
        if self.state is not StreamState.CONNECTING:
            return
        initial = len(await self.registry.snapshot())
        self.registry.register(self.channel, initial)
        self.state = StreamState.OPEN
        try:
            await self.channel.send(CONNECTED_FRAME)
        except ChannelClosed:
            # registry was already shut down
            self.close()

    async def tick(self) -> int:
        """One poll step. Returns the number of messages delivered."""
        if self.state is not StreamState.OPEN:
            return 0
        try:
            delivered = await self.registry.catch_up(self.channel)
            if not delivered:
                await self.channel.send(KEEPALIVE_FRAME)
            return delivered
        except Exception:
            logger.info("Stream push failed, closing connection", exc_info=True)
            self.close()
            return 0

    async def _run_ticks(self) -> None:
        while self.state is StreamState.OPEN:
            await asyncio.sleep(self.tick_seconds)
            await self.tick()

    async def frames(
        self, is_disconnected: Callable[[], Awaitable[bool]] | None = None
    ) -> AsyncIterator[str]:
        """
        Body of the SSE response. Runs the ticker for as long as the client
        reads, and tears everything down on every way out.

        Registration happens here and nowhere earlier: a response that is
        cancelled before its body starts must leave nothing behind.
        """
        try:
            await self.open()
            if self.state is StreamState.OPEN:
                self._ticker = asyncio.get_running_loop().create_task(self._run_ticks())
            while True:
                try:
                    frame = await self.channel.receive(timeout=self.tick_seconds)
                except ChannelClosed:
                    break
                if frame is None:
                    if is_disconnected is not None and await is_disconnected():
                        break
                    continue
                yield frame
        finally:
            self.close()

    def close(self) -> None:
        """Idempotent teardown: unregister, stop the ticker, release the channel."""
        if self.state is StreamState.CLOSED:
            return
        self.state = StreamState.CLOSED
        self.registry.unregister(self.channel)

        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if self._ticker is not None and self._ticker is not current:
            self._ticker.cancel()
        self._ticker = None
        self.channel.close()
