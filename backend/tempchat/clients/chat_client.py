# tempchat/clients/chat_client.py

import json
import logging
import time
from typing import Callable, Iterable, Iterator

import requests

from tempchat.core.config import POLL_INTERVAL_SECONDS
from tempchat.core.reconcile import FeedDiff, FeedState, apply_deletion, reconcile
from tempchat.core.types import Attachment, ChatMessage

logger = logging.getLogger(__name__)

# =========================
# CONFIGURATION
# =========================

SERVER_URL = "http://127.0.0.1:8000"
STREAM_READ_TIMEOUT = 30  # seconds; the server sends a keepalive every tick

OnChange = Callable[[FeedDiff], None]

# =========================
# WIRE FORMAT
# =========================


def parse_frames(lines: Iterable[str], keepalives: bool = False) -> Iterator[dict]:
    """
    Turn SSE lines into decoded data payloads. Comment lines (": ...") carry
    no data; with `keepalives` they come out as empty payloads so the caller
    still gets a turn on every tick. Malformed data lines are logged and skipped.
    """
    for line in lines:
        if not line:
            continue
        if line.startswith(":"):
            if keepalives:
                yield {}
            continue
        if not line.startswith("data: "):
            continue
        try:
            payload = json.loads(line[len("data: "):])
        except ValueError:
            logger.warning("Unparseable stream frame: %r", line[:200])
            continue
        if isinstance(payload, dict):
            yield payload


def apply_frame(state: FeedState, payload: dict) -> FeedDiff:
    """Merge one decoded push frame into local state."""
    if "deletedId" in payload:
        message_id = payload["deletedId"]
        if apply_deletion(state, message_id):
            return FeedDiff(removed=[message_id])
        return FeedDiff()
    messages = [ChatMessage.model_validate(m) for m in payload.get("messages") or []]
    return reconcile(state, messages)


# =========================
# CLIENT
# =========================

class ChatClient:
    """
    Keeps a local copy of the feed in sync with a TempChat server, either by
    consuming the SSE stream or, when that is unavailable, by polling.
    """

    def __init__(self, base_url: str = SERVER_URL, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.state = FeedState()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def login(self, username: str, password: str) -> None:
        resp = self.session.post(self._url("/api/auth/login"),
                                 json={"username": username, "password": password})
        resp.raise_for_status()

    def fetch_messages(self) -> list[ChatMessage]:
        resp = self.session.get(self._url("/api/messages"))
        resp.raise_for_status()
        return [ChatMessage.model_validate(m) for m in resp.json().get("messages", [])]

    def post_message(
        self,
        body: str = "",
        media_url: str | None = None,
        attachments: list[Attachment] | None = None,
        reply_to_id: str | None = None,
    ) -> ChatMessage:
        payload = {
            "body": body,
            "mediaUrl": media_url,
            "attachments": [a.to_wire() for a in attachments or []],
            "replyToId": reply_to_id,
        }
        resp = self.session.post(self._url("/api/messages"), json=payload)
        resp.raise_for_status()
        message = ChatMessage.model_validate(resp.json()["message"])
        # our own post shows up right away; the stream copy is then a duplicate
        reconcile(self.state, [message])
        return message

    def delete_message(self, message_id: str) -> None:
        resp = self.session.delete(self._url("/api/messages"), params={"id": message_id})
        resp.raise_for_status()
        apply_deletion(self.state, message_id)

    def sync(self) -> FeedDiff:
        """Full re-fetch; the only way to learn about deletions we missed."""
        return reconcile(self.state, self.fetch_messages(), authoritative=True)

    def poll(
        self,
        on_change: OnChange | None = None,
        interval: float = POLL_INTERVAL_SECONDS,
        iterations: int | None = None,
    ) -> None:
        done = 0
        while iterations is None or done < iterations:
            try:
                diff = self.sync()
                if diff.changed and on_change:
                    on_change(diff)
            except requests.RequestException as e:
                logger.warning("Polling error: %s", e)
            done += 1
            if iterations is None or done < iterations:
                time.sleep(interval)

    def listen(
        self,
        on_change: OnChange | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        poll_iterations: int | None = None,
    ) -> None:
        """
        Follow the live stream. Every (re)connect starts with a full sync;
        if the stream fails, fall back to polling.

        The server counts what it has pushed to us, and a deletion does not
        lower that count. Until the feed grows back past it, new posts are
        not pushed, so after a deletion every frame triggers a full sync.
        """
        try:
            diff = self.sync()
            if diff.changed and on_change:
                on_change(diff)
            with self.session.get(self._url("/api/messages/stream"), stream=True,
                                  timeout=(5, STREAM_READ_TIMEOUT)) as resp:
                resp.raise_for_status()
                lines = resp.iter_lines(decode_unicode=True)
                pushed = len(self.state.messages)
                behind = False
                for payload in parse_frames(lines, keepalives=True):
                    pushed += len(payload.get("messages") or [])
                    diff = apply_frame(self.state, payload)
                    if diff.changed and on_change:
                        on_change(diff)
                    if "deletedId" in payload:
                        behind = True
                    elif behind:
                        diff = self.sync()
                        behind = len(self.state.messages) < pushed
                        if diff.changed and on_change:
                            on_change(diff)
        except requests.RequestException as e:
            logger.warning("Stream failed (%s), falling back to polling", e)
            self.poll(on_change, interval=poll_interval, iterations=poll_iterations)
