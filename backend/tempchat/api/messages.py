# tempchat/api/messages.py

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import Field
from sqlalchemy.orm import Session

from tempchat.api.deps import get_registry
from tempchat.core.errors import InvalidRequest, NotFound
from tempchat.core.message import (
    append_message,
    delete_message,
    find_message,
    new_message_id,
    now_ms,
    read_messages,
)
from tempchat.core.rate_limit import POST_MESSAGE_LIMIT, limiter
from tempchat.core.security import current_session, require_admin
from tempchat.core.types import Attachment, ChatMessage, SessionData, WireModel
from tempchat.infra.sqlite import get_db
from tempchat.services.broadcast import BroadcastRegistry
from tempchat.services.stream import StreamConnection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable buffering in nginx
}


class SendMessageSchema(WireModel):
    body: str | None = None
    media_url: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    reply_to_id: str | None = None


class EventStreamResponse(StreamingResponse):
    """SSE response that releases its connection however the response ends."""

    def __init__(self, connection: StreamConnection, is_disconnected=None):
        super().__init__(
            connection.frames(is_disconnected),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )
        self.connection = connection

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.connection.close()


async def _notify_quietly(registry: BroadcastRegistry) -> None:
    # posting already succeeded; delivery problems stay here
    try:
        await registry.notify_new_messages()
    except Exception:
        logger.exception("Broadcast after post failed")


@router.get("")
def list_messages(
    session: SessionData = Depends(current_session),
    db: Session = Depends(get_db),
):
    return {"messages": [m.to_wire() for m in read_messages(db)]}


@router.post("")
@limiter.limit(POST_MESSAGE_LIMIT)
def send_message(
    request: Request,
    payload: SendMessageSchema,
    background_tasks: BackgroundTasks,
    session: SessionData = Depends(current_session),
    db: Session = Depends(get_db),
    registry: BroadcastRegistry = Depends(get_registry),
):
    if not payload.body and not payload.media_url and not payload.attachments:
        raise InvalidRequest("Message, GIF, or attachment is required")

    if payload.reply_to_id and find_message(db, payload.reply_to_id) is None:
        raise InvalidRequest("Message being replied to does not exist")

    message = ChatMessage(
        id=new_message_id(),
        username=session.username,
        body=payload.body or "",
        timestamp=now_ms(),
        media_url=payload.media_url or None,
        attachments=payload.attachments,
        reply_to_id=payload.reply_to_id or None,
    )
    append_message(db, message)

    background_tasks.add_task(_notify_quietly, registry)
    return {"success": True, "message": message.to_wire()}


@router.delete("")
def remove_message(
    background_tasks: BackgroundTasks,
    message_id: str = Query(..., alias="id", min_length=1),
    session: SessionData = Depends(require_admin),
    db: Session = Depends(get_db),
    registry: BroadcastRegistry = Depends(get_registry),
):
    if not delete_message(db, message_id):
        raise NotFound("Message not found")
    logger.info("Admin %s deleted message %s", session.username, message_id)
    background_tasks.add_task(registry.notify_deleted, message_id)
    return {"success": True, "id": message_id}


@router.get("/stream")
async def stream_messages(
    request: Request,
    session: SessionData = Depends(current_session),
    registry: BroadcastRegistry = Depends(get_registry),
):
    connection = StreamConnection(registry)
    logger.info("Stream opened for %s", session.username)
    return EventStreamResponse(connection, request.is_disconnected)
