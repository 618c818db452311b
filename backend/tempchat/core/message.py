# tempchat/core/message.py

import logging
import secrets
import time

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from tempchat.core.types import Attachment, ChatMessage
from tempchat.infra.sqlite import db_session, storage_guard
from tempchat.models.message import Message

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def new_message_id() -> str:
    """Opaque, unguessable, never reused"""
    return secrets.token_urlsafe(12)


def _to_chat_message(row: Message) -> ChatMessage:
    return ChatMessage(
        id=row.id,
        username=row.username,
        body=row.body or "",
        timestamp=row.timestamp,
        media_url=row.media_url,
        attachments=[Attachment.model_validate(a) for a in (row.attachments or [])],
        reply_to_id=row.reply_to_id,
    )


def append_message(db: Session, message: ChatMessage) -> ChatMessage:
    """
    Persist one message. The row is committed in a single transaction, so it
    is either fully visible to later reads or not at all.
    """
    row = Message(
        id=message.id,
        username=message.username,
        body=message.body or "",
        timestamp=message.timestamp,
        media_url=message.media_url,
        attachments=[a.model_dump() for a in message.attachments],
        reply_to_id=message.reply_to_id,
        created_at=now_ms(),
    )
    with storage_guard(db):
        db.add(row)
        db.commit()
    logger.info("Message %s appended by %s", message.id, message.username)
    return message


def read_messages(db: Session) -> list[ChatMessage]:
    """All messages in store (insertion) order"""
    with storage_guard(db):
        rows = db.scalars(select(Message).order_by(Message.seq)).all()
    return [_to_chat_message(r) for r in rows]


def count_messages(db: Session) -> int:
    with storage_guard(db):
        return db.scalar(select(func.count()).select_from(Message)) or 0


def find_message(db: Session, message_id: str) -> ChatMessage | None:
    with storage_guard(db):
        row = db.scalars(select(Message).where(Message.id == message_id)).first()
    return _to_chat_message(row) if row is not None else None


def delete_message(db: Session, message_id: str) -> bool:
    """Returns whether a row was removed. A missing id is a no-op."""
    with storage_guard(db):
        result = db.execute(delete(Message).where(Message.id == message_id))
        db.commit()
    removed = result.rowcount > 0
    if removed:
        logger.info("Message %s deleted", message_id)
    return removed


def load_messages() -> list[ChatMessage]:
    """Standalone full read, for code running outside a request (broadcast)."""
    with db_session() as db:
        return read_messages(db)
