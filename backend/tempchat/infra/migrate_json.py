# tempchat/infra/migrate_json.py

"""
One-shot import of the old flat-file store (data/users.json and
data/messages.json) into SQLite. Imported files are renamed to *.backup so
a second run finds nothing to do.
"""

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.orm import Session

from tempchat.models.message import Message
from tempchat.models.user import User

logger = logging.getLogger(__name__)

USERS_FILE = "users.json"
MESSAGES_FILE = "messages.json"


@dataclass
class MigrationReport:
    users: int = 0
    messages: int = 0
    skipped: int = 0


def _legacy_attachment(raw: dict) -> dict:
    # old files used filename/size
    return {
        "stored_name": raw.get("storedName") or raw.get("filename") or "",
        "original_name": raw.get("originalName") or raw.get("filename") or "",
        "size_bytes": int(raw.get("sizeBytes", raw.get("size", 0)) or 0),
        "mime_type": raw.get("mimeType") or "application/octet-stream",
        "url": raw.get("url") or "",
    }


def _read_json_list(path: Path) -> list:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path.name} does not contain a JSON array")
    return data


def migrate_legacy_json(db: Session, data_dir: Path) -> MigrationReport:
    data_dir = Path(data_dir)
    users_path = data_dir / USERS_FILE
    messages_path = data_dir / MESSAGES_FILE
    report = MigrationReport()

    if not users_path.exists() and not messages_path.exists():
        logger.info("No legacy JSON files in %s", data_dir)
        return report

    now = int(time.time() * 1000)

    if users_path.exists():
        existing = set(db.scalars(select(User.username)).all())
        for raw in _read_json_list(users_path):
            username = raw.get("username")
            if not username or not raw.get("passwordHash") or username in existing:
                report.skipped += 1
                continue
            db.add(User(
                username=username,
                password_hash=raw["passwordHash"],
                is_admin=bool(raw.get("isAdmin")),
                created_at=now,
            ))
            existing.add(username)
            report.users += 1

    if messages_path.exists():
        existing = set(db.scalars(select(Message.id)).all())
        # file order is the legacy store order; seq preserves it
        for raw in _read_json_list(messages_path):
            message_id = raw.get("id")
            if not message_id or message_id in existing:
                report.skipped += 1
                continue
            timestamp = int(raw.get("timestamp") or now)
            db.add(Message(
                id=message_id,
                username=raw.get("username", ""),
                body=raw.get("body", raw.get("message")) or "",
                timestamp=timestamp,
                media_url=raw.get("mediaUrl", raw.get("gifUrl")),
                attachments=[_legacy_attachment(a) for a in raw.get("attachments") or []],
                reply_to_id=raw.get("replyToId"),
                created_at=timestamp,
            ))
            existing.add(message_id)
            report.messages += 1

    # all or nothing
    db.commit()

    for path in (users_path, messages_path):
        if path.exists():
            path.rename(path.with_name(path.name + ".backup"))
            logger.info("Backed up %s to %s.backup", path.name, path.name)

    logger.info(
        "Migrated %d users and %d messages (%d skipped)",
        report.users, report.messages, report.skipped,
    )
    return report
