# tempchat/core/user.py

import logging
import time

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tempchat.core.errors import DuplicateUsername, NotFound
from tempchat.core.types import UserRecord
from tempchat.infra.sqlite import storage_guard
from tempchat.models.user import User

logger = logging.getLogger(__name__)


def _to_record(user: User) -> UserRecord:
    return UserRecord(
        username=user.username,
        password_hash=user.password_hash,
        is_admin=bool(user.is_admin),
    )


def _get(db: Session, username: str) -> User | None:
    return db.scalars(select(User).where(User.username == username)).first()


def create_user(db: Session, username: str, password_hash: str, is_admin: bool = False) -> UserRecord:
    """
    Insert a new account. Uniqueness is decided by the UNIQUE constraint at
    commit time, not by a prior lookup, so racing creates cannot both win.
    """
    user = User(
        username=username,
        password_hash=password_hash,
        is_admin=is_admin,
        created_at=int(time.time() * 1000),
    )
    with storage_guard(db):
        db.add(user)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise DuplicateUsername(f"Username already exists: {username}") from e
    logger.info("User %s created (admin=%s)", username, is_admin)
    return _to_record(user)


def update_user(
    db: Session,
    username: str,
    password_hash: str | None = None,
    is_admin: bool | None = None,
) -> UserRecord:
    """Partial update; fields left as None are untouched."""
    with storage_guard(db):
        user = _get(db, username)
        if user is None:
            raise NotFound(f"User not found: {username}")
        if password_hash is not None:
            user.password_hash = password_hash
        if is_admin is not None:
            user.is_admin = is_admin
        db.commit()
    logger.info("User %s updated", username)
    return _to_record(user)


def delete_user(db: Session, username: str) -> None:
    with storage_guard(db):
        user = _get(db, username)
        if user is None:
            raise NotFound(f"User not found: {username}")
        db.delete(user)
        db.commit()
    logger.info("User %s deleted", username)


def find_user(db: Session, username: str) -> UserRecord | None:
    with storage_guard(db):
        user = _get(db, username)
    return _to_record(user) if user is not None else None


def list_users(db: Session) -> list[UserRecord]:
    with storage_guard(db):
        users = db.scalars(select(User).order_by(User.id)).all()
    return [_to_record(u) for u in users]
