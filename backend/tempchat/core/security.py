# tempchat/core/security.py

import json
import logging
from functools import lru_cache

import bcrypt
from cryptography.fernet import Fernet, InvalidToken
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from tempchat.core import config
from tempchat.core.errors import Forbidden, Unauthorized
from tempchat.core.types import SessionData
from tempchat.core.user import find_user
from tempchat.infra.sqlite import get_db

logger = logging.getLogger(__name__)

if config.SESSION_SECRET_IS_EPHEMERAL:
    logger.warning(
        "SESSION_SECRET is not set; using a per-process key. "
        "Sessions will not survive a restart."
    )


# =========================
# PASSWORDS
# =========================

def hash_password(password: str, rounds: int = config.BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the store
        return False


@lru_cache(maxsize=1)
def _implicit_admin_hash() -> str | None:
    if not config.ADMIN_PASSWORD:
        return None
    return hash_password(config.ADMIN_PASSWORD)


def is_implicit_admin(username: str) -> bool:
    return config.ADMIN_PASSWORD is not None and username == config.ADMIN_USERNAME


def verify_credentials(db: Session, username: str, password: str) -> bool:
    """
    Check the implicit admin first, then the users table.
    """
    if is_implicit_admin(username):
        return check_password(password, _implicit_admin_hash())

    user = find_user(db, username)
    if user is None:
        return False
    return check_password(password, user.password_hash)


# =========================
# SESSION TOKENS
# =========================

@lru_cache(maxsize=1)
def _fernet() -> Fernet:
    return Fernet(config.SESSION_SECRET.encode("utf-8"))


def create_session_token(username: str) -> str:
    payload = json.dumps({"username": username}).encode("utf-8")
    return _fernet().encrypt(payload).decode("utf-8")


def read_session_token(token: str) -> str | None:
    """Return the username inside a valid, unexpired token."""
    try:
        payload = _fernet().decrypt(token.encode("utf-8"), ttl=config.SESSION_TTL_SECONDS)
    except InvalidToken:
        return None
    try:
        username = json.loads(payload).get("username")
    except (ValueError, AttributeError):
        return None
    return username if isinstance(username, str) and username else None


def resolve_session(db: Session, token: str | None) -> SessionData | None:
    if not token:
        return None
    username = read_session_token(token)
    if username is None:
        return None

    if is_implicit_admin(username):
        return SessionData(username=username, is_admin=True)

    # Deleted accounts lose their sessions immediately
    user = find_user(db, username)
    if user is None:
        return None
    return SessionData(username=username, is_admin=user.is_admin)


# =========================
# DEPENDENCIES
# =========================

def optional_session(request: Request, db: Session = Depends(get_db)) -> SessionData | None:
    return resolve_session(db, request.cookies.get(config.SESSION_COOKIE_NAME))


def current_session(session: SessionData | None = Depends(optional_session)) -> SessionData:
    if session is None:
        raise Unauthorized()
    return session


def require_admin(session: SessionData = Depends(current_session)) -> SessionData:
    if not session.is_admin:
        raise Forbidden()
    return session
