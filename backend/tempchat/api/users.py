# tempchat/api/users.py

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from tempchat.core.config import MIN_PASSWORD_LENGTH, MIN_USERNAME_LENGTH
from tempchat.core.errors import InvalidRequest
from tempchat.core.security import current_session, hash_password, require_admin
from tempchat.core.types import SessionData
from tempchat.core.user import create_user, delete_user, list_users, update_user
from tempchat.infra.sqlite import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin")


class CreateUserSchema(BaseModel):
    username: str = ""
    password: str = ""
    is_admin: bool = Field(default=False, alias="isAdmin")


class UpdateUserSchema(BaseModel):
    username: str = ""
    password: str | None = None
    is_admin: bool | None = Field(default=None, alias="isAdmin")


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidRequest(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


@router.get("/check")
def admin_check(session: SessionData = Depends(current_session)):
    return {"isAdmin": session.is_admin}


@router.get("/users")
def get_users(
    session: SessionData = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return {"users": [u.public() for u in list_users(db)]}


@router.post("/users")
def add_user(
    payload: CreateUserSchema,
    session: SessionData = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not payload.username or not payload.password:
        raise InvalidRequest("Username and password are required")
    if len(payload.username) < MIN_USERNAME_LENGTH:
        raise InvalidRequest(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
    _check_password(payload.password)

    create_user(db, payload.username, hash_password(payload.password), payload.is_admin)
    logger.info("Admin %s created user %s", session.username, payload.username)
    return {"success": True, "username": payload.username}


@router.put("/users")
def edit_user(
    payload: UpdateUserSchema,
    session: SessionData = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not payload.username:
        raise InvalidRequest("Username is required")
    if payload.password is None and payload.is_admin is None:
        raise InvalidRequest("No updates provided")

    password_hash = None
    if payload.password is not None:
        _check_password(payload.password)
        password_hash = hash_password(payload.password)

    update_user(db, payload.username, password_hash=password_hash, is_admin=payload.is_admin)
    return {"success": True, "username": payload.username}


@router.delete("/users")
def remove_user(
    username: str = Query(..., min_length=1),
    session: SessionData = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if username == session.username:
        raise InvalidRequest("Cannot delete your own account")

    delete_user(db, username)
    logger.info("Admin %s deleted user %s", session.username, username)
    return {"success": True, "username": username}
