# tempchat/api/auth.py

import logging

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from tempchat.core import config
from tempchat.core.errors import InvalidRequest, Unauthorized
from tempchat.core.rate_limit import LOGIN_LIMIT, limiter
from tempchat.core.security import create_session_token, optional_session, verify_credentials
from tempchat.core.types import SessionData
from tempchat.infra.sqlite import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")


class LoginSchema(BaseModel):
    username: str = ""
    password: str = ""


@router.post("/login")
@limiter.limit(LOGIN_LIMIT)
def login(request: Request, payload: LoginSchema, response: Response, db: Session = Depends(get_db)):
    if not payload.username or not payload.password:
        raise InvalidRequest("Username and password are required")

    if not verify_credentials(db, payload.username, payload.password):
        logger.warning("Failed login for %s", payload.username)
        raise Unauthorized("Invalid username or password")

    response.set_cookie(
        config.SESSION_COOKIE_NAME,
        create_session_token(payload.username),
        max_age=config.SESSION_TTL_SECONDS,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    logger.info("User %s logged in", payload.username)
    return {"success": True, "username": payload.username}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(config.SESSION_COOKIE_NAME, path="/")
    return {"success": True}


@router.get("/check")
def check(session: SessionData | None = Depends(optional_session)):
    if session is None:
        return {"authenticated": False}
    return {"authenticated": True, "username": session.username, "isAdmin": session.is_admin}
