"""Pytest configuration and fixtures for TempChat tests.

Test isolation strategy:
- Environment is pointed at a throwaway directory BEFORE tempchat is imported,
  because configuration and the engine are read at import time
- Every test starts from freshly created tables
- HTTP tests get their own app instance (and so their own broadcast registry)
"""

import base64
import os
import tempfile
from pathlib import Path

_tmp_root = Path(tempfile.mkdtemp(prefix="tempchat-tests-"))
os.environ["DATA_DIR"] = str(_tmp_root)
os.environ["DATABASE_URL"] = f"sqlite:///{_tmp_root / 'tempchat-test.db'}"
os.environ["UPLOAD_DIR"] = str(_tmp_root / "uploads")
os.environ["SESSION_SECRET"] = base64.urlsafe_b64encode(b"t" * 32).decode()
os.environ["ADMIN_USERNAME"] = "rootadmin"
os.environ["ADMIN_PASSWORD"] = "rootadmin-pass"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STREAM_TICK_SECONDS"] = "0.05"

import pytest
from fastapi.testclient import TestClient

from helpers import ADMIN_PASSWORD, ADMIN_USERNAME, login
from tempchat.core.security import hash_password
from tempchat.core.user import create_user
from tempchat.infra.sqlite import SessionLocal, engine, init_db
from tempchat.main import create_app
from tempchat.models.base import Base


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make(username: str, password: str = "secret-pw", is_admin: bool = False):
        return create_user(db, username, hash_password(password), is_admin)

    return _make


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client(client):
    login(client, ADMIN_USERNAME, ADMIN_PASSWORD)
    return client
