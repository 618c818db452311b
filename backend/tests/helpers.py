"""Shared helpers for TempChat tests."""

import json
import os

from fastapi.testclient import TestClient

from tempchat.core.types import ChatMessage

ADMIN_USERNAME = os.environ["ADMIN_USERNAME"]
ADMIN_PASSWORD = os.environ["ADMIN_PASSWORD"]


def login(client: TestClient, username: str, password: str):
    response = client.post("/api/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response


def chat_message(message_id: str, username: str = "alice", body: str = "hi", timestamp: int = 1000, **extra):
    return ChatMessage(id=message_id, username=username, body=body, timestamp=timestamp, **extra)


def decode_data_frame(frame: str) -> dict:
    assert frame.startswith("data: "), frame
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: "):].strip())
