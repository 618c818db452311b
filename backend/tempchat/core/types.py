# tempchat/core/types.py

"""
In-memory shapes shared by the store, the broadcast layer and the client.
Field names are snake_case in Python and camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Attachment(WireModel):
    stored_name: str
    original_name: str
    size_bytes: int = Field(ge=0)
    mime_type: str = "application/octet-stream"
    url: str


class ChatMessage(WireModel):
    id: str
    username: str
    body: str = ""
    timestamp: int
    media_url: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    reply_to_id: str | None = None

    def has_content(self) -> bool:
        return bool(self.body or self.media_url or self.attachments)


class UserRecord(BaseModel):
    username: str
    password_hash: str
    is_admin: bool = False

    def public(self) -> dict:
        """What the admin panel may see: never the hash."""
        return {"username": self.username, "isAdmin": self.is_admin}


class SessionData(BaseModel):
    username: str
    is_admin: bool = False
