# tempchat/models/message.py

from sqlalchemy import JSON, BigInteger, Column, Integer, String, Text

from tempchat.models.base import Base


class Message(Base):
    __tablename__ = "messages"

    # Store order. Reads sort on this, never on timestamp.
    seq = Column(Integer, primary_key=True, autoincrement=True)

    # Opaque public id handed out to clients
    id = Column(String(64), unique=True, nullable=False, index=True)

    username = Column(String(100), nullable=False, index=True)
    body = Column(Text, nullable=False, default="")

    # Milliseconds since epoch, informational only
    timestamp = Column(BigInteger, nullable=False, index=True)

    media_url = Column(Text, nullable=True)

    # List of attachment descriptors, decoded at the storage boundary
    attachments = Column(JSON, nullable=False, default=list)

    # Weak reference, may dangle after the target is deleted
    reply_to_id = Column(String(64), nullable=True)

    created_at = Column(BigInteger, nullable=False)
