# tempchat/models/user.py

from sqlalchemy import BigInteger, Boolean, Column, Integer, String

from tempchat.models.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Case-sensitive; the UNIQUE constraint is what settles concurrent creates
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(128), nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(BigInteger, nullable=False)
