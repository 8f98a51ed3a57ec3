from __future__ import annotations
import uuid
from datetime import datetime, timezone
from sqlalchemy import CheckConstraint
from sqlmodel import SQLModel, Field

DEFAULT_TITLE = "New Conversation"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Conversation(SQLModel, table=True):
    __tablename__ = "conversations"

    id: str = Field(default_factory=new_id, primary_key=True)
    title: str = Field(default=DEFAULT_TITLE, max_length=200)
    user_id: str = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class Message(SQLModel, table=True):
    __tablename__ = "messages"
    __table_args__ = (CheckConstraint("role IN ('user', 'assistant')", name="ck_messages_role"),)

    id: str = Field(default_factory=new_id, primary_key=True)
    conversation_id: str = Field(foreign_key="conversations.id", ondelete="CASCADE", index=True)
    user_id: str = Field(index=True)
    role: str = Field(max_length=20)
    content: str
    created_at: datetime = Field(default_factory=utcnow, index=True)
