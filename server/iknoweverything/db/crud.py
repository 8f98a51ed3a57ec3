from __future__ import annotations
from typing import List, Optional
from sqlmodel import desc, func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from iknoweverything.db.models import Conversation, Message, DEFAULT_TITLE, utcnow

# Every query is scoped by the owning user id; a row owned by someone else
# is treated the same as a missing row.


async def list_conversations(session: AsyncSession, user_id: str) -> List[Conversation]:
    stmt = (
        select(Conversation)
        .where(Conversation.user_id == user_id)
        .order_by(desc(Conversation.updated_at))
    )
    result = await session.exec(stmt)
    return list(result.all())


async def create_conversation(session: AsyncSession, user_id: str, title: str = DEFAULT_TITLE) -> Conversation:
    conv = Conversation(title=title, user_id=user_id)
    session.add(conv)
    await session.flush()
    await session.refresh(conv)
    return conv


async def get_conversation(session: AsyncSession, user_id: str, conversation_id: str) -> Optional[Conversation]:
    conv = await session.get(Conversation, conversation_id)
    if conv is None or conv.user_id != user_id:
        return None
    return conv


async def rename_conversation(
    session: AsyncSession, user_id: str, conversation_id: str, title: str
) -> Optional[Conversation]:
    conv = await get_conversation(session, user_id, conversation_id)
    if conv is None:
        return None
    conv.title = title
    conv.updated_at = utcnow()
    await session.flush()
    await session.refresh(conv)
    return conv


async def delete_conversation(session: AsyncSession, user_id: str, conversation_id: str) -> bool:
    conv = await get_conversation(session, user_id, conversation_id)
    if conv is None:
        return False
    # The FK cascades on Postgres; delete explicitly so every backend agrees
    res = await session.exec(select(Message).where(Message.conversation_id == conversation_id))
    for m in res.all():
        await session.delete(m)
    await session.flush()
    await session.delete(conv)
    await session.flush()
    return True


async def list_messages(session: AsyncSession, user_id: str, conversation_id: str) -> List[Message]:
    """Messages of a conversation, oldest first."""
    stmt = (
        select(Message)
        .where(Message.conversation_id == conversation_id, Message.user_id == user_id)
        .order_by(Message.created_at)
    )
    result = await session.exec(stmt)
    return list(result.all())


async def count_messages(session: AsyncSession, conversation_id: str) -> int:
    stmt = select(func.count()).select_from(Message).where(Message.conversation_id == conversation_id)
    result = await session.exec(stmt)
    return int(result.one())


async def add_message(session: AsyncSession, conversation: Conversation, role: str, content: str) -> Message:
    msg = Message(
        conversation_id=conversation.id,
        user_id=conversation.user_id,
        role=role,
        content=content,
    )
    session.add(msg)
    # Touch conversation
    conversation.updated_at = msg.created_at
    session.add(conversation)
    await session.flush()
    await session.refresh(msg)
    return msg


async def recent_messages(
    session: AsyncSession,
    user_id: str,
    conversation_id: str,
    limit: int,
    exclude_id: Optional[str] = None,
) -> List[Message]:
    """The last `limit` messages of a conversation in chronological order."""
    if limit <= 0:
        return []
    stmt = select(Message).where(Message.conversation_id == conversation_id, Message.user_id == user_id)
    if exclude_id is not None:
        stmt = stmt.where(Message.id != exclude_id)
    stmt = stmt.order_by(desc(Message.created_at)).limit(limit)
    result = await session.exec(stmt)
    rows = list(result.all())
    rows.reverse()
    return rows
