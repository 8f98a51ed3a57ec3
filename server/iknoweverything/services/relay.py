from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from iknoweverything.core.auth import AuthUser
from iknoweverything.core.errors import ConversationNotFound, InvalidChatRequest
from iknoweverything.db import crud
from iknoweverything.db.models import DEFAULT_TITLE
from iknoweverything.db.session import get_session
from iknoweverything.providers.base import ChatProvider
from iknoweverything.schemas.chat import ChatRequest, HistoryMessage

logger = logging.getLogger(__name__)

IMAGE_PLACEHOLDER = "[Image analysis requested]"
TITLE_LENGTH = 50
# "New Chat" is what the web client names conversations it creates itself
DEFAULT_TITLES = {DEFAULT_TITLE, "New Chat"}


def derive_title(message: str) -> Optional[str]:
    text = message.strip()
    if not text:
        return None
    return text[:TITLE_LENGTH] + ("..." if len(text) > TITLE_LENGTH else "")


@dataclass
class RelayResult:
    conversation_id: str
    response: str


class ChatRelay:
    """Store the user's message, replay recent history to the model, store the reply."""

    def __init__(self, provider: ChatProvider, history_limit: int = 20) -> None:
        self.provider = provider
        self.history_limit = history_limit

    async def handle(self, user: AuthUser, request: ChatRequest) -> RelayResult:
        message = request.message or ""
        if not message.strip() and not request.files:
            raise InvalidChatRequest("Either message or files must be provided")

        logger.info(
            "Processing chat request user=%s conversation=%s chars=%d images=%d",
            user.id, request.conversationId, len(message), len(request.images),
        )

        # Committed before the upstream call so a failed generation keeps the question
        async with get_session() as session:
            if request.conversationId is None:
                conv = await crud.create_conversation(session, user.id)
                logger.info("Created conversation %s for user %s", conv.id, user.id)
            else:
                conv = await crud.get_conversation(session, user.id, request.conversationId)
                if conv is None:
                    raise ConversationNotFound("Conversation not found")

            first_message = await crud.count_messages(session, conv.id) == 0
            user_msg = await crud.add_message(session, conv, "user", message or IMAGE_PLACEHOLDER)

            if first_message and conv.title in DEFAULT_TITLES:
                title = derive_title(message)
                if title:
                    conv.title = title
                    session.add(conv)

            rows = await crud.recent_messages(
                session, user.id, conv.id, self.history_limit, exclude_id=user_msg.id
            )
            history = [HistoryMessage(role=r.role, content=r.content) for r in rows]
            conversation_id = conv.id

        logger.info("Relaying conversation %s with %d context messages", conversation_id, len(history))
        reply = await self.provider.generate(history, message, request.images)

        async with get_session() as session:
            conv = await crud.get_conversation(session, user.id, conversation_id)
            if conv is None:
                # Deleted while the model was generating
                raise ConversationNotFound("Conversation not found")
            await crud.add_message(session, conv, "assistant", reply)

        logger.info("Stored assistant reply for conversation %s", conversation_id)
        return RelayResult(conversation_id=conversation_id, response=reply)
