from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Dict, List

from iknoweverything.core.auth import AuthUser, current_user
from iknoweverything.db import crud
from iknoweverything.db.models import DEFAULT_TITLE
from iknoweverything.db.session import get_session
from iknoweverything.schemas.chat import ConversationOut, MessageOut

router = APIRouter()


@router.get("/conversations", response_model=List[ConversationOut])
async def get_conversations(user: AuthUser = Depends(current_user)):
    """Get the caller's conversations (most recent first)."""
    async with get_session() as session:
        return await crud.list_conversations(session, user.id)


@router.post("/conversations", response_model=ConversationOut, status_code=201)
async def create_conversation(
    user: AuthUser = Depends(current_user),
    title: str = Query(DEFAULT_TITLE, min_length=1, max_length=200),
):
    """Create a new conversation."""
    async with get_session() as session:
        return await crud.create_conversation(session, user.id, title)


@router.patch("/conversations/{conversation_id}", response_model=ConversationOut)
async def rename_conversation(
    conversation_id: str,
    user: AuthUser = Depends(current_user),
    title: str = Query(..., min_length=1, max_length=200),
):
    """Rename a conversation."""
    async with get_session() as session:
        conv = await crud.rename_conversation(session, user.id, conversation_id, title)
        if conv is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return conv


@router.delete("/conversations/{conversation_id}")
async def delete_conversation(conversation_id: str, user: AuthUser = Depends(current_user)) -> Dict[str, str]:
    """Delete a conversation and its messages."""
    async with get_session() as session:
        if not await crud.delete_conversation(session, user.id, conversation_id):
            raise HTTPException(status_code=404, detail="Conversation not found")
        return {"status": "deleted", "id": conversation_id}


@router.get("/conversations/{conversation_id}/messages", response_model=List[MessageOut])
async def list_messages(conversation_id: str, user: AuthUser = Depends(current_user)):
    """List messages for a conversation (oldest first)."""
    async with get_session() as session:
        conv = await crud.get_conversation(session, user.id, conversation_id)
        if conv is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return await crud.list_messages(session, user.id, conversation_id)
