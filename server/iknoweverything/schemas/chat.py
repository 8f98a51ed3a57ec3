from __future__ import annotations
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class ChatFile(BaseModel):
    """A file attached to a prompt; `data` is a data URL or bare base64."""

    name: str = ""
    type: str
    data: str

    @property
    def is_image(self) -> bool:
        return self.type.startswith("image/")

    @property
    def base64_data(self) -> str:
        # Strip the "data:image/png;base64," prefix
        if "," in self.data:
            return self.data.split(",", 1)[1]
        return self.data


class ChatRequest(BaseModel):
    message: Optional[str] = ""
    conversationId: Optional[str] = Field(default=None, alias="conversation_id")
    files: List[ChatFile] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @property
    def images(self) -> List[ChatFile]:
        return [f for f in self.files if f.is_image]


class ChatResponse(BaseModel):
    response: str
    success: bool = True
    conversationId: str


class ErrorResponse(BaseModel):
    error: str
    success: bool = False


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ConversationOut(BaseModel):
    id: str
    title: str
    created_at: datetime
    updated_at: datetime


class MessageOut(BaseModel):
    id: str
    conversation_id: str
    role: str
    content: str
    created_at: datetime


class ModelInfo(BaseModel):
    id: str
    name: str
    context_length: int = 1_000_000
