from __future__ import annotations
from typing import Protocol, List, Sequence
from iknoweverything.schemas.chat import ChatFile, HistoryMessage, ModelInfo


class ChatProvider(Protocol):
    id: str

    async def list_models(self) -> List[ModelInfo]:
        ...

    async def generate(self, history: Sequence[HistoryMessage], message: str, files: Sequence[ChatFile]) -> str:
        """Return the assistant reply for `message` given prior `history`."""
        ...
