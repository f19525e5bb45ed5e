import uuid
from datetime import datetime, timezone
from typing import List, Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """One entry of the chat transcript"""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "model"]
    text: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_history_entry(self) -> dict:
        """Role/parts shape expected by the conversational endpoint."""
        return {"role": self.role, "parts": [{"text": self.text}]}


class ChatRequest(BaseModel):
    text: str


class ChatResponse(BaseModel):
    messages: List[ChatMessage]
    typing: bool = False
