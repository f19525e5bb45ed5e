from fastapi import APIRouter, Depends

from app.models.SessionModel import SessionModel
from app.routes.dependencies import require_unlocked
from app.schemas.ChatMessage import ChatRequest, ChatResponse

chat_router = APIRouter(prefix="/api/chat", tags=["chat"])


@chat_router.get("", response_model=ChatResponse)
async def get_transcript(session: SessionModel = Depends(require_unlocked)):
    return session.chat.view()


@chat_router.post("", response_model=ChatResponse)
async def send_message(request: ChatRequest, session: SessionModel = Depends(require_unlocked)):
    await session.chat.send(request.text)
    return session.chat.view()
