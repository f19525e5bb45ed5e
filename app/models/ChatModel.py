from typing import List, Optional

from app.core.credentials import CredentialProvider
from app.core.StoryGenerator import StoryGenerator
from app.helpers.logger import get_logger
from app.schemas.ChatMessage import ChatMessage, ChatResponse

logger = get_logger("chat")

WELCOME_MESSAGE = "Hi there! I'm your StoryTime pal. Ask me anything!"
CHAT_FAILED_REPLY = "Oops! I got a little confused. Can you say that again?"


class ChatModel:
    """Append-only chat transcript with at most one request in flight."""

    def __init__(self, generator: StoryGenerator, credentials: CredentialProvider):
        self.generator = generator
        self.credentials = credentials
        self.messages: List[ChatMessage] = [
            ChatMessage(id="welcome", role="model", text=WELCOME_MESSAGE)
        ]
        self.typing = False

    async def send(self, text: str) -> Optional[ChatMessage]:
        """Send a user message; returns the model's reply, or None if ignored."""
        if not text.strip() or self.typing:
            return None

        history = [m.as_history_entry() for m in self.messages]
        self.messages.append(ChatMessage(role="user", text=text))
        self.typing = True

        try:
            credential = self.credentials.current()
            reply_text = await self.generator.chat_reply(credential, text, history)
        except Exception as e:
            logger.error(f"Chat error: {e}")
            reply_text = CHAT_FAILED_REPLY
        finally:
            self.typing = False

        reply = ChatMessage(role="model", text=reply_text)
        self.messages.append(reply)
        return reply

    def view(self) -> ChatResponse:
        return ChatResponse(messages=list(self.messages), typing=self.typing)
