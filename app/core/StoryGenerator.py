from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from app.schemas.StoryPage import ImageSize, Story

# [{"role": "user" | "model", "parts": [{"text": ...}]}, ...]
ChatHistory = List[dict]


@dataclass(frozen=True)
class Credential:
    api_key: str

    def __repr__(self) -> str:
        return "Credential(api_key='***')"


class StoryGenerator(ABC):
    """
    The four generation calls used by the app.

    Every call takes the credential explicitly; backends build a fresh
    provider client per call and never cache keys.
    """

    @abstractmethod
    async def generate_story(self, credential: Credential, topic: str) -> Story:
        ...

    @abstractmethod
    async def generate_illustration(
        self, credential: Credential, prompt: str, size: ImageSize
    ) -> str:
        """Return the illustration as a base64 data URI."""

    @abstractmethod
    async def generate_speech(self, credential: Credential, text: str) -> bytes:
        ...

    @abstractmethod
    async def chat_reply(
        self, credential: Credential, message: str, history: ChatHistory
    ) -> str:
        ...

    @abstractmethod
    async def verify_credential(self, credential: Credential) -> None:
        """Raise CredentialSelectionError if the key is not usable."""
