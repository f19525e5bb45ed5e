from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from app.core.errors import CredentialMissingError, CredentialSelectionError
from app.core.StoryGenerator import Credential
from app.helpers.logger import get_logger

logger = get_logger("credentials")

Verifier = Callable[[Credential], Awaitable[None]]


class CredentialProvider(ABC):
    """Capability answering "is a usable key selected?" and selecting one."""

    @abstractmethod
    async def has_selected_key(self) -> bool:
        ...

    @abstractmethod
    async def open_select_key(self, api_key: Optional[str] = None) -> None:
        """Select a key; raises CredentialSelectionError when it is rejected."""

    @abstractmethod
    def current(self) -> Credential:
        """The key to use right now; raises CredentialMissingError when none."""


class EnvironmentCredentialProvider(CredentialProvider):
    """
    Starts from the key found in the environment and lets the user select
    another one at runtime.
    """

    def __init__(self, api_key: Optional[str] = None, verifier: Optional[Verifier] = None):
        self._api_key = api_key or None
        self._verifier = verifier

    async def has_selected_key(self) -> bool:
        return bool(self._api_key)

    async def open_select_key(self, api_key: Optional[str] = None) -> None:
        candidate = (api_key or "").strip() or self._api_key
        if not candidate:
            raise CredentialSelectionError()

        if self._verifier is not None:
            await self._verifier(Credential(candidate))

        self._api_key = candidate
        logger.info("API key selected")

    def current(self) -> Credential:
        if not self._api_key:
            raise CredentialMissingError("API Key not found in environment")
        return Credential(self._api_key)
