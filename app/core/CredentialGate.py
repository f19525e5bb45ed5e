from typing import Optional

from app.core.credentials import CredentialProvider
from app.core.errors import CredentialSelectionError
from app.helpers.logger import get_logger
from app.schemas.KeySelection import GateState, GateStatus

logger = get_logger("gate")

SELECTION_FAILED_ALERT = "Key selection failed or expired. Please try again."


class CredentialGate:
    """
    Keeps every feature locked until a usable key is selected.

    Once unlocked, the gate stays unlocked for the rest of the session.
    """

    def __init__(self, provider: Optional[CredentialProvider]):
        self.provider = provider
        self.state = GateState.LOADING
        self.alert: Optional[str] = None

    @property
    def unlocked(self) -> bool:
        return self.state == GateState.UNLOCKED

    def status(self) -> GateStatus:
        return GateStatus(state=self.state, alert=self.alert)

    async def check(self) -> GateStatus:
        """Ask the capability whether a key is already selected."""
        if self.unlocked:
            return self.status()

        selected = False
        if self.provider is not None:
            try:
                selected = await self.provider.has_selected_key()
            except Exception as e:
                logger.error(f"Error checking API key: {e}")

        self.state = GateState.UNLOCKED if selected else GateState.LOCKED
        return self.status()

    async def select(self, api_key: Optional[str] = None) -> GateStatus:
        """Run the key-selection flow; the user retries manually on failure."""
        # The key is only offered while locked
        if self.provider is None or self.unlocked:
            return self.status()

        try:
            await self.provider.open_select_key(api_key)
        except CredentialSelectionError as e:
            logger.warning(f"Error selecting key: {e}")
            self.state = GateState.LOCKED
            self.alert = SELECTION_FAILED_ALERT
            raise
        except Exception as e:
            logger.error(f"Error selecting key: {e}")
            return self.status()

        self.state = GateState.UNLOCKED
        self.alert = None
        return self.status()
