from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GateState(str, Enum):
    LOADING = "loading"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class KeyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: Optional[str] = Field(default=None, alias="apiKey")


class GateStatus(BaseModel):
    state: GateState
    alert: Optional[str] = None
