from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .StoryPage import ImageSize, Story


class StoryPhase(str, Enum):
    IDLE = "idle"
    WRITING = "writing"
    ILLUSTRATING = "illustrating"


LOADING_STEPS = {
    StoryPhase.IDLE: "",
    StoryPhase.WRITING: "Writing your magical story...",
    StoryPhase.ILLUSTRATING: "Drawing pictures...",
}


class StoryResponse(BaseModel):
    """Snapshot of the story view"""

    model_config = ConfigDict(populate_by_name=True)

    phase: StoryPhase
    loading_step: str = Field(alias="loadingStep")
    image_size: ImageSize = Field(alias="imageSize")
    # Only present once the story is fully illustrated
    story: Optional[Story] = None
    audio_ready: List[int] = Field(default_factory=list, alias="audioReady")
    audio_loading: List[int] = Field(default_factory=list, alias="audioLoading")
    playing: List[int] = Field(default_factory=list)
    alert: Optional[str] = None
