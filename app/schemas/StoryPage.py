from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ImageSize(str, Enum):
    """Illustration resolution, applied to every page of one story"""

    SIZE_1K = "1K"
    SIZE_2K = "2K"
    SIZE_4K = "4K"

    @property
    def pixels(self) -> int:
        return {"1K": 1024, "2K": 2048, "4K": 4096}[self.value]


class StoryPage(BaseModel):
    """Model for an individual story page"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str
    image_prompt: str = Field(alias="imagePrompt")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")  # data URI


class Story(BaseModel):
    """A generated story; replaced wholesale, never edited in place"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    pages: List[StoryPage]

    def with_image(self, index: int, image_url: str) -> "Story":
        """Return a copy of the story with one page illustrated."""
        pages = list(self.pages)
        pages[index] = pages[index].model_copy(update={"image_url": image_url})
        return self.model_copy(update={"pages": pages})
