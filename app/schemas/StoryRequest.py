from pydantic import BaseModel, ConfigDict, Field

from .StoryPage import ImageSize


class StoryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic: str
    # Picture quality, shared by all pages of the story
    image_size: ImageSize = Field(default=ImageSize.SIZE_1K, alias="imageSize")
