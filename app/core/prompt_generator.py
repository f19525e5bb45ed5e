import json

from pydantic import ValidationError

from app.core.errors import GenerationError
from app.schemas.StoryPage import Story

PAGE_COUNT = 3

ILLUSTRATION_STYLE = (
    "A colorful, charming children's book illustration, vibrant colors, "
    "friendly style."
)

CHAT_SYSTEM_INSTRUCTION = (
    "You are a friendly, enthusiastic, and helpful AI assistant for children. "
    "Keep answers simple, safe, and encouraging."
)

CHAT_FALLBACK_REPLY = "I couldn't think of a response!"


def build_story_prompt(topic: str) -> str:
    """Instruction asking for a fixed-shape JSON story about the topic"""

    return f"""Write a short, engaging children's story about: "{topic}".
    The story should be suitable for young children (ages 4-8).
    It should have exactly {PAGE_COUNT} pages (short paragraphs).
    For each page, provide the text of the story and a detailed visual description (image prompt) for an illustration that matches the text.

    Return the result as a JSON object with this structure:
    {{
      "title": "The Title of the Story",
      "pages": [
        {{
          "text": "Story text for page 1...",
          "imagePrompt": "A detailed description of the illustration..."
        }},
        ...
      ]
    }}"""


def build_illustration_prompt(prompt: str) -> str:
    return f"{ILLUSTRATION_STYLE} Scene: {prompt}"


def parse_story(content: str | None) -> Story:
    """Parse and validate the model's JSON story document."""

    # Handle potential None content
    if not content:
        raise GenerationError("story", "No text returned from model")

    try:
        result = json.loads(content)
    except json.JSONDecodeError as e:
        raise GenerationError("story", f"Invalid JSON response from model: {str(e)}") from e

    try:
        story = Story.model_validate(result)
    except ValidationError as e:
        raise GenerationError("story", f"Story does not match the expected shape: {str(e)}") from e

    if len(story.pages) != PAGE_COUNT:
        raise GenerationError(
            "story", f"Expected {PAGE_COUNT} pages, got {len(story.pages)}"
        )

    for i, page in enumerate(story.pages):
        if not page.text.strip() or not page.image_prompt.strip():
            raise GenerationError("story", f"Page {i + 1} is missing its text or image prompt")

    # Images are never taken from the model's text
    return story.model_copy(
        update={"pages": [p.model_copy(update={"image_url": None}) for p in story.pages]}
    )
