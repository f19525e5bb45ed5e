"""
Gemini backend: story JSON, illustrations, narration and chat through google-genai.
"""

import base64
from typing import Any, Callable, Optional

from google import genai
from google.genai import errors, types

from app.core.errors import CredentialSelectionError, GenerationError
from app.core.prompt_generator import (
    CHAT_FALLBACK_REPLY,
    CHAT_SYSTEM_INSTRUCTION,
    build_illustration_prompt,
    build_story_prompt,
    parse_story,
)
from app.core.StoryGenerator import ChatHistory, Credential, StoryGenerator
from app.helpers.logger import get_logger, log_generation_event
from app.schemas.StoryPage import ImageSize, Story

logger = get_logger("gemini")

STORY_RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "title": types.Schema(type=types.Type.STRING),
        "pages": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "text": types.Schema(type=types.Type.STRING),
                    "imagePrompt": types.Schema(type=types.Type.STRING),
                },
                required=["text", "imagePrompt"],
            ),
        ),
    },
    required=["title", "pages"],
)


def _first_parts(response: Any) -> list:
    if response.candidates and response.candidates[0].content and response.candidates[0].content.parts:
        return list(response.candidates[0].content.parts)
    return []


class GeminiGenerator(StoryGenerator):
    def __init__(
        self,
        story_model: str = "gemini-3-pro-preview",
        image_model: str = "gemini-3-pro-image-preview",
        tts_model: str = "gemini-2.5-flash-preview-tts",
        chat_model: str = "gemini-3-pro-preview",
        voice_name: str = "Kore",
        client_factory: Optional[Callable[[str], Any]] = None,
    ):
        self.story_model = story_model
        self.image_model = image_model
        self.tts_model = tts_model
        self.chat_model = chat_model
        self.voice_name = voice_name
        self._client_factory = client_factory or (lambda api_key: genai.Client(api_key=api_key))

    def _client(self, credential: Credential):
        """Async surface of a fresh client, closed when the call is done."""
        # Fresh client per call so a newly selected key takes effect immediately
        return self._client_factory(credential.api_key).aio

    async def generate_story(self, credential: Credential, topic: str) -> Story:
        async with self._client(credential) as client:
            try:
                response = await client.models.generate_content(
                    model=self.story_model,
                    contents=build_story_prompt(topic),
                    config=types.GenerateContentConfig(
                        response_mime_type="application/json",
                        response_schema=STORY_RESPONSE_SCHEMA,
                    ),
                )
            except Exception as e:
                raise GenerationError("story", f"Failed to generate story: {str(e)}") from e

        story = parse_story(response.text)
        log_generation_event("story", "story written", f"title={story.title!r}")
        return story

    async def generate_illustration(
        self, credential: Credential, prompt: str, size: ImageSize
    ) -> str:
        async with self._client(credential) as client:
            try:
                response = await client.models.generate_content(
                    model=self.image_model,
                    contents=[build_illustration_prompt(prompt)],
                    config=types.GenerateContentConfig(
                        image_config=types.ImageConfig(
                            image_size=size.value,
                            aspect_ratio="1:1",
                        ),
                    ),
                )
            except Exception as e:
                raise GenerationError("image", f"Failed to generate image: {str(e)}") from e

        # Extract image from response parts
        for part in _first_parts(response):
            if part.inline_data is not None and part.inline_data.data:
                data = part.inline_data.data
                if isinstance(data, bytes):
                    data = base64.b64encode(data).decode("ascii")
                mime_type = part.inline_data.mime_type or "image/png"
                log_generation_event("image", "illustration drawn", f"size={size.value}")
                return f"data:{mime_type};base64,{data}"

        raise GenerationError("image", "No image generated")

    async def generate_speech(self, credential: Credential, text: str) -> bytes:
        async with self._client(credential) as client:
            try:
                response = await client.models.generate_content(
                    model=self.tts_model,
                    contents=[text],
                    config=types.GenerateContentConfig(
                        response_modalities=["AUDIO"],
                        speech_config=types.SpeechConfig(
                            voice_config=types.VoiceConfig(
                                prebuilt_voice_config=types.PrebuiltVoiceConfig(
                                    voice_name=self.voice_name
                                )
                            )
                        ),
                    ),
                )
            except Exception as e:
                raise GenerationError("speech", f"Failed to generate speech: {str(e)}") from e

        parts = _first_parts(response)
        inline_data = parts[0].inline_data if parts else None
        if inline_data is None or not inline_data.data:
            raise GenerationError("speech", "No audio generated")

        audio = inline_data.data
        if isinstance(audio, str):
            audio = base64.b64decode(audio)
        log_generation_event("speech", "narration recorded", f"bytes={len(audio)}")
        return bytes(audio)

    async def chat_reply(
        self, credential: Credential, message: str, history: ChatHistory
    ) -> str:
        async with self._client(credential) as client:
            chat = client.chats.create(
                model=self.chat_model,
                history=[
                    types.Content(
                        role=entry["role"],
                        parts=[types.Part(text=part["text"]) for part in entry["parts"]],
                    )
                    for entry in history
                ],
                config=types.GenerateContentConfig(
                    system_instruction=CHAT_SYSTEM_INSTRUCTION,
                ),
            )
            try:
                result = await chat.send_message(message)
            except Exception as e:
                raise GenerationError("chat", f"Chat failed: {str(e)}") from e

        return result.text or CHAT_FALLBACK_REPLY

    async def verify_credential(self, credential: Credential) -> None:
        async with self._client(credential) as client:
            try:
                await client.models.get(model=self.story_model)
            except errors.ClientError as e:
                logger.warning(f"Key verification failed: {e.code} {e.message}")
                raise CredentialSelectionError() from e
