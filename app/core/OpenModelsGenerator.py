"""
Open-models backend: Groq writes stories and chats, Hugging Face draws and narrates.
"""

import base64
from io import BytesIO
from typing import Any, Callable, Optional

from groq import AsyncGroq, AuthenticationError, NotFoundError, PermissionDeniedError
from huggingface_hub import AsyncInferenceClient
from PIL import Image

from app.core.audio_player import decode_container, to_wav
from app.core.errors import CredentialSelectionError, GenerationError, PlaybackError
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

logger = get_logger("open_models")

STORY_SYSTEM_PROMPT = (
    "You are a children's book author. You always answer with a single valid "
    "JSON object and nothing else."
)


class OpenModelsGenerator(StoryGenerator):
    def __init__(
        self,
        hugging_face_key,
        groq_model: str = "llama-3.3-70b-versatile",
        hugging_face_model: str = "black-forest-labs/FLUX.1-schnell",
        hugging_face_tts_model: str = "hexgrad/Kokoro-82M",
        hugging_face_provider: str = "auto",
        groq_factory: Optional[Callable[[str], Any]] = None,
        inference_factory: Optional[Callable[[], Any]] = None,
    ):
        self.groq_model = groq_model
        self.hugging_face_model = hugging_face_model
        self.hugging_face_tts_model = hugging_face_tts_model
        self._groq_factory = groq_factory or (lambda api_key: AsyncGroq(api_key=api_key))
        self._inference_factory = inference_factory or (
            lambda: AsyncInferenceClient(provider=hugging_face_provider, api_key=hugging_face_key)
        )

    async def generate_story(self, credential: Credential, topic: str) -> Story:
        async with self._groq_factory(credential.api_key) as client:
            try:
                response = await client.chat.completions.create(
                    model=self.groq_model,
                    messages=[
                        {"role": "system", "content": STORY_SYSTEM_PROMPT},
                        {"role": "user", "content": build_story_prompt(topic)},
                    ],
                    temperature=0.7,
                    max_tokens=2000,
                    response_format={"type": "json_object"},
                )
            except Exception as e:
                raise GenerationError("story", f"Failed to generate story: {str(e)}") from e

        story = parse_story(response.choices[0].message.content)
        log_generation_event("story", "story written", f"title={story.title!r}")
        return story

    async def generate_illustration(
        self, credential: Credential, prompt: str, size: ImageSize
    ) -> str:
        async with self._inference_factory() as client:
            try:
                img = await client.text_to_image(
                    build_illustration_prompt(prompt),
                    model=self.hugging_face_model,
                    width=size.pixels,
                    height=size.pixels,
                )
            except Exception as e:
                raise GenerationError("image", f"Failed to generate image: {str(e)}") from e

        if not isinstance(img, Image.Image):
            raise GenerationError("image", "No image generated")

        # Verify image is valid
        if img.mode != "RGB":
            img = img.convert("RGB")

        buffer = BytesIO()
        img.save(buffer, "PNG")
        log_generation_event("image", "illustration drawn", f"size={size.value}")
        return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")

    async def generate_speech(self, credential: Credential, text: str) -> bytes:
        async with self._inference_factory() as client:
            try:
                audio = await client.text_to_speech(text, model=self.hugging_face_tts_model)
            except Exception as e:
                raise GenerationError("speech", f"Failed to generate speech: {str(e)}") from e

        if not audio:
            raise GenerationError("speech", "No audio generated")

        # TTS models answer with FLAC, MP3 or WAV; narration is stored as WAV
        try:
            wav = to_wav(decode_container(bytes(audio)))
        except PlaybackError as e:
            raise GenerationError("speech", f"Failed to decode speech: {str(e)}") from e

        log_generation_event("speech", "narration recorded", f"bytes={len(wav)}")
        return wav

    async def chat_reply(
        self, credential: Credential, message: str, history: ChatHistory
    ) -> str:
        messages = [{"role": "system", "content": CHAT_SYSTEM_INSTRUCTION}]
        for entry in history:
            messages.append(
                {
                    "role": "assistant" if entry["role"] == "model" else "user",
                    "content": " ".join(part["text"] for part in entry["parts"]),
                }
            )
        messages.append({"role": "user", "content": message})

        async with self._groq_factory(credential.api_key) as client:
            try:
                response = await client.chat.completions.create(
                    model=self.groq_model,
                    messages=messages,
                    temperature=0.7,
                )
            except Exception as e:
                raise GenerationError("chat", f"Chat failed: {str(e)}") from e

        return response.choices[0].message.content or CHAT_FALLBACK_REPLY

    async def verify_credential(self, credential: Credential) -> None:
        async with self._groq_factory(credential.api_key) as client:
            try:
                await client.models.list()
            except (AuthenticationError, PermissionDeniedError, NotFoundError) as e:
                logger.warning(f"Key verification failed: {str(e)}")
                raise CredentialSelectionError() from e
