from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    APP_NAME: str = "StoryTime Magic"
    APP_VERSION: str = "1.0.0"

    # GEMINI or OPEN_MODELS
    GEN_PROVIDER: str = "GEMINI"

    GEMINI_API_KEY: Optional[str] = None
    GEMINI_STORY_MODEL: str = "gemini-3-pro-preview"
    GEMINI_IMAGE_MODEL: str = "gemini-3-pro-image-preview"
    GEMINI_TTS_MODEL: str = "gemini-2.5-flash-preview-tts"
    GEMINI_CHAT_MODEL: str = "gemini-3-pro-preview"
    TTS_VOICE: str = "Kore"

    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "llama-3.3-70b-versatile"

    HUGGING_FACE_KEY: Optional[str] = None
    HUGGING_FACE_MODEL: str = "black-forest-labs/FLUX.1-schnell"
    HUGGING_FACE_TTS_MODEL: str = "hexgrad/Kokoro-82M"
    HUGGING_FACE_PROVIDER: str = "auto"

    # Playback: "none" keeps time without a device, "pyaudio" plays on the host
    AUDIO_OUTPUT: str = "none"
    AUDIO_SAMPLE_RATE: int = 24000

    # Check a user supplied key against the provider before unlocking
    VERIFY_API_KEYS: bool = True

    LOG_LEVEL: str = "INFO"
    LOGS_DIR: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_settings():
    return Settings()
