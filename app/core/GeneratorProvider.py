from app.core.GeminiGenerator import GeminiGenerator
from app.core.OpenModelsGenerator import OpenModelsGenerator


class GeneratorProvider:
    def __init__(self, settings):
        self.settings = settings

    def create(self):
        if self.settings.GEN_PROVIDER == "GEMINI":
            return GeminiGenerator(
                story_model=self.settings.GEMINI_STORY_MODEL,
                image_model=self.settings.GEMINI_IMAGE_MODEL,
                tts_model=self.settings.GEMINI_TTS_MODEL,
                chat_model=self.settings.GEMINI_CHAT_MODEL,
                voice_name=self.settings.TTS_VOICE,
            )
        elif self.settings.GEN_PROVIDER == "OPEN_MODELS":
            return OpenModelsGenerator(
                self.settings.HUGGING_FACE_KEY,
                groq_model=self.settings.GROQ_MODEL,
                hugging_face_model=self.settings.HUGGING_FACE_MODEL,
                hugging_face_tts_model=self.settings.HUGGING_FACE_TTS_MODEL,
                hugging_face_provider=self.settings.HUGGING_FACE_PROVIDER,
            )
        raise ValueError(f"Unknown GEN_PROVIDER: {self.settings.GEN_PROVIDER}")

    def default_api_key(self):
        """Key configured for the selected provider, if any."""
        if self.settings.GEN_PROVIDER == "OPEN_MODELS":
            return self.settings.GROQ_API_KEY
        return self.settings.GEMINI_API_KEY
