from app.core.audio_player import ContextFactory, TimerContext
from app.core.CredentialGate import CredentialGate
from app.core.credentials import CredentialProvider
from app.core.StoryGenerator import StoryGenerator
from app.models.ChatModel import ChatModel
from app.models.StoryModel import StoryModel


class SessionModel:
    """Everything one browser session works with: the gate and both views."""

    def __init__(
        self,
        generator: StoryGenerator,
        credentials: CredentialProvider,
        context_factory: ContextFactory = TimerContext,
        sample_rate: int = 24000,
    ):
        self.generator = generator
        self.credentials = credentials
        self.gate = CredentialGate(credentials)
        self.story = StoryModel(generator, credentials, context_factory, sample_rate)
        self.chat = ChatModel(generator, credentials)

    def close(self) -> None:
        self.story.clear()
