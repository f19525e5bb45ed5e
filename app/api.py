from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.audio_player import ContextFactory, make_context_factory
from app.core.credentials import CredentialProvider, EnvironmentCredentialProvider
from app.core.GeneratorProvider import GeneratorProvider
from app.core.StoryGenerator import StoryGenerator
from app.helpers.config import Settings, get_settings
from app.helpers.logger import get_logger, setup_logger
from app.models.SessionModel import SessionModel
from app.routes import base, chat, story_gen

logger = get_logger("api")


def create_app(
    settings: Optional[Settings] = None,
    generator: Optional[StoryGenerator] = None,
    credentials: Optional[CredentialProvider] = None,
    context_factory: Optional[ContextFactory] = None,
) -> FastAPI:
    """Build the app with its own session; collaborators can be injected."""

    settings = settings or get_settings()
    setup_logger(settings.LOG_LEVEL, settings.LOGS_DIR)

    provider = GeneratorProvider(settings)
    generator = generator or provider.create()
    if credentials is None:
        verifier = generator.verify_credential if settings.VERIFY_API_KEYS else None
        credentials = EnvironmentCredentialProvider(provider.default_api_key(), verifier)

    session = SessionModel(
        generator,
        credentials,
        context_factory or make_context_factory(settings.AUDIO_OUTPUT),
        settings.AUDIO_SAMPLE_RATE,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        status = await session.gate.check()
        logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started | gate={status.state.value}")
        yield
        session.close()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Generate illustrated, narrated children's stories and chat with StoryBot",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session = session

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(base.base_router)
    app.include_router(story_gen.story_router)
    app.include_router(chat.chat_router)
    return app
