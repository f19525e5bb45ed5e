import asyncio
from collections import defaultdict

import pytest
from fastapi.testclient import TestClient
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from app.api import create_app
from app.core.audio_player import PlaybackContext, PlaybackSource
from app.core.credentials import EnvironmentCredentialProvider
from app.core.errors import GenerationError, PlaybackError
from app.core.StoryGenerator import StoryGenerator
from app.helpers.config import Settings
from app.schemas.StoryPage import Story, StoryPage

# 0.1s of 16-bit mono silence at 24 kHz
PCM_AUDIO = b"\x00\x00" * 2400

# A FLAC stream header followed by payload; ffmpeg output is faked
FLAC_AUDIO = b"fLaC\x00\x00\x00\x22" + b"\x10" * 200

# What the fake ffmpeg "decodes" containers to: 0.1s at 22.05 kHz
DECODED_RATE = 22050
DECODED_PCM = b"\x01\x00" * 2205


def make_story(title="The Brave Little Turtle"):
    return Story(
        title=title,
        pages=[
            StoryPage(text=f"Page {i + 1} text.", image_prompt=f"prompt {i}")
            for i in range(3)
        ],
    )


class FakeGenerator(StoryGenerator):
    """Records every call; failures and delays are configured per test."""

    def __init__(self):
        self.calls = defaultdict(list)
        self.story = make_story()
        self.fail_story = False
        self.failing_prompts = set()
        self.image_delays = {}
        self.story_delay = 0
        self.fail_speech = False
        self.speech = PCM_AUDIO
        self.fail_chat = False
        self.chat_text = "Turtles are great swimmers!"

    async def generate_story(self, credential, topic):
        self.calls["story"].append((credential, topic))
        if self.story_delay:
            await asyncio.sleep(self.story_delay)
        if self.fail_story:
            raise GenerationError("story", "No text returned from model")
        return self.story

    async def generate_illustration(self, credential, prompt, size):
        self.calls["image"].append((credential, prompt, size))
        await asyncio.sleep(self.image_delays.get(prompt, 0))
        if prompt in self.failing_prompts:
            raise GenerationError("image", "No image generated")
        return f"data:image/png;base64,{prompt.replace(' ', '-')}"

    async def generate_speech(self, credential, text):
        self.calls["speech"].append((credential, text))
        await asyncio.sleep(0)
        if self.fail_speech:
            raise GenerationError("speech", "No audio generated")
        return self.speech

    async def chat_reply(self, credential, message, history):
        self.calls["chat"].append((credential, message, history))
        await asyncio.sleep(0)
        if self.fail_chat:
            raise GenerationError("chat", "Chat failed")
        return self.chat_text

    async def verify_credential(self, credential):
        self.calls["verify"].append(credential)


class FakeSource(PlaybackSource):
    def __init__(self, context, on_ended):
        self.context = context
        self.on_ended = on_ended
        self.stopped = False

    def stop(self):
        if self.stopped:
            raise PlaybackError("already stopped")
        self.stopped = True

    def finish(self):
        self.on_ended(self)


class FakeContext(PlaybackContext):
    """Playback context that never touches a device."""

    instances = []

    def __init__(self, sample_rate=24000):
        super().__init__(sample_rate)
        self.state = "suspended"
        self.resumed = 0
        self.decoded = []
        self.sources = []
        self.fail_decode = False
        FakeContext.instances.append(self)

    async def resume(self):
        self.resumed += 1
        await super().resume()

    async def decode(self, data):
        self.decoded.append(data)
        if self.fail_decode:
            raise PlaybackError("Unable to decode audio data")
        return await super().decode(data)

    def start(self, audio, on_ended):
        source = FakeSource(self, on_ended)
        self.sources.append(source)
        return source


@pytest.fixture(autouse=True)
def reset_fake_contexts():
    FakeContext.instances = []
    yield


@pytest.fixture(name="ffmpeg")
def ffmpeg_fixture(monkeypatch):
    """Replaces pydub's ffmpeg decode and records what it was asked to unpack."""
    decoded = []

    def from_file(file, format=None, **kwargs):
        data = file.read()
        decoded.append((data, format))
        if not data.startswith(b"fLaC") and not data.startswith(b"ID3"):
            raise CouldntDecodeError("Decoding failed. ffmpeg returned error code: 1")
        return AudioSegment(data=DECODED_PCM, sample_width=2, frame_rate=DECODED_RATE, channels=1)

    monkeypatch.setattr(AudioSegment, "from_file", from_file)
    return decoded


@pytest.fixture(name="generator")
def generator_fixture():
    return FakeGenerator()


@pytest.fixture(name="credentials")
def credentials_fixture():
    return EnvironmentCredentialProvider("test-key")


@pytest.fixture(name="settings")
def settings_fixture():
    return Settings(_env_file=None, GEMINI_API_KEY=None, VERIFY_API_KEYS=False, LOGS_DIR=None)


@pytest.fixture(name="client")
def client_fixture(settings, generator, credentials):
    app = create_app(settings, generator, credentials, FakeContext)
    with TestClient(app) as client:
        yield client


@pytest.fixture(name="locked_client")
def locked_client_fixture(settings, generator):
    app = create_app(settings, generator, EnvironmentCredentialProvider(None), FakeContext)
    with TestClient(app) as client:
        yield client
