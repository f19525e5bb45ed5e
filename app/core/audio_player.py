"""
Audio playback for narrated pages.

Narration arrives as raw bytes: a WAV container, bare 16-bit mono PCM (what
Gemini TTS returns), or a compressed container such as FLAC or MP3 (what
Hugging Face TTS models return), which pydub unpacks through ffmpeg. A
player owns one lazily created playback context and plays at most one
buffer at a time.
"""

import asyncio
import io
import wave
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from app.core.errors import PlaybackError
from app.helpers.logger import get_logger

logger = get_logger("audio")

DEFAULT_SAMPLE_RATE = 24000

# Leading bytes of the compressed containers ffmpeg has to unpack
CONTAINER_SIGNATURES = {
    b"fLaC": "flac",
    b"ID3": "mp3",
    b"OggS": "ogg",
}


@dataclass(frozen=True)
class DecodedAudio:
    frames: bytes
    sample_rate: int
    channels: int = 1
    sample_width: int = 2  # bytes per sample

    @property
    def duration(self) -> float:
        frame_size = self.channels * self.sample_width
        return len(self.frames) / float(frame_size * self.sample_rate)


def container_format(data: bytes) -> Optional[str]:
    for signature, audio_format in CONTAINER_SIGNATURES.items():
        if data.startswith(signature):
            return audio_format
    return None


def decode_container(data: bytes, audio_format: Optional[str] = None) -> DecodedAudio:
    """Unpack compressed audio with pydub; ffmpeg sniffs the format when none is given."""
    try:
        segment = AudioSegment.from_file(io.BytesIO(data), format=audio_format)
    except (CouldntDecodeError, OSError) as e:
        raise PlaybackError(f"Unable to decode audio data: {e}") from e

    return DecodedAudio(
        frames=segment.raw_data,
        sample_rate=segment.frame_rate,
        channels=segment.channels,
        sample_width=segment.sample_width,
    )


def decode_audio(data: bytes, sample_rate: int = DEFAULT_SAMPLE_RATE) -> DecodedAudio:
    """Decode WAV or a known compressed container, or treat the bytes as 16-bit mono PCM."""
    if not data:
        raise PlaybackError("Unable to decode audio data: buffer is empty")

    audio_format = container_format(data)
    if audio_format is not None:
        return decode_container(data, audio_format)

    if data[:4] == b"RIFF":
        try:
            with wave.open(io.BytesIO(data), "rb") as wav:
                return DecodedAudio(
                    frames=wav.readframes(wav.getnframes()),
                    sample_rate=wav.getframerate(),
                    channels=wav.getnchannels(),
                    sample_width=wav.getsampwidth(),
                )
        except (wave.Error, EOFError) as e:
            raise PlaybackError(f"Unable to decode audio data: {e}") from e

    if len(data) % 2:
        raise PlaybackError("Unable to decode audio data: truncated PCM sample")
    return DecodedAudio(frames=data, sample_rate=sample_rate)


def to_wav(audio: DecodedAudio) -> bytes:
    """Wrap decoded frames in a WAV container for browsers."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(audio.channels)
        wav.setsampwidth(audio.sample_width)
        wav.setframerate(audio.sample_rate)
        wav.writeframes(audio.frames)
    return buffer.getvalue()


class PlaybackSource(ABC):
    """One started playback."""

    @abstractmethod
    def stop(self) -> None:
        ...


class PlaybackContext(ABC):
    """Decoder plus output device, reused across plays."""

    state: str = "running"  # running | suspended | closed

    def __init__(self, sample_rate: int = DEFAULT_SAMPLE_RATE):
        self.sample_rate = sample_rate

    async def resume(self) -> None:
        self.state = "running"

    async def decode(self, data: bytes) -> DecodedAudio:
        return decode_audio(data, self.sample_rate)

    @abstractmethod
    def start(
        self, audio: DecodedAudio, on_ended: Callable[[PlaybackSource], None]
    ) -> PlaybackSource:
        ...

    def close(self) -> None:
        self.state = "closed"


class _TimerSource(PlaybackSource):
    def __init__(self, handle: Optional[asyncio.TimerHandle] = None):
        self.handle = handle

    def stop(self) -> None:
        if self.handle is not None:
            self.handle.cancel()
            self.handle = None


class TimerContext(PlaybackContext):
    """Keeps time for a buffer without touching a sound device."""

    def start(self, audio, on_ended):
        loop = asyncio.get_running_loop()
        source = _TimerSource()
        source.handle = loop.call_later(audio.duration, on_ended, source)
        return source


ContextFactory = Callable[[int], PlaybackContext]


def make_context_factory(output: str) -> ContextFactory:
    if output == "none":
        return TimerContext
    elif output == "pyaudio":
        from app.core.pyaudio_output import PyAudioContext

        return PyAudioContext
    raise ValueError(f"Unknown AUDIO_OUTPUT: {output}")


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"


class AudioPlayer:
    """
    Play/stop toggle for one narration.

    Failures while decoding or starting are logged and leave the player
    idle; pressing play again is the way to recover.
    """

    def __init__(self, context_factory: ContextFactory, sample_rate: int = DEFAULT_SAMPLE_RATE):
        self._context_factory = context_factory
        self.sample_rate = sample_rate
        self._context: Optional[PlaybackContext] = None
        self._source: Optional[PlaybackSource] = None
        self.state = PlaybackState.IDLE

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    async def play(self, buffer: Optional[bytes]) -> None:
        if not buffer:
            return

        # At most one playback per player
        self.stop()

        try:
            if self._context is None:
                self._context = self._context_factory(self.sample_rate)

            if self._context.state == "suspended":
                await self._context.resume()

            # Decoding may consume its input, so hand over a copy
            decoded = await self._context.decode(bytes(buffer))

            self._source = self._context.start(decoded, self._on_ended)
            self.state = PlaybackState.PLAYING
        except Exception as e:
            logger.error(f"Error playing audio: {e}")
            self._source = None
            self.state = PlaybackState.IDLE

    def stop(self) -> None:
        if self._source is not None:
            try:
                self._source.stop()
            except PlaybackError:
                pass  # already stopped
            self._source = None
        self.state = PlaybackState.IDLE

    def close(self) -> None:
        self.stop()
        if self._context is not None:
            self._context.close()
            self._context = None

    def _on_ended(self, source: PlaybackSource) -> None:
        # A source replaced by a newer play must not reset the new one
        if source is self._source:
            self._source = None
            self.state = PlaybackState.IDLE
