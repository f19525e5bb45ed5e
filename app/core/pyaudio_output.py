"""
Playback on the host's sound device through PortAudio.
"""

import asyncio

import pyaudio

from app.core.audio_player import DEFAULT_SAMPLE_RATE, DecodedAudio, PlaybackContext, PlaybackSource
from app.core.errors import PlaybackError


class _StreamSource(PlaybackSource):
    def __init__(self, audio: DecodedAudio):
        self.audio = audio
        self.position = 0
        self.stream = None

    def read(self, frame_count: int) -> bytes:
        size = frame_count * self.audio.channels * self.audio.sample_width
        chunk = self.audio.frames[self.position:self.position + size]
        self.position += len(chunk)
        return chunk

    def stop(self) -> None:
        if self.stream is None:
            return
        try:
            self.stream.stop_stream()
            self.stream.close()
        except OSError as e:
            raise PlaybackError(str(e)) from e
        finally:
            self.stream = None


class PyAudioContext(PlaybackContext):
    def __init__(self, sample_rate: int = DEFAULT_SAMPLE_RATE):
        super().__init__(sample_rate)
        self._audio = pyaudio.PyAudio()

    async def resume(self) -> None:
        if self.state == "closed":
            self._audio = pyaudio.PyAudio()
        self.state = "running"

    def start(self, audio, on_ended):
        loop = asyncio.get_running_loop()
        source = _StreamSource(audio)

        def finished():
            source.stop()
            on_ended(source)

        def callback(in_data, frame_count, time_info, status):
            chunk = source.read(frame_count)
            if source.position >= len(audio.frames):
                # PortAudio thread; hand completion back to the event loop
                loop.call_soon_threadsafe(finished)
                return chunk, pyaudio.paComplete
            return chunk, pyaudio.paContinue

        try:
            source.stream = self._audio.open(
                format=self._audio.get_format_from_width(audio.sample_width),
                channels=audio.channels,
                rate=audio.sample_rate,
                output=True,
                stream_callback=callback,
            )
        except OSError as e:
            raise PlaybackError(f"Unable to open audio output: {e}") from e
        return source

    def close(self) -> None:
        self._audio.terminate()
        super().close()
