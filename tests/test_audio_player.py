import asyncio
import io
import wave

import pytest

from app.core.audio_player import (
    AudioPlayer,
    PlaybackState,
    TimerContext,
    decode_audio,
    make_context_factory,
    to_wav,
)
from app.core.errors import PlaybackError

from conftest import DECODED_PCM, DECODED_RATE, FLAC_AUDIO, PCM_AUDIO, FakeContext


class TestDecodeAudio:
    def test_raw_pcm(self):
        audio = decode_audio(PCM_AUDIO, 24000)
        assert audio.sample_rate == 24000
        assert audio.channels == 1
        assert audio.duration == pytest.approx(0.1)

    def test_wav_roundtrip_keeps_format(self):
        wav = to_wav(decode_audio(PCM_AUDIO, 24000))
        with wave.open(io.BytesIO(wav), "rb") as reader:
            assert reader.getframerate() == 24000
            assert reader.getnframes() == 2400
        assert decode_audio(wav).frames == PCM_AUDIO

    @pytest.mark.parametrize("data", [b"", b"\x00\x00\x00"])
    def test_undecodable(self, data):
        with pytest.raises(PlaybackError):
            decode_audio(data)

    def test_flac_is_unpacked_not_played_as_pcm(self, ffmpeg):
        audio = decode_audio(FLAC_AUDIO)

        assert ffmpeg == [(FLAC_AUDIO, "flac")]
        assert audio.frames == DECODED_PCM
        assert audio.sample_rate == DECODED_RATE

    def test_odd_length_mp3_is_unpacked(self, ffmpeg):
        mp3 = b"ID3\x04\x00" + b"\xff" * 100
        assert decode_audio(mp3).frames == DECODED_PCM
        assert ffmpeg[0][1] == "mp3"

    def test_broken_container(self, ffmpeg):
        with pytest.raises(PlaybackError):
            decode_audio(b"OggS" + b"\x00" * 10)

    def test_unknown_output(self):
        with pytest.raises(ValueError):
            make_context_factory("speakers")


class TestAudioPlayer:
    def test_play_and_natural_end(self):
        player = AudioPlayer(FakeContext)

        asyncio.run(player.play(PCM_AUDIO))
        assert player.state == PlaybackState.PLAYING

        context = FakeContext.instances[0]
        assert context.resumed == 1
        context.sources[0].finish()
        assert player.state == PlaybackState.IDLE

    def test_context_created_once(self):
        player = AudioPlayer(FakeContext)
        asyncio.run(player.play(PCM_AUDIO))
        asyncio.run(player.play(PCM_AUDIO))
        assert len(FakeContext.instances) == 1

    def test_play_while_playing_keeps_one_playback(self):
        player = AudioPlayer(FakeContext)
        asyncio.run(player.play(PCM_AUDIO))
        asyncio.run(player.play(PCM_AUDIO))

        first, second = FakeContext.instances[0].sources
        assert first.stopped is True
        assert second.stopped is False
        assert player.is_playing

        # The replaced source finishing late must not stop the new one
        first.finish()
        assert player.is_playing

    def test_decode_gets_a_copy(self):
        buffer = bytearray(PCM_AUDIO)
        player = AudioPlayer(FakeContext)
        asyncio.run(player.play(buffer))
        decoded_input = FakeContext.instances[0].decoded[0]
        assert decoded_input == bytes(buffer)
        assert decoded_input is not buffer

    def test_stop_when_idle(self):
        player = AudioPlayer(FakeContext)
        player.stop()
        player.stop()
        assert player.state == PlaybackState.IDLE

    def test_stop_tolerates_stopped_source(self):
        player = AudioPlayer(FakeContext)
        asyncio.run(player.play(PCM_AUDIO))
        FakeContext.instances[0].sources[0].stopped = True
        player.stop()
        assert player.state == PlaybackState.IDLE

    def test_decode_failure_returns_to_idle(self):
        def failing_context(sample_rate):
            context = FakeContext(sample_rate)
            context.fail_decode = True
            return context

        player = AudioPlayer(failing_context)
        asyncio.run(player.play(PCM_AUDIO))
        assert player.state == PlaybackState.IDLE

    def test_empty_buffer_is_ignored(self):
        player = AudioPlayer(FakeContext)
        asyncio.run(player.play(b""))
        assert FakeContext.instances == []

    def test_timer_context_ends_on_its_own(self):
        async def scenario():
            player = AudioPlayer(TimerContext)
            await player.play(b"\x00\x00" * 24)  # 1ms
            playing = player.is_playing
            await asyncio.sleep(0.05)
            return playing, player.state

        playing, state = asyncio.run(scenario())
        assert playing is True
        assert state == PlaybackState.IDLE
