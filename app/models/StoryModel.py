import asyncio
from typing import Dict, Optional

from app.core.audio_player import AudioPlayer, ContextFactory, TimerContext
from app.core.credentials import CredentialProvider
from app.core.StoryGenerator import StoryGenerator
from app.helpers.logger import get_logger
from app.schemas.StoryPage import ImageSize, Story
from app.schemas.StoryResponse import LOADING_STEPS, StoryPhase, StoryResponse

logger = get_logger("story")

STORY_FAILED_ALERT = "Oops! The magic wand sputtered. Please try again."
SPEECH_FAILED_ALERT = "Couldn't generate voice for this page."


class StoryModel:
    """
    Drives one story at a time: write, illustrate every page, then narrate
    pages on request.

    Each submission gets a generation tag. Work started for an older tag
    is discarded when it finishes instead of being merged into the newer
    story.
    """

    def __init__(
        self,
        generator: StoryGenerator,
        credentials: CredentialProvider,
        context_factory: ContextFactory = TimerContext,
        sample_rate: int = 24000,
    ):
        self.generator = generator
        self.credentials = credentials
        self.context_factory = context_factory
        self.sample_rate = sample_rate

        self.phase = StoryPhase.IDLE
        self.image_size = ImageSize.SIZE_1K
        self.story: Optional[Story] = None
        self.alert: Optional[str] = None

        self.page_audio: Dict[int, bytes] = {}
        self.loading_audio: Dict[int, bool] = {}
        self.players: Dict[int, AudioPlayer] = {}

        self._generation = 0

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _reset(self) -> None:
        self._generation += 1
        self.story = None
        self.alert = None
        self.page_audio = {}
        self.loading_audio = {}
        for player in self.players.values():
            player.close()
        self.players = {}

    # ----- story -----

    def start(self, topic: str, image_size: ImageSize = ImageSize.SIZE_1K) -> Optional[int]:
        """Begin a new story; returns its generation tag, or None for a blank topic."""
        if not topic.strip():
            return None

        self._reset()
        self.image_size = image_size
        self.phase = StoryPhase.WRITING
        logger.info(f"[Story:{self._generation}] writing | topic={topic!r} size={image_size.value}")
        return self._generation

    async def run(self, generation: int, topic: str, image_size: ImageSize) -> None:
        try:
            credential = self.credentials.current()
            story = await self.generator.generate_story(credential, topic)
        except Exception as e:
            logger.error(f"[Story:{generation}] Error generating story: {e}")
            if self._is_current(generation):
                self.alert = STORY_FAILED_ALERT
                self.phase = StoryPhase.IDLE
            return

        if not self._is_current(generation):
            logger.info(f"[Story:{generation}] superseded, dropping story text")
            return

        self.phase = StoryPhase.ILLUSTRATING
        illustrated = await self._illustrate(generation, story, image_size)

        if not self._is_current(generation):
            logger.info(f"[Story:{generation}] superseded, dropping illustrations")
            return

        self.story = illustrated
        self.phase = StoryPhase.IDLE
        drawn = sum(1 for page in illustrated.pages if page.image_url)
        logger.info(f"[Story:{generation}] ready | {drawn}/{len(illustrated.pages)} pages illustrated")

    async def generate(self, topic: str, image_size: ImageSize = ImageSize.SIZE_1K) -> Optional[Story]:
        generation = self.start(topic, image_size)
        if generation is None:
            return None
        await self.run(generation, topic, image_size)
        return self.story if self._is_current(generation) else None

    async def _illustrate_page(self, generation: int, index: int, prompt: str, size: ImageSize):
        try:
            credential = self.credentials.current()
            return await self.generator.generate_illustration(credential, prompt, size)
        except Exception as e:
            # The page keeps its text
            logger.error(f"[Story:{generation}] Failed to generate image for page {index}: {e}")
            return None

    async def _illustrate(self, generation: int, story: Story, size: ImageSize) -> Story:
        tasks = {
            index: asyncio.create_task(
                self._illustrate_page(generation, index, page.image_prompt, size)
            )
            for index, page in enumerate(story.pages)
        }
        await asyncio.gather(*tasks.values())

        # Results attach by page index, whatever order they finished in
        for index, task in tasks.items():
            image_url = task.result()
            if image_url:
                story = story.with_image(index, image_url)
        return story

    def clear(self) -> None:
        """Drop the displayed story ("New Story")."""
        self._reset()
        self.phase = StoryPhase.IDLE

    # ----- narration -----

    def _page_text(self, index: int) -> str:
        if self.story is None or not 0 <= index < len(self.story.pages):
            raise IndexError(f"No page {index} in the current story")
        return self.story.pages[index].text

    async def narrate(self, index: int) -> Optional[bytes]:
        """Generate speech for one page once; later calls return the cached audio."""
        text = self._page_text(index)

        if index in self.page_audio:
            return self.page_audio[index]
        if self.loading_audio.get(index):
            return None

        generation = self._generation
        self.loading_audio[index] = True
        try:
            credential = self.credentials.current()
            audio = await self.generator.generate_speech(credential, text)
            if self._is_current(generation):
                self.page_audio[index] = audio
            return audio
        except Exception as e:
            logger.error(f"Error generating speech for page {index}: {e}")
            if self._is_current(generation):
                self.alert = SPEECH_FAILED_ALERT
            return None
        finally:
            if self._is_current(generation):
                self.loading_audio[index] = False

    def audio_for(self, index: int) -> bytes:
        self._page_text(index)
        if index not in self.page_audio:
            raise KeyError(f"Page {index} has not been narrated")
        return self.page_audio[index]

    def player_for(self, index: int) -> AudioPlayer:
        if index not in self.players:
            self.players[index] = AudioPlayer(self.context_factory, self.sample_rate)
        return self.players[index]

    async def play(self, index: int) -> AudioPlayer:
        audio = self.audio_for(index)
        player = self.player_for(index)
        await player.play(audio)
        return player

    def stop(self, index: int) -> AudioPlayer:
        self._page_text(index)
        player = self.player_for(index)
        player.stop()
        return player

    # ----- view -----

    def view(self) -> StoryResponse:
        return StoryResponse(
            phase=self.phase,
            loading_step=LOADING_STEPS[self.phase],
            image_size=self.image_size,
            story=self.story if self.phase == StoryPhase.IDLE else None,
            audio_ready=sorted(self.page_audio),
            audio_loading=sorted(i for i, loading in self.loading_audio.items() if loading),
            playing=sorted(i for i, player in self.players.items() if player.is_playing),
            alert=self.alert,
        )
