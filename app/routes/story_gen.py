from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response, status

from app.core.audio_player import decode_audio, to_wav
from app.core.errors import PlaybackError
from app.models.SessionModel import SessionModel
from app.routes.dependencies import require_unlocked
from app.schemas.StoryRequest import StoryRequest
from app.schemas.StoryResponse import StoryResponse

story_router = APIRouter(prefix="/api/story", tags=["story"])


def _missing_page(index: int) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Page {index} not found")


@story_router.post("", response_model=StoryResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_story(
    request: StoryRequest,
    background_tasks: BackgroundTasks,
    session: SessionModel = Depends(require_unlocked),
):
    """Start writing a story; illustrations follow in the background."""
    generation = session.story.start(request.topic, request.image_size)
    if generation is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Topic must not be empty")

    background_tasks.add_task(session.story.run, generation, request.topic, request.image_size)
    return session.story.view()


@story_router.get("", response_model=StoryResponse)
async def get_story(session: SessionModel = Depends(require_unlocked)):
    return session.story.view()


@story_router.delete("", response_model=StoryResponse)
async def new_story(session: SessionModel = Depends(require_unlocked)):
    session.story.clear()
    return session.story.view()


@story_router.post("/pages/{index}/audio", response_model=StoryResponse)
async def narrate_page(index: int, session: SessionModel = Depends(require_unlocked)):
    try:
        await session.story.narrate(index)
    except IndexError:
        raise _missing_page(index)
    return session.story.view()


@story_router.get("/pages/{index}/audio")
async def page_audio(index: int, session: SessionModel = Depends(require_unlocked)):
    try:
        audio = session.story.audio_for(index)
    except (IndexError, KeyError):
        raise _missing_page(index)

    try:
        wav = to_wav(decode_audio(audio, session.story.sample_rate))
    except PlaybackError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return Response(content=wav, media_type="audio/wav")


@story_router.post("/pages/{index}/play", response_model=StoryResponse)
async def play_page(index: int, session: SessionModel = Depends(require_unlocked)):
    try:
        await session.story.play(index)
    except (IndexError, KeyError):
        raise _missing_page(index)
    return session.story.view()


@story_router.post("/pages/{index}/stop", response_model=StoryResponse)
async def stop_page(index: int, session: SessionModel = Depends(require_unlocked)):
    try:
        session.story.stop(index)
    except IndexError:
        raise _missing_page(index)
    return session.story.view()
