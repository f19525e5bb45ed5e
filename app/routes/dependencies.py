from fastapi import Depends, HTTPException, Request, status

from app.models.SessionModel import SessionModel


def get_session(request: Request) -> SessionModel:
    return request.app.state.session


def require_unlocked(session: SessionModel = Depends(get_session)) -> SessionModel:
    """Nothing behind the gate runs until a key is selected."""
    if not session.gate.unlocked:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unlock StoryTime with an API key first",
        )
    return session
