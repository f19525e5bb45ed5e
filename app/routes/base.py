from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.errors import CredentialSelectionError
from app.models.SessionModel import SessionModel
from app.routes.dependencies import get_session
from app.schemas.KeySelection import GateStatus, KeyRequest

base_router = APIRouter(tags=["base"])


@base_router.get("/")
async def welcome(request: Request):
    settings = request.app.state.settings
    return {
        "app_name": settings.APP_NAME,
        "app_version": settings.APP_VERSION,
        "provider": settings.GEN_PROVIDER,
    }


@base_router.get("/api/key", response_model=GateStatus)
async def key_status(session: SessionModel = Depends(get_session)):
    return await session.gate.check()


@base_router.post("/api/key", response_model=GateStatus)
async def select_key(body: KeyRequest, session: SessionModel = Depends(get_session)):
    try:
        return await session.gate.select(body.api_key)
    except CredentialSelectionError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=session.gate.alert,
        )
