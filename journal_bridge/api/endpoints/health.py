from datetime import datetime

from fastapi import APIRouter, Depends

from journal_bridge.api.deps import get_app_settings, get_session_registry
from journal_bridge.api.websocket.registry import SessionRegistry
from journal_bridge.core.config import Settings
from journal_bridge.schemas.common import HealthResponse


router = APIRouter()


@router.get("", response_model=HealthResponse)
async def basic_health_check(
    settings: Settings = Depends(get_app_settings),
    sessions: SessionRegistry = Depends(get_session_registry)
):
    return HealthResponse(
        status="healthy",
        service=settings.app_name,
        version=settings.app_version,
        active_sessions=sessions.get_session_count(),
        user_scope=settings.user_scope,
        docker=settings.docker,
        timestamp=datetime.utcnow().isoformat()
    )


@router.get("/live")
async def liveness_check():
    return {"alive": True, "timestamp": datetime.utcnow().isoformat()}
