"""
WebSocket endpoint streaming journal output.
"""

from typing import Optional

from fastapi import APIRouter, WebSocket, status

from journal_bridge.api.websocket.stream_session import (
    CLOSE_TRY_AGAIN_LATER,
    StreamSession,
)
from journal_bridge.core.logging import logger
from journal_bridge.services.logs import ScopeMode, StreamRequest


router = APIRouter()


@router.websocket("/ws")
async def journal_stream(websocket: WebSocket, services: Optional[str] = None):
    """
    Stream journal entries for the selected services.

    ``services`` is a JSON array of identifiers from ``/list-services``;
    missing or malformed input streams every service.
    """
    state = websocket.app.state
    settings = state.settings

    request = StreamRequest.from_query(
        services,
        scope_mode=ScopeMode.USER if settings.user_scope else ScopeMode.SYSTEM,
        container_mode=settings.docker
    )
    session = StreamSession(
        websocket=websocket,
        supervisor=state.supervisor,
        request=request,
        backlog_lines=settings.backlog_lines,
        write_timeout=settings.write_timeout
    )

    if not state.sessions.register(session):
        logger.warning(f"Rejecting stream session: {settings.max_sessions} sessions already active")
        # A close code only reaches the client on an accepted connection
        await websocket.accept()
        await websocket.close(code=CLOSE_TRY_AGAIN_LATER, reason="too many sessions")
        return

    try:
        await session.run()
    finally:
        state.sessions.unregister(session)


@router.websocket("/{path:path}")
async def unknown_stream(websocket: WebSocket, path: str):
    """Refuse upgrades to any other path before they reach the static UI."""
    logger.debug(f"Rejecting WebSocket upgrade to unknown path /{path}")
    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
