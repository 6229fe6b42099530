from fastapi import Request

from journal_bridge.api.websocket.registry import SessionRegistry
from journal_bridge.core.config import Settings
from journal_bridge.services.logs import ServiceEnumerator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_enumerator(request: Request) -> ServiceEnumerator:
    return request.app.state.enumerator


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions
