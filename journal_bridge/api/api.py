from fastapi import APIRouter

from journal_bridge.api.endpoints import health, services
from journal_bridge.api.websocket import websocket_router

api_router = APIRouter()

# Service listing
api_router.include_router(services.router, tags=["services"])

# Journal streaming
api_router.include_router(websocket_router, tags=["stream"])

# System
api_router.include_router(health.router, prefix="/health", tags=["health"])
