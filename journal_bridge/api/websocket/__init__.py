from journal_bridge.api.websocket.journal import router as websocket_router

__all__ = ["websocket_router"]
