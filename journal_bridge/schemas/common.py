from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    active_sessions: int
    user_scope: bool
    docker: bool
    timestamp: str
