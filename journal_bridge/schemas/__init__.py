from journal_bridge.schemas.service import ServiceResponse, ServiceListResponse
from journal_bridge.schemas.common import HealthResponse

__all__ = [
    "ServiceResponse", "ServiceListResponse",
    "HealthResponse"
]
