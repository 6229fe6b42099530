from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from journal_bridge.api.deps import get_app_settings, get_enumerator
from journal_bridge.core.config import Settings
from journal_bridge.schemas.service import ServiceListResponse, ServiceResponse
from journal_bridge.services.logs import ServiceEnumerator


router = APIRouter()


@router.get("/list-services", response_class=PlainTextResponse)
async def list_services_text(
    settings: Settings = Depends(get_app_settings),
    enumerator: ServiceEnumerator = Depends(get_enumerator)
):
    """List streamable services, one ``<identifier> <displayName>`` per line."""
    services = await enumerator.list_services(
        user_scope=settings.user_scope,
        merge_containers=settings.docker
    )
    return PlainTextResponse("".join(f"{service.to_line()}\n" for service in services))


@router.get("/api/services", response_model=ServiceListResponse)
async def list_services(
    settings: Settings = Depends(get_app_settings),
    enumerator: ServiceEnumerator = Depends(get_enumerator)
):
    services = await enumerator.list_services(
        user_scope=settings.user_scope,
        merge_containers=settings.docker
    )
    return ServiceListResponse(
        services=[ServiceResponse.from_descriptor(service) for service in services],
        count=len(services)
    )
