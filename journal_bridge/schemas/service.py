from pydantic import BaseModel
from typing import List

from journal_bridge.services.logs.base import ServiceDescriptor, ServiceOrigin


class ServiceResponse(BaseModel):
    identifier: str
    display_name: str
    origin: ServiceOrigin

    @classmethod
    def from_descriptor(cls, descriptor: ServiceDescriptor) -> "ServiceResponse":
        return cls(
            identifier=descriptor.identifier,
            display_name=descriptor.display_name,
            origin=descriptor.origin
        )


class ServiceListResponse(BaseModel):
    services: List[ServiceResponse]
    count: int
