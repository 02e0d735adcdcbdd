"""
Service — a deployable unit attached to an environment.

Services are immutable and compare by ``id`` only: deploying a new
version of the same service replaces the old entry.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ServiceType(str, Enum):
    WEB_SERVICE = "web_service"
    API = "api"
    DATABASE = "database"
    CACHE = "cache"
    MESSAGE_QUEUE = "message_queue"
    AUTH = "auth"
    PAYMENT = "payment"


class Service(BaseModel):
    """A deployable service identified by ``id``."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    version: str = "1.0.0"
    type: ServiceType = ServiceType.WEB_SERVICE

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Service):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return f"{self.name} v{self.version} [{self.type.value}]"
