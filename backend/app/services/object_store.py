"""
QPaperHub Backend — Abstract Object Store Interface
=====================================================

What:  Contract for the service that holds uploaded paper files.
How:   Concrete stores inherit from ObjectStore:
         - DriveObjectStore (app/services/drive_service.py): Google Drive v3
         - LocalObjectStore (app/services/local_store.py): local directory
       `build_object_store()` picks one from settings at startup.
Who:   PaperService (upload/delete), health route, lifespan.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from fastapi import Request

from app.config import Settings


@dataclass(frozen=True)
class StoredObject:
    """Result of a successful upload."""
    object_id: str
    public_url: str


class ObjectStore(ABC):
    """
    Abstract interface for file hosting.

    Contract:
        - store() uploads bytes and returns the object id and a URL anyone can read
          once make_public() has been applied
        - Implementations handle their own retry logic and error translation;
          every implementation-specific failure surfaces as UpstreamServiceError
        - delete() of an id that no longer exists is not an error
    """

    backend_name: str = "abstract"

    @abstractmethod
    async def store(self, content: bytes, filename: str, mime_type: str) -> StoredObject:
        """
        Upload `content` under the display name `filename`.

        Raises:
            UpstreamServiceError: the store rejected or failed the upload
            CircuitBreakerOpenError: calls are suspended after repeated failures
        """
        ...

    @abstractmethod
    async def make_public(self, object_id: str) -> None:
        """Grant read access to anyone with the link."""
        ...

    @abstractmethod
    async def delete(self, object_id: str) -> None:
        """Remove the object."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability probe; never raises."""
        ...

    def status(self) -> str:
        """Status label for /health when the probe succeeds."""
        return "available"


def build_object_store(settings: Settings) -> ObjectStore:
    """Construct the object store selected by OBJECT_STORE_BACKEND."""
    if settings.object_store_backend == "local":
        from app.services.local_store import LocalObjectStore
        return LocalObjectStore(
            storage_root=settings.storage_root,
            public_base_url=settings.public_base_url,
        )

    from app.services.drive_service import DriveObjectStore
    return DriveObjectStore(settings)


# ── Object Store Dependency ───────────────────────────────────────────────
def get_object_store(request: Request) -> ObjectStore:
    """FastAPI dependency returning the store built by the lifespan."""
    return request.app.state.object_store
