"""In-process gacha client that calls the services directly."""

from dataclasses import dataclass
from datetime import datetime

from ziora.domain.gacha import SelectionOutcome, SelectionRequest
from ziora.services.orchestrator import GachaClient
from ziora.services.photos import PhotoService
from ziora.services.selection import SelectionService


@dataclass
class LocalGachaClient(GachaClient):
    """Runs selection in the same process as the orchestrator."""

    selection_service: SelectionService
    photo_service: PhotoService

    async def select(
        self, request: SelectionRequest, last_reset_at: datetime | None
    ) -> SelectionOutcome:
        """Delegate to the selection service."""
        return self.selection_service.select(request, last_reset_at)

    async def record_impression(self, photo_id: str) -> None:
        """Delegate to the photo service."""
        self.photo_service.record_impression(photo_id)
