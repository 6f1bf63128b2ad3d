"""Client-side upload flow with user cancellation."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from ziora.domain.errors import AdministrativeError, OfflineError
from ziora.domain.photos import PhotoLocation, UploadedPhoto

logger = logging.getLogger(__name__)


class UploadClient(Protocol):
    """Interface to the photo upload endpoint."""

    async def upload_photo(
        self,
        image: bytes,
        location: PhotoLocation | None,
        date_text: str | None,
    ) -> UploadedPhoto:
        """Upload an image with its place data."""


class UploadStatus(str, Enum):
    """States of a single upload."""

    IDLE = "idle"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class UploadController:
    """Runs one upload at a time and honours cancellation.

    A cancelled upload stays cancelled even when the backend write
    completes afterwards.
    """

    client: UploadClient
    status: UploadStatus = field(default=UploadStatus.IDLE, init=False)
    error_message: str | None = field(default=None, init=False)
    uploaded: UploadedPhoto | None = field(default=None, init=False)
    _attempt: int = field(default=0, init=False)

    @property
    def is_uploading(self) -> bool:
        return self.status is UploadStatus.UPLOADING

    async def upload(
        self,
        image: bytes,
        location: PhotoLocation | None = None,
        date_text: str | None = None,
    ) -> UploadStatus:
        """Upload an image; returns the final status of this attempt."""
        if self.is_uploading:
            return self.status
        self.status = UploadStatus.UPLOADING
        self.error_message = None
        self.uploaded = None
        self._attempt += 1
        attempt = self._attempt
        try:
            uploaded = await self.client.upload_photo(image, location, date_text)
        except (AdministrativeError, OfflineError) as exc:
            return self._fail(attempt, str(exc))
        except Exception:
            logger.exception("Upload failed")
            return self._fail(attempt, "An unknown error occurred.")
        if attempt != self._attempt:
            logger.info("Upload %s finished after cancellation; ignoring", uploaded.id)
            return UploadStatus.CANCELLED
        self.uploaded = uploaded
        self.status = UploadStatus.SUCCEEDED
        return self.status

    def cancel(self) -> None:
        """Abandon the running upload."""
        if not self.is_uploading:
            return
        self._attempt += 1
        self.status = UploadStatus.CANCELLED
        self.error_message = "Upload cancelled."

    def dismiss_error(self) -> None:
        """Clear the user-visible message."""
        self.error_message = None

    def _fail(self, attempt: int, message: str) -> UploadStatus:
        if attempt != self._attempt:
            return UploadStatus.CANCELLED
        self.status = UploadStatus.FAILED
        self.error_message = message
        return self.status
