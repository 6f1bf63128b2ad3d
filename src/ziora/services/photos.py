"""Photo store contracts and photo lifecycle actions."""

import logging
import random
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import uuid4

from ziora.domain.errors import (
    AdministrativeError,
    PhotoNotFoundError,
    RegionBlockedError,
)
from ziora.domain.photos import (
    GachaScope,
    PhotoLocation,
    PhotoRecord,
    PhotoStatus,
    SampleDirection,
    UploadedPhoto,
)
from ziora.services.notifications import NotificationService

logger = logging.getLogger(__name__)


class PhotoRepository(Protocol):
    """Persistence interface for photo records."""

    def sample_near(
        self,
        seed: float,
        scope: GachaScope,
        limit: int,
        direction: SampleDirection,
    ) -> list[PhotoRecord]:
        """Return active records ordered by random seed around a pivot."""

    def recent_since(
        self, timestamp: datetime, scope: GachaScope, limit: int
    ) -> list[PhotoRecord]:
        """Return active records created after a timestamp, newest first."""

    def exists(self, ids: list[str]) -> list[str]:
        """Return the ids that still reference active records."""

    def get(self, photo_id: str) -> PhotoRecord | None:
        """Return a record by id, if present."""

    def create(self, record: PhotoRecord) -> PhotoRecord:
        """Persist a new record and return it."""

    def set_status(self, photo_id: str, status: PhotoStatus) -> None:
        """Change the status of a record."""

    def update_location(self, photo_id: str, location: dict[str, object]) -> None:
        """Overwrite location columns of a record."""

    def delete(self, photo_id: str) -> None:
        """Hard-delete a record."""

    def increment_counter(self, photo_id: str, column: str, delta: int) -> None:
        """Atomically add delta to a counter column."""

    def list_by_owner(
        self, owner_id: str, limit: int, before: datetime | None = None
    ) -> list[PhotoRecord]:
        """Return an owner's active records, newest first."""

    def latest(self) -> PhotoRecord | None:
        """Return the most recently created active record."""


class BlobStore(Protocol):
    """Storage interface for image bytes."""

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Store bytes at a path."""

    def exists(self, path: str) -> bool:
        """Return True when an object exists at the path."""

    def delete(self, path: str) -> None:
        """Remove the object at the path."""


class SocialRepository(Protocol):
    """Persistence interface for likes, reports and blocks."""

    def add_like(
        self,
        photo_id: str,
        liker_id: str,
        liker_country: str,
        liker_country_code: str | None,
    ) -> bool:
        """Record a like and return True when it did not exist yet."""

    def remove_like(self, photo_id: str, liker_id: str) -> bool:
        """Remove a like and return True when one existed."""

    def create_report(self, photo_id: str, reporter_id: str, reason: str) -> None:
        """Store a moderation report."""

    def block_user(self, user_id: str, blocked_user_id: str) -> None:
        """Store a block relation."""


LIKE_COUNT = "like_count"
IMPRESSION_COUNT = "impression_count"


@dataclass
class PhotoService:
    """Application service for photo uploads, edits and social actions."""

    repository: PhotoRepository
    blob_store: BlobStore
    social_repository: SocialRepository
    notification_service: NotificationService
    blocked_country_codes: set[str] = field(default_factory=set)
    photo_ttl_days: int = 7
    rng: random.Random = field(default_factory=random.Random)

    def upload_photo(
        self,
        owner_id: str,
        image: bytes,
        location: PhotoLocation | None = None,
        date_text: str | None = None,
    ) -> UploadedPhoto:
        """Store the image and create an active record for it."""
        country_code = location.country_code if location else None
        if country_code and country_code.upper() in self.blocked_country_codes:
            raise RegionBlockedError(country_code)
        if not image:
            raise AdministrativeError("Failed to process the image.")

        photo_id = str(uuid4())
        image_ref = f"photos/{owner_id}/{photo_id}.jpg"
        try:
            self.blob_store.upload(image_ref, image, "image/jpeg")
        except Exception as exc:
            logger.exception("Image upload failed for %s", photo_id)
            raise AdministrativeError("Failed to upload image.") from exc

        now = datetime.now(tz=UTC)
        record = PhotoRecord(
            id=photo_id,
            owner_id=owner_id,
            image_ref=image_ref,
            location=location or PhotoLocation("Unknown", "Unknown", "Unknown"),
            created_at=now,
            expire_at=now + timedelta(days=self.photo_ttl_days),
            random_seed=self.rng.random(),
            date_text=date_text,
        )
        try:
            self.repository.create(record)
        except Exception as exc:
            logger.exception("Photo record creation failed for %s", photo_id)
            raise AdministrativeError("Failed to save photo.") from exc
        return UploadedPhoto(id=photo_id, image_ref=image_ref)

    def get_photo(self, photo_id: str) -> PhotoRecord:
        """Return a record or raise when it is missing."""
        record = self.repository.get(photo_id)
        if record is None:
            raise PhotoNotFoundError(photo_id)
        return record

    def validate_existence(self, ids: list[str]) -> list[str]:
        """Return the ids that still point at active records."""
        if not ids:
            return []
        return self.repository.exists(list(dict.fromkeys(ids)))

    def list_owner_photos(
        self, owner_id: str, limit: int = 20, before: datetime | None = None
    ) -> list[PhotoRecord]:
        """Return a page of an owner's photos."""
        return self.repository.list_by_owner(owner_id, limit, before)

    def latest_photo(self) -> PhotoRecord | None:
        """Return the newest active photo."""
        return self.repository.latest()

    def update_location(  # noqa: PLR0913
        self,
        photo_id: str,
        owner_id: str,
        country: str,
        region: str,
        city: str,
        sub_locality: str | None,
    ) -> None:
        """Edit or redact the place data of an owned photo."""
        self._require_owner(photo_id, owner_id)
        self.repository.update_location(
            photo_id,
            {
                "country": country,
                "region": region,
                "city": city,
                "sub_locality": sub_locality or "",
            },
        )

    def delete_photo(self, photo_id: str, owner_id: str) -> None:
        """Delete an owned photo and its image."""
        record = self._require_owner(photo_id, owner_id)
        try:
            self.repository.delete(photo_id)
            self.blob_store.delete(record.image_ref)
        except Exception as exc:
            logger.exception("Delete failed for %s", photo_id)
            raise AdministrativeError("Failed to delete photo.") from exc

    async def like(
        self,
        photo_id: str,
        liker_id: str,
        liker_country: str,
        liker_country_code: str | None = None,
    ) -> bool:
        """Like a photo; returns True when a new like was recorded."""
        record = self.get_photo(photo_id)
        if not record.owner_id or record.owner_id == liker_id:
            logger.info("Like skipped for %s: self-like or missing owner", photo_id)
            return False
        created = self.social_repository.add_like(
            photo_id, liker_id, liker_country, liker_country_code
        )
        if not created:
            return False
        self.repository.increment_counter(photo_id, LIKE_COUNT, 1)
        await self.notification_service.notify_like(record, liker_id, liker_country)
        return True

    def unlike(self, photo_id: str, liker_id: str) -> bool:
        """Withdraw a like; returns True when one was removed."""
        removed = self.social_repository.remove_like(photo_id, liker_id)
        if removed:
            self.repository.increment_counter(photo_id, LIKE_COUNT, -1)
        return removed

    def record_impression(self, photo_id: str) -> None:
        """Count one presentation of a photo."""
        self.repository.increment_counter(photo_id, IMPRESSION_COUNT, 1)

    def report(self, photo_id: str, reporter_id: str, reason: str) -> None:
        """File a moderation report against a photo."""
        try:
            self.social_repository.create_report(photo_id, reporter_id, reason)
        except Exception as exc:
            logger.exception("Report failed for %s", photo_id)
            raise AdministrativeError("Failed to send report.") from exc

    def block_user(self, user_id: str, blocked_user_id: str) -> None:
        """Block another account."""
        if user_id == blocked_user_id:
            raise AdministrativeError("You cannot block yourself.")
        try:
            self.social_repository.block_user(user_id, blocked_user_id)
        except Exception as exc:
            logger.exception("Block failed for %s", user_id)
            raise AdministrativeError("Failed to block user.") from exc

    def set_status(self, photo_id: str, status: PhotoStatus) -> None:
        """Moderation switch between active and removed."""
        self.get_photo(photo_id)
        self.repository.set_status(photo_id, status)

    def cleanup_broken_photo(self, photo_id: str) -> dict[str, object]:
        """Delete a record whose image no longer exists in storage."""
        record = self.repository.get(photo_id)
        if record is None:
            return {"success": True, "message": "Document already deleted."}
        if not record.image_ref:
            self.repository.delete(photo_id)
            return {"success": True, "message": "Deleted photo with no image path."}
        if self.blob_store.exists(record.image_ref):
            return {"success": False, "message": "Image exists."}
        self.repository.delete(photo_id)
        logger.info("Cleaned up broken photo: %s", photo_id)
        return {"success": True, "message": "Deleted broken photo document."}

    def _require_owner(self, photo_id: str, owner_id: str) -> PhotoRecord:
        record = self.get_photo(photo_id)
        if record.owner_id != owner_id:
            raise AdministrativeError("You can only change your own photos.")
        return record
