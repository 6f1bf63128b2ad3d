"""Supabase-backed photo store."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from ziora.domain.photos import (
    GachaScope,
    PhotoLocation,
    PhotoRecord,
    PhotoStatus,
    SampleDirection,
)
from ziora.services.photos import PhotoRepository

_TABLE = "photos"
_COUNTER_COLUMNS = {"like_count", "impression_count"}


@dataclass
class SupabasePhotoRepository(PhotoRepository):
    """Supabase implementation of the photo store."""

    client: Client

    def sample_near(
        self,
        seed: float,
        scope: GachaScope,
        limit: int,
        direction: SampleDirection,
    ) -> list[PhotoRecord]:
        """Return active rows nearest to the seed on the random_seed index."""
        query = self._active(scope)
        if direction is SampleDirection.ASCENDING:
            query = query.gte("random_seed", seed).order("random_seed")
        else:
            query = query.lt("random_seed", seed).order("random_seed", desc=True)
        response = query.limit(limit).execute()
        return [_parse_photo(row) for row in response.data or []]

    def recent_since(
        self, timestamp: datetime, scope: GachaScope, limit: int
    ) -> list[PhotoRecord]:
        """Return active rows created after the timestamp, newest first."""
        response = (
            self._active(scope)
            .gt("created_at", timestamp.isoformat())
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_photo(row) for row in response.data or []]

    def exists(self, ids: list[str]) -> list[str]:
        """Return ids of rows that are still active."""
        if not ids:
            return []
        response = (
            self.client.table(_TABLE)
            .select("id")
            .eq("status", PhotoStatus.ACTIVE.value)
            .in_("id", ids)
            .execute()
        )
        found = {str(row["id"]) for row in response.data or []}
        return [photo_id for photo_id in ids if photo_id in found]

    def get(self, photo_id: str) -> PhotoRecord | None:
        """Return a photo by id, if present."""
        response = (
            self.client.table(_TABLE).select("*").eq("id", photo_id).limit(1).execute()
        )
        if not response.data:
            return None
        return _parse_photo(response.data[0])

    def create(self, record: PhotoRecord) -> PhotoRecord:
        """Insert a photo row and return it."""
        response = self.client.table(_TABLE).insert(_serialize_photo(record)).execute()
        if not response.data:
            raise RuntimeError("Failed to create photo")
        return _parse_photo(response.data[0])

    def set_status(self, photo_id: str, status: PhotoStatus) -> None:
        """Update the status column."""
        self.client.table(_TABLE).update({"status": status.value}).eq(
            "id", photo_id
        ).execute()

    def update_location(self, photo_id: str, location: dict[str, object]) -> None:
        """Overwrite location columns."""
        self.client.table(_TABLE).update(location).eq("id", photo_id).execute()

    def delete(self, photo_id: str) -> None:
        """Delete a photo row."""
        self.client.table(_TABLE).delete().eq("id", photo_id).execute()

    def increment_counter(self, photo_id: str, column: str, delta: int) -> None:
        """Add delta to a counter inside the database in one statement."""
        if column not in _COUNTER_COLUMNS:
            raise ValueError(f"Unknown counter column: {column}")
        self.client.rpc(
            "increment_photo_counter",
            {"photo_id": photo_id, "counter": column, "delta": delta},
        ).execute()

    def list_by_owner(
        self, owner_id: str, limit: int, before: datetime | None = None
    ) -> list[PhotoRecord]:
        """Return an owner's active rows, newest first."""
        query = (
            self.client.table(_TABLE)
            .select("*")
            .eq("user_id", owner_id)
            .eq("status", PhotoStatus.ACTIVE.value)
        )
        if before is not None:
            query = query.lt("created_at", before.isoformat())
        response = query.order("created_at", desc=True).limit(limit).execute()
        return [_parse_photo(row) for row in response.data or []]

    def latest(self) -> PhotoRecord | None:
        """Return the newest active row."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("status", PhotoStatus.ACTIVE.value)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_photo(response.data[0])

    def _active(self, scope: GachaScope):  # type: ignore[no-untyped-def]
        query = (
            self.client.table(_TABLE)
            .select("*")
            .eq("status", PhotoStatus.ACTIVE.value)
        )
        for column, value in scope.filters().items():
            query = query.eq(column, value)
        return query


def _parse_datetime(raw: object) -> datetime | None:
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return None


def _optional_float(raw: object) -> float | None:
    return float(raw) if isinstance(raw, int | float) else None


def _parse_photo(row: dict[str, object]) -> PhotoRecord:
    """Parse a photos row into a domain model."""
    sub_locality = row.get("sub_locality")
    location = PhotoLocation(
        country=str(row.get("country") or ""),
        region=str(row.get("region") or ""),
        city=str(row.get("city") or ""),
        sub_locality=str(sub_locality) if sub_locality else None,
        country_code=row.get("country_code") or None,
        latitude=_optional_float(row.get("latitude")),
        longitude=_optional_float(row.get("longitude")),
    )
    created_at = _parse_datetime(row.get("created_at"))
    return PhotoRecord(
        id=str(row["id"]),
        owner_id=str(row.get("user_id", "")),
        image_ref=str(row.get("image_path") or ""),
        location=location,
        created_at=created_at or datetime.fromtimestamp(0, tz=UTC),
        expire_at=_parse_datetime(row.get("expire_at")),
        random_seed=float(row.get("random_seed", 0.0)),
        status=PhotoStatus(row.get("status", PhotoStatus.ACTIVE.value)),
        like_count=int(row.get("like_count") or 0),
        impression_count=int(row.get("impression_count") or 0),
        date_text=row.get("date_text"),
    )


def _serialize_photo(record: PhotoRecord) -> dict[str, object]:
    location = record.location
    payload: dict[str, object] = {
        "id": record.id,
        "user_id": record.owner_id,
        "image_path": record.image_ref,
        "created_at": record.created_at.isoformat(),
        "expire_at": record.expire_at.isoformat() if record.expire_at else None,
        "random_seed": record.random_seed,
        "status": record.status.value,
        "like_count": record.like_count,
        "impression_count": record.impression_count,
        "date_text": record.date_text,
    }
    if location is not None:
        payload.update(
            {
                "country": location.country,
                "region": location.region,
                "city": location.city,
                "sub_locality": location.sub_locality,
                "country_code": location.country_code,
                "latitude": location.latitude,
                "longitude": location.longitude,
            }
        )
    return payload
