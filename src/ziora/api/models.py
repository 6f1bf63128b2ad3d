"""Pydantic models for the HTTP API payloads."""

from dataclasses import asdict
from datetime import datetime

from pydantic import BaseModel, Field

from ziora.domain.gacha import SelectionOutcome, SelectionSource
from ziora.domain.photos import (
    GachaScope,
    PhotoLocation,
    PhotoRecord,
    PhotoStatus,
    ScopeKind,
)


class ScopePayload(BaseModel):
    """Selection scope payload."""

    kind: ScopeKind = ScopeKind.GLOBAL
    country_code: str | None = None
    region: str | None = None
    city: str | None = None

    def to_scope(self) -> GachaScope:
        return GachaScope(
            kind=self.kind,
            country_code=self.country_code,
            region=self.region,
            city=self.city,
        )

    @classmethod
    def from_scope(cls, scope: GachaScope) -> "ScopePayload":
        return cls(
            kind=scope.kind,
            country_code=scope.country_code,
            region=scope.region,
            city=scope.city,
        )


class LocationPayload(BaseModel):
    """Place data payload."""

    country: str
    region: str
    city: str
    sub_locality: str | None = None
    country_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    def to_location(self) -> PhotoLocation:
        return PhotoLocation(**self.model_dump())


class PhotoPayload(BaseModel):
    """Photo record payload."""

    id: str
    owner_id: str
    image_ref: str
    location: LocationPayload | None = None
    created_at: datetime
    expire_at: datetime | None = None
    random_seed: float
    status: PhotoStatus = PhotoStatus.ACTIVE
    like_count: int = 0
    impression_count: int = 0
    date_text: str | None = None

    @classmethod
    def from_record(cls, record: PhotoRecord) -> "PhotoPayload":
        location = record.location
        return cls(
            id=record.id,
            owner_id=record.owner_id,
            image_ref=record.image_ref,
            location=(
                LocationPayload(**asdict(location)) if location is not None else None
            ),
            created_at=record.created_at,
            expire_at=record.expire_at,
            random_seed=record.random_seed,
            status=record.status,
            like_count=record.like_count,
            impression_count=record.impression_count,
            date_text=record.date_text,
        )

    def to_record(self) -> PhotoRecord:
        return PhotoRecord(
            id=self.id,
            owner_id=self.owner_id,
            image_ref=self.image_ref,
            location=self.location.to_location() if self.location else None,
            created_at=self.created_at,
            expire_at=self.expire_at,
            random_seed=self.random_seed,
            status=self.status,
            like_count=self.like_count,
            impression_count=self.impression_count,
            date_text=self.date_text,
        )


class SelectRequestPayload(BaseModel):
    """Body of a selection request."""

    scope: ScopePayload = Field(default_factory=ScopePayload)
    excluded_ids: list[str] = Field(default_factory=list)
    last_reset_at: datetime | None = None
    retry_count: int = 0


class SelectResponsePayload(BaseModel):
    """Selection result."""

    status: str
    photo: PhotoPayload | None = None
    source: SelectionSource | None = None

    @classmethod
    def from_outcome(cls, outcome: SelectionOutcome) -> "SelectResponsePayload":
        if outcome.photo is None:
            return cls(status="no_candidate")
        return cls(
            status="found",
            photo=PhotoPayload.from_record(outcome.photo),
            source=outcome.source,
        )

    def to_outcome(self) -> SelectionOutcome:
        if self.photo is None:
            return SelectionOutcome.no_candidate()
        return SelectionOutcome(photo=self.photo.to_record(), source=self.source)


class ExistsRequestPayload(BaseModel):
    """Ids to validate."""

    ids: list[str]


class LikeRequestPayload(BaseModel):
    """Body of a like action."""

    liker_country: str = "Unknown"
    liker_country_code: str | None = None


class LocationUpdatePayload(BaseModel):
    """Edited place data of an owned photo."""

    country: str
    region: str
    city: str
    sub_locality: str | None = None


class ReportPayload(BaseModel):
    """Moderation report body."""

    reason: str


class BlockPayload(BaseModel):
    """Block request body."""

    blocked_user_id: str


class PushSettingsPayload(BaseModel):
    """Push registration body."""

    token: str | None = None
    language: str | None = None


class StatusPayload(BaseModel):
    """Moderation status change."""

    status: PhotoStatus


class UploadedPhotoPayload(BaseModel):
    """Identifiers returned after an upload."""

    id: str
    image_ref: str
