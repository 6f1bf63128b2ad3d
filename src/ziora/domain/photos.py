"""Domain models for shared photos."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PhotoStatus(str, Enum):
    """Lifecycle status of a photo record."""

    ACTIVE = "active"
    REMOVED = "removed"


class ScopeKind(str, Enum):
    """Filter dimension for the selection pool."""

    GLOBAL = "global"
    COUNTRY = "country"
    REGION = "region"
    CITY = "city"


class SampleDirection(str, Enum):
    """Scan direction on the random seed index."""

    ASCENDING = "ascending"
    DESCENDING = "descending"


@dataclass(frozen=True)
class GachaScope:
    """Narrows the selection pool to a place."""

    kind: ScopeKind = ScopeKind.GLOBAL
    country_code: str | None = None
    region: str | None = None
    city: str | None = None

    @classmethod
    def global_(cls) -> "GachaScope":
        return cls()

    @classmethod
    def country(cls, code: str) -> "GachaScope":
        return cls(kind=ScopeKind.COUNTRY, country_code=code)

    @classmethod
    def in_region(cls, code: str, region: str) -> "GachaScope":
        return cls(kind=ScopeKind.REGION, country_code=code, region=region)

    @classmethod
    def in_city(cls, code: str, city: str) -> "GachaScope":
        return cls(kind=ScopeKind.CITY, country_code=code, city=city)

    def filters(self) -> dict[str, str]:
        """Return column equality filters implied by the scope."""
        if self.kind is ScopeKind.GLOBAL or not self.country_code:
            return {}
        filters = {"country_code": self.country_code}
        if self.kind is ScopeKind.REGION and self.region:
            filters["region"] = self.region
        if self.kind is ScopeKind.CITY and self.city:
            filters["city"] = self.city
        return filters


@dataclass(frozen=True)
class PhotoLocation:
    """Structured place data attached to a photo."""

    country: str
    region: str
    city: str
    sub_locality: str | None = None
    country_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True)
class PhotoRecord:
    """Represents one shared image."""

    id: str
    owner_id: str
    image_ref: str
    location: PhotoLocation | None
    created_at: datetime
    expire_at: datetime | None
    random_seed: float
    status: PhotoStatus = PhotoStatus.ACTIVE
    like_count: int = 0
    impression_count: int = 0
    date_text: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status is PhotoStatus.ACTIVE

    def matches(self, scope: GachaScope) -> bool:
        """Return True when the record falls inside the scope."""
        filters = scope.filters()
        if not filters:
            return True
        if self.location is None:
            return False
        values = {
            "country_code": self.location.country_code,
            "region": self.location.region,
            "city": self.location.city,
        }
        return all(values[column] == value for column, value in filters.items())


@dataclass(frozen=True)
class UploadedPhoto:
    """Identifiers returned after a successful upload."""

    id: str
    image_ref: str


def thumbnail_ref(image_ref: str) -> str:
    """Return the storage path of the 200x200 thumbnail for an image."""
    base, dot, ext = image_ref.rpartition(".")
    if not dot or "/" in ext:
        return f"{image_ref}_200x200"
    return f"{base}_200x200.{ext}"
