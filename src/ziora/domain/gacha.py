"""Domain models for the gacha selection flow."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

from ziora.domain.photos import GachaScope, PhotoLocation, PhotoRecord


@dataclass(frozen=True)
class GachaPolicy:
    """Product tuning values for selection and ad interleaving."""

    sample_batch_size: int = 10
    reseed_attempts: int = 3
    freshness_limit: int = 50
    max_attempts: int = 3
    ad_interval: int = 5
    ad_chance: int = 5
    card_signal_timeout_seconds: float | None = 5.0


class SelectionSource(str, Enum):
    """Which path of the engine produced a candidate."""

    FRESH = "fresh"
    RANDOM = "random"


@dataclass(frozen=True)
class SelectionRequest:
    """Ephemeral input for one selection attempt."""

    scope: GachaScope
    excluded_owner_id: str | None
    excluded_ids: frozenset[str]
    retry_count: int = 0


@dataclass(frozen=True)
class SelectionOutcome:
    """Result of a selection: a photo or no candidate at all."""

    photo: PhotoRecord | None
    source: SelectionSource | None = None

    @property
    def found(self) -> bool:
        return self.photo is not None

    @classmethod
    def no_candidate(cls) -> "SelectionOutcome":
        return cls(photo=None)


@dataclass
class DeviceState:
    """Per-device state persisted between app runs."""

    seen_ids: set[str] = field(default_factory=set)
    last_reset_at: datetime | None = None
    tutorial_completed: bool = False
    last_spin_was_ad: bool = False


class OrchestratorState(str, Enum):
    """States of the per-device gacha state machine."""

    IDLE = "idle"
    SELECTING = "selecting"
    PRESENTING_PHOTO = "presenting_photo"
    PRESENTING_AD = "presenting_ad"
    COMPLETION = "completion"


class ResultKind(str, Enum):
    """What the presentation layer should reveal."""

    TUTORIAL = "tutorial"
    PHOTO = "photo"
    AD = "ad"
    COMPLETION = "completion"


@dataclass(frozen=True)
class AdCreative:
    """An externally sourced advertisement."""

    ad_unit_id: str
    payload: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class GachaResult:
    """Content revealed to the user for one spin."""

    kind: ResultKind
    photo: PhotoRecord | None = None
    image: bytes | None = None
    ad: AdCreative | None = None


TUTORIAL_PHOTO_ID = "tutorial_tokyo_tower"


def tutorial_photo(now: datetime | None = None) -> PhotoRecord:
    """Return the pinned record shown on a device's first spin."""
    created_at = now or datetime.now(tz=UTC)
    return PhotoRecord(
        id=TUTORIAL_PHOTO_ID,
        owner_id="admin",
        image_ref="assets/tutorial_tokyo.jpg",
        location=PhotoLocation(
            country="Japan",
            region="Tokyo",
            city="Minato",
            sub_locality="Shibakoen",
            country_code="JP",
            latitude=35.6586,
            longitude=139.7454,
        ),
        created_at=created_at,
        expire_at=created_at + timedelta(hours=1),
        random_seed=0.0,
        like_count=9999,
    )
