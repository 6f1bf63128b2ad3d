"""Shared test fixtures."""

import random
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta

import pytest

from ziora.adapters.local_gacha_client import LocalGachaClient
from ziora.config import Settings
from ziora.containers import AppContainer
from ziora.domain.errors import AdLoadError, OfflineError, PhotoNotFoundError
from ziora.domain.gacha import (
    AdCreative,
    DeviceState,
    GachaPolicy,
    SelectionOutcome,
    SelectionRequest,
)
from ziora.domain.photos import (
    GachaScope,
    PhotoLocation,
    PhotoRecord,
    PhotoStatus,
    SampleDirection,
    UploadedPhoto,
)
from ziora.domain.social import PushMessage, PushTarget
from ziora.services.ads import AdPrefetcher, AdProvider
from ziora.services.device_state import InMemoryDeviceStateStore
from ziora.services.notifications import NotificationService, PushSender
from ziora.services.notifications import UserRepository
from ziora.services.orchestrator import CardSignal, GachaOrchestrator, ImageClient
from ziora.services.photos import (
    BlobStore,
    PhotoRepository,
    PhotoService,
    SocialRepository,
)
from ziora.services.selection import SelectionService
from ziora.services.uploads import UploadClient

BASE_TIME = datetime(2025, 1, 1, tzinfo=UTC)

TOKYO = PhotoLocation(
    country="Japan",
    region="Tokyo",
    city="Shibuya",
    sub_locality="Jingumae",
    country_code="JP",
)
PARIS = PhotoLocation(
    country="France",
    region="Ile-de-France",
    city="Paris",
    country_code="FR",
)


def make_photo(  # noqa: PLR0913
    photo_id: str,
    seed: float,
    owner_id: str = "owner-1",
    location: PhotoLocation | None = TOKYO,
    created_at: datetime = BASE_TIME,
    status: PhotoStatus = PhotoStatus.ACTIVE,
) -> PhotoRecord:
    return PhotoRecord(
        id=photo_id,
        owner_id=owner_id,
        image_ref=f"photos/{owner_id}/{photo_id}.jpg",
        location=location,
        created_at=created_at,
        expire_at=created_at + timedelta(days=7),
        random_seed=seed,
        status=status,
    )


class ScriptedRandom(random.Random):
    """Random source whose ``random()`` replays scripted values first."""

    def __init__(self, values: list[float], seed: int = 0) -> None:
        super().__init__(seed)
        self.values = list(values)

    def random(self) -> float:
        if self.values:
            return self.values.pop(0)
        return super().random()


@dataclass
class InMemoryPhotoRepository(PhotoRepository):
    """In-memory photo store for tests."""

    photos: dict[str, PhotoRecord] = field(default_factory=dict)
    sample_calls: list[tuple[float, SampleDirection]] = field(default_factory=list)
    counters: list[tuple[str, str, int]] = field(default_factory=list)
    fail_recent: bool = False
    fail_sample: bool = False

    def add(self, *records: PhotoRecord) -> None:
        for record in records:
            self.photos[record.id] = record

    def _active(self, scope: GachaScope) -> list[PhotoRecord]:
        return [
            record
            for record in self.photos.values()
            if record.is_active and record.matches(scope)
        ]

    def sample_near(
        self,
        seed: float,
        scope: GachaScope,
        limit: int,
        direction: SampleDirection,
    ) -> list[PhotoRecord]:
        if self.fail_sample:
            raise RuntimeError("database unavailable")
        self.sample_calls.append((seed, direction))
        if direction is SampleDirection.ASCENDING:
            rows = sorted(
                (r for r in self._active(scope) if r.random_seed >= seed),
                key=lambda r: r.random_seed,
            )
        else:
            rows = sorted(
                (r for r in self._active(scope) if r.random_seed < seed),
                key=lambda r: r.random_seed,
                reverse=True,
            )
        return rows[:limit]

    def recent_since(
        self, timestamp: datetime, scope: GachaScope, limit: int
    ) -> list[PhotoRecord]:
        if self.fail_recent:
            raise RuntimeError("index missing")
        rows = sorted(
            (r for r in self._active(scope) if r.created_at > timestamp),
            key=lambda r: r.created_at,
            reverse=True,
        )
        return rows[:limit]

    def exists(self, ids: list[str]) -> list[str]:
        return [
            photo_id
            for photo_id in ids
            if photo_id in self.photos and self.photos[photo_id].is_active
        ]

    def get(self, photo_id: str) -> PhotoRecord | None:
        return self.photos.get(photo_id)

    def create(self, record: PhotoRecord) -> PhotoRecord:
        self.photos[record.id] = record
        return record

    def set_status(self, photo_id: str, status: PhotoStatus) -> None:
        self.photos[photo_id] = replace(self.photos[photo_id], status=status)

    def update_location(self, photo_id: str, location: dict[str, object]) -> None:
        record = self.photos[photo_id]
        current = record.location or PhotoLocation("", "", "")
        self.photos[photo_id] = replace(
            record, location=replace(current, **location)
        )

    def delete(self, photo_id: str) -> None:
        self.photos.pop(photo_id, None)

    def increment_counter(self, photo_id: str, column: str, delta: int) -> None:
        self.counters.append((photo_id, column, delta))
        record = self.photos.get(photo_id)
        if record is not None:
            value = getattr(record, column) + delta
            self.photos[photo_id] = replace(record, **{column: value})

    def list_by_owner(
        self, owner_id: str, limit: int, before: datetime | None = None
    ) -> list[PhotoRecord]:
        rows = [
            r
            for r in self.photos.values()
            if r.owner_id == owner_id
            and r.is_active
            and (before is None or r.created_at < before)
        ]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows[:limit]

    def latest(self) -> PhotoRecord | None:
        rows = [r for r in self.photos.values() if r.is_active]
        return max(rows, key=lambda r: r.created_at, default=None)


@dataclass
class InMemoryBlobStore(BlobStore):
    """In-memory blob store for tests."""

    objects: dict[str, bytes] = field(default_factory=dict)
    fail_upload: bool = False

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        if self.fail_upload:
            raise RuntimeError("storage unavailable")
        self.objects[path] = data

    def exists(self, path: str) -> bool:
        return path in self.objects

    def delete(self, path: str) -> None:
        self.objects.pop(path, None)


@dataclass
class InMemorySocialRepository(SocialRepository):
    """In-memory likes, reports and blocks."""

    likes: dict[tuple[str, str], str] = field(default_factory=dict)
    reports: list[tuple[str, str, str]] = field(default_factory=list)
    blocks: set[tuple[str, str]] = field(default_factory=set)

    def add_like(
        self,
        photo_id: str,
        liker_id: str,
        liker_country: str,
        liker_country_code: str | None,
    ) -> bool:
        key = (photo_id, liker_id)
        if key in self.likes:
            return False
        self.likes[key] = liker_country
        return True

    def remove_like(self, photo_id: str, liker_id: str) -> bool:
        return self.likes.pop((photo_id, liker_id), None) is not None

    def create_report(self, photo_id: str, reporter_id: str, reason: str) -> None:
        self.reports.append((photo_id, reporter_id, reason))

    def block_user(self, user_id: str, blocked_user_id: str) -> None:
        self.blocks.add((user_id, blocked_user_id))


@dataclass
class InMemoryUserRepository(UserRepository):
    """In-memory push settings."""

    targets: dict[str, PushTarget] = field(default_factory=dict)

    def get_push_target(self, user_id: str) -> PushTarget | None:
        return self.targets.get(user_id)

    def save_push_target(
        self, user_id: str, token: str | None, language: str | None
    ) -> None:
        current = self.targets.get(user_id, PushTarget(token=None))
        self.targets[user_id] = PushTarget(
            token=token if token is not None else current.token,
            language=language or current.language,
        )


@dataclass
class FakePushSender(PushSender):
    """Push sender that records messages."""

    messages: list[PushMessage] = field(default_factory=list)
    fail: bool = False

    async def send(self, message: PushMessage) -> None:
        if self.fail:
            raise RuntimeError("push gateway down")
        self.messages.append(message)


@dataclass
class FakeImageClient(ImageClient):
    """Serves image bytes from a dict; missing refs raise not found."""

    images: dict[str, bytes] = field(default_factory=dict)
    downloads: list[str] = field(default_factory=list)
    offline: bool = False

    async def download(self, image_ref: str) -> bytes:
        self.downloads.append(image_ref)
        if self.offline:
            raise OfflineError("No internet connection.")
        if image_ref not in self.images:
            raise PhotoNotFoundError(image_ref)
        return self.images[image_ref]


@dataclass
class ScriptedGachaClient:
    """Gacha client returning queued outcomes or raising queued errors."""

    outcomes: list[SelectionOutcome | Exception] = field(default_factory=list)
    requests: list[SelectionRequest] = field(default_factory=list)
    impressions: list[str] = field(default_factory=list)

    async def select(
        self, request: SelectionRequest, last_reset_at: datetime | None
    ) -> SelectionOutcome:
        self.requests.append(request)
        if not self.outcomes:
            return SelectionOutcome.no_candidate()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def record_impression(self, photo_id: str) -> None:
        self.impressions.append(photo_id)


@dataclass
class FakeAdProvider(AdProvider):
    """Ad provider that counts loads."""

    loads: int = 0
    fail: bool = False

    async def load_ad(self) -> AdCreative:
        self.loads += 1
        if self.fail:
            raise AdLoadError("no fill")
        return AdCreative(ad_unit_id=f"ad-{self.loads}")


@dataclass
class FakeUploadClient(UploadClient):
    """Upload client that answers with a fixed result or error."""

    error: Exception | None = None
    calls: int = 0

    async def upload_photo(
        self,
        image: bytes,
        location: PhotoLocation | None,
        date_text: str | None,
    ) -> UploadedPhoto:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return UploadedPhoto(id="new-photo", image_ref="photos/me/new-photo.jpg")


class AutoCardSignal(CardSignal):
    """Card signal that is already triggered whenever it is re-armed."""

    def reset(self) -> None:
        super().reset()
        self.trigger()


def image_bytes_for(*records: PhotoRecord) -> dict[str, bytes]:
    """Original-size image bytes for records, keyed by storage path."""
    return {record.image_ref: f"img:{record.id}".encode() for record in records}


def build_orchestrator(  # noqa: PLR0913
    repository: InMemoryPhotoRepository | None = None,
    gacha_client: object | None = None,
    image_client: FakeImageClient | None = None,
    ad_provider: FakeAdProvider | None = None,
    state: DeviceState | None = None,
    policy: GachaPolicy | None = None,
    rng: random.Random | None = None,
) -> GachaOrchestrator:
    """Wire an orchestrator over in-memory collaborators."""
    repository = repository or InMemoryPhotoRepository()
    if gacha_client is None:
        photo_service = PhotoService(
            repository=repository,
            blob_store=InMemoryBlobStore(),
            social_repository=InMemorySocialRepository(),
            notification_service=NotificationService(
                InMemoryUserRepository(), FakePushSender()
            ),
        )
        gacha_client = LocalGachaClient(
            selection_service=SelectionService(
                repository=repository, rng=random.Random(7)
            ),
            photo_service=photo_service,
        )
    if image_client is None:
        image_client = FakeImageClient(
            images=image_bytes_for(*repository.photos.values())
        )
    return GachaOrchestrator(
        gacha_client=gacha_client,  # type: ignore[arg-type]
        image_client=image_client,
        ads=AdPrefetcher(ad_provider or FakeAdProvider()),
        state_store=InMemoryDeviceStateStore(
            state if state is not None else DeviceState(tutorial_completed=True)
        ),
        card_signal=AutoCardSignal(),
        policy=policy or GachaPolicy(ad_interval=1000, ad_chance=1_000_000),
        rng=rng or random.Random(3),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
        blocked_country_codes="kp",
    )


@pytest.fixture
def photo_repository() -> InMemoryPhotoRepository:
    return InMemoryPhotoRepository()


@pytest.fixture
def push_sender() -> FakePushSender:
    return FakePushSender()


@pytest.fixture
def container(
    settings: Settings,
    photo_repository: InMemoryPhotoRepository,
    push_sender: FakePushSender,
) -> AppContainer:
    notification_service = NotificationService(
        user_repository=InMemoryUserRepository(),
        push_sender=push_sender,
    )
    photo_service = PhotoService(
        repository=photo_repository,
        blob_store=InMemoryBlobStore(),
        social_repository=InMemorySocialRepository(),
        notification_service=notification_service,
        blocked_country_codes={"KP"},
    )
    selection_service = SelectionService(
        repository=photo_repository, rng=random.Random(11)
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        photo_service=photo_service,
        selection_service=selection_service,
        notification_service=notification_service,
        close_resources=close_resources,
    )
