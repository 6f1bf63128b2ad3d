"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from ziora.adapters.device_state_file import JsonFileDeviceStateStore
from ziora.adapters.fcm_push_sender import DisabledPushSender, HttpxFcmPushSender
from ziora.adapters.gacha_api_client import HttpxGachaClient
from ziora.adapters.image_client import HttpxImageClient
from ziora.adapters.supabase_photo_repository import SupabasePhotoRepository
from ziora.adapters.supabase_social_repository import SupabaseSocialRepository
from ziora.adapters.supabase_storage import SupabaseBlobStore
from ziora.adapters.supabase_user_repository import SupabaseUserRepository
from ziora.config import Settings, parse_country_codes
from ziora.services.ads import AdPrefetcher, AdProvider
from ziora.services.notifications import NotificationService, PushSender
from ziora.services.orchestrator import GachaOrchestrator
from ziora.services.photos import PhotoService
from ziora.services.selection import SelectionService
from ziora.services.uploads import UploadController


@dataclass
class AppContainer:
    """Holds API-wide dependencies."""

    settings: Settings
    photo_service: PhotoService
    selection_service: SelectionService
    notification_service: NotificationService
    close_resources: Callable[[], Awaitable[None]]


@dataclass
class DeviceContainer:
    """Holds the dependencies of one device session."""

    orchestrator: GachaOrchestrator
    upload_controller: UploadController
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default API dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    photo_repository = SupabasePhotoRepository(supabase_client)
    fcm_sender: HttpxFcmPushSender | None = None
    push_sender: PushSender = DisabledPushSender()
    if resolved_settings.fcm_project_id and resolved_settings.fcm_access_token:
        fcm_sender = HttpxFcmPushSender.create(
            project_id=resolved_settings.fcm_project_id,
            access_token=resolved_settings.fcm_access_token,
        )
        push_sender = fcm_sender
    notification_service = NotificationService(
        user_repository=SupabaseUserRepository(supabase_client),
        push_sender=push_sender,
    )
    photo_service = PhotoService(
        repository=photo_repository,
        blob_store=SupabaseBlobStore(
            supabase_client, bucket=resolved_settings.storage_bucket
        ),
        social_repository=SupabaseSocialRepository(supabase_client),
        notification_service=notification_service,
        blocked_country_codes=parse_country_codes(
            resolved_settings.blocked_country_codes
        ),
        photo_ttl_days=resolved_settings.photo_ttl_days,
    )
    selection_service = SelectionService(
        repository=photo_repository,
        policy=resolved_settings.gacha_policy(),
    )

    async def close_resources() -> None:
        if fcm_sender is not None:
            await fcm_sender.close()

    return AppContainer(
        settings=resolved_settings,
        photo_service=photo_service,
        selection_service=selection_service,
        notification_service=notification_service,
        close_resources=close_resources,
    )


def build_device_container(
    settings: Settings, user_id: str, ad_provider: AdProvider
) -> DeviceContainer:
    """Create the orchestrator and upload flow for one device."""
    gacha_client = HttpxGachaClient.create(settings.api_base_url, user_id)
    image_client = HttpxImageClient.create(settings.resolved_image_base_url())
    orchestrator = GachaOrchestrator(
        gacha_client=gacha_client,
        image_client=image_client,
        ads=AdPrefetcher(ad_provider),
        state_store=JsonFileDeviceStateStore(Path(settings.device_state_path)),
        policy=settings.gacha_policy(),
    )

    async def close_resources() -> None:
        orchestrator.ads.discard()
        await gacha_client.close()
        await image_client.close()

    return DeviceContainer(
        orchestrator=orchestrator,
        upload_controller=UploadController(gacha_client),
        close_resources=close_resources,
    )
