"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Request
from fastapi import UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ziora.api.admin import router as admin_router
from ziora.api.models import (
    BlockPayload,
    ExistsRequestPayload,
    LikeRequestPayload,
    LocationPayload,
    LocationUpdatePayload,
    PhotoPayload,
    PushSettingsPayload,
    ReportPayload,
    SelectRequestPayload,
    SelectResponsePayload,
    UploadedPhotoPayload,
)
from ziora.app_logging import configure_logging
from ziora.containers import AppContainer
from ziora.domain.errors import (
    AdministrativeError,
    PhotoNotFoundError,
    RegionBlockedError,
)
from ziora.domain.gacha import SelectionRequest


async def current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Return the caller identity supplied by the auth layer."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return x_user_id


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(AdministrativeError)
    async def administrative_error(
        _request: Request, exc: AdministrativeError
    ) -> JSONResponse:
        code = (
            status.HTTP_403_FORBIDDEN
            if isinstance(exc, RegionBlockedError)
            else status.HTTP_400_BAD_REQUEST
        )
        return JSONResponse(status_code=code, content={"detail": exc.message})

    @app.exception_handler(PhotoNotFoundError)
    async def photo_not_found(
        _request: Request, exc: PhotoNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": "Content not found."},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/gacha/select")
    async def select_photo(
        payload: SelectRequestPayload,
        user_id: str = Depends(current_user_id),
        state: AppContainer = Depends(_container),
    ) -> SelectResponsePayload:
        """Select one unseen photo for the caller, never one of their own."""
        request = SelectionRequest(
            scope=payload.scope.to_scope(),
            excluded_owner_id=user_id,
            excluded_ids=frozenset(payload.excluded_ids),
            retry_count=payload.retry_count,
        )
        try:
            outcome = state.selection_service.select(request, payload.last_reset_at)
        except Exception as exc:
            logger.exception("Photo selection failed")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE
            ) from exc
        if not outcome.found:
            logger.info(
                "No candidate (excluded=%s, retry=%s)",
                len(request.excluded_ids),
                request.retry_count,
            )
        return SelectResponsePayload.from_outcome(outcome)

    @app.post("/photos/exists")
    async def photos_exist(
        payload: ExistsRequestPayload,
        state: AppContainer = Depends(_container),
    ) -> dict[str, list[str]]:
        """Return the ids that still reference active photos."""
        return {"ids": state.photo_service.validate_existence(payload.ids)}

    @app.get("/photos/latest")
    async def latest_photo(
        state: AppContainer = Depends(_container),
    ) -> dict[str, PhotoPayload | None]:
        """Return the newest active photo."""
        record = state.photo_service.latest_photo()
        return {"photo": PhotoPayload.from_record(record) if record else None}

    @app.get("/photos/{photo_id}")
    async def get_photo(
        photo_id: str, state: AppContainer = Depends(_container)
    ) -> PhotoPayload:
        """Return one photo record."""
        return PhotoPayload.from_record(state.photo_service.get_photo(photo_id))

    @app.get("/users/me/photos")
    async def my_photos(
        limit: int = 20,
        before: datetime | None = None,
        user_id: str = Depends(current_user_id),
        state: AppContainer = Depends(_container),
    ) -> dict[str, list[PhotoPayload]]:
        """Return a page of the caller's photos, newest first."""
        records = state.photo_service.list_owner_photos(user_id, limit, before)
        return {"photos": [PhotoPayload.from_record(record) for record in records]}

    @app.post("/photos", status_code=status.HTTP_201_CREATED)
    async def upload_photo(
        image: UploadFile = File(...),
        location: str | None = Form(default=None),
        date_text: str | None = Form(default=None),
        user_id: str = Depends(current_user_id),
        state: AppContainer = Depends(_container),
    ) -> UploadedPhotoPayload:
        """Store an uploaded photo."""
        try:
            place = (
                LocationPayload.model_validate_json(location).to_location()
                if location
                else None
            )
        except ValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid location.",
            ) from exc
        data = await image.read()
        uploaded = state.photo_service.upload_photo(
            user_id, data, location=place, date_text=date_text
        )
        return UploadedPhotoPayload(id=uploaded.id, image_ref=uploaded.image_ref)

    @app.patch("/photos/{photo_id}/location")
    async def update_location(
        photo_id: str,
        payload: LocationUpdatePayload,
        user_id: str = Depends(current_user_id),
        state: AppContainer = Depends(_container),
    ) -> dict[str, str]:
        """Edit or redact the place data of an owned photo."""
        state.photo_service.update_location(
            photo_id,
            user_id,
            country=payload.country,
            region=payload.region,
            city=payload.city,
            sub_locality=payload.sub_locality,
        )
        return {"status": "ok"}

    @app.delete("/photos/{photo_id}")
    async def delete_photo(
        photo_id: str,
        user_id: str = Depends(current_user_id),
        state: AppContainer = Depends(_container),
    ) -> dict[str, str]:
        """Delete an owned photo."""
        state.photo_service.delete_photo(photo_id, user_id)
        return {"status": "ok"}

    @app.post("/photos/{photo_id}/like")
    async def like_photo(
        photo_id: str,
        payload: LikeRequestPayload,
        user_id: str = Depends(current_user_id),
        state: AppContainer = Depends(_container),
    ) -> dict[str, bool]:
        """Like a photo."""
        liked = await state.photo_service.like(
            photo_id,
            user_id,
            liker_country=payload.liker_country,
            liker_country_code=payload.liker_country_code,
        )
        return {"liked": liked}

    @app.delete("/photos/{photo_id}/like")
    async def unlike_photo(
        photo_id: str,
        user_id: str = Depends(current_user_id),
        state: AppContainer = Depends(_container),
    ) -> dict[str, bool]:
        """Withdraw a like."""
        return {"removed": state.photo_service.unlike(photo_id, user_id)}

    @app.post("/photos/{photo_id}/impression")
    async def record_impression(
        photo_id: str,
        _user_id: str = Depends(current_user_id),
        state: AppContainer = Depends(_container),
    ) -> dict[str, str]:
        """Count one presentation of a photo."""
        state.photo_service.record_impression(photo_id)
        return {"status": "ok"}

    @app.post("/photos/{photo_id}/report")
    async def report_photo(
        photo_id: str,
        payload: ReportPayload,
        user_id: str = Depends(current_user_id),
        state: AppContainer = Depends(_container),
    ) -> dict[str, str]:
        """Report a photo for moderation."""
        state.photo_service.report(photo_id, user_id, payload.reason)
        return {"status": "ok"}

    @app.post("/users/me/blocks")
    async def block_user(
        payload: BlockPayload,
        user_id: str = Depends(current_user_id),
        state: AppContainer = Depends(_container),
    ) -> dict[str, str]:
        """Block another account."""
        state.photo_service.block_user(user_id, payload.blocked_user_id)
        return {"status": "ok"}

    @app.put("/users/me/push")
    async def save_push_settings(
        payload: PushSettingsPayload,
        user_id: str = Depends(current_user_id),
        state: AppContainer = Depends(_container),
    ) -> dict[str, str]:
        """Register the device push token and language."""
        state.notification_service.save_push_target(
            user_id, payload.token, payload.language
        )
        return {"status": "ok"}

    return app
