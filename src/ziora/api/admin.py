"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from ziora.api.models import StatusPayload

if TYPE_CHECKING:
    from ziora.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post("/photos/{photo_id}/cleanup", dependencies=[Depends(require_admin)])
async def cleanup_broken_photo(photo_id: str, request: Request) -> dict[str, object]:
    """Delete a photo record whose image is gone from storage."""
    container: AppContainer = request.app.state.container
    return container.photo_service.cleanup_broken_photo(photo_id)


@router.post("/photos/{photo_id}/status", dependencies=[Depends(require_admin)])
async def set_photo_status(
    photo_id: str, payload: StatusPayload, request: Request
) -> dict[str, str]:
    """Activate or remove a photo."""
    container: AppContainer = request.app.state.container
    container.photo_service.set_status(photo_id, payload.status)
    return {"status": payload.status.value}
