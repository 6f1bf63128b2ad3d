"""HTTP client used by devices to talk to the gacha API."""

from dataclasses import dataclass
from datetime import datetime

import httpx

from ziora.api.models import (
    LocationPayload,
    ScopePayload,
    SelectRequestPayload,
    SelectResponsePayload,
    UploadedPhotoPayload,
)
from ziora.domain.errors import AdministrativeError, OfflineError
from ziora.domain.gacha import SelectionOutcome, SelectionRequest
from ziora.domain.photos import PhotoLocation, UploadedPhoto
from ziora.services.orchestrator import GachaClient
from ziora.services.uploads import UploadClient


@dataclass
class HttpxGachaClient(GachaClient, UploadClient):
    """Gacha and upload client implemented with httpx."""

    base_url: str
    user_id: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, user_id: str) -> "HttpxGachaClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            user_id=user_id,
            http_client=httpx.AsyncClient(),
        )

    async def select(
        self, request: SelectionRequest, last_reset_at: datetime | None
    ) -> SelectionOutcome:
        """Ask the API for one photo."""
        payload = SelectRequestPayload(
            scope=ScopePayload.from_scope(request.scope),
            excluded_ids=sorted(request.excluded_ids),
            last_reset_at=last_reset_at,
            retry_count=request.retry_count,
        )
        response = await self._post(
            "/gacha/select", json=payload.model_dump(mode="json"), timeout=10
        )
        return SelectResponsePayload.model_validate(response.json()).to_outcome()

    async def record_impression(self, photo_id: str) -> None:
        """Count one presentation of a photo."""
        await self._post(f"/photos/{photo_id}/impression", timeout=5)

    async def upload_photo(
        self,
        image: bytes,
        location: PhotoLocation | None,
        date_text: str | None,
    ) -> UploadedPhoto:
        """Upload an image as multipart form data."""
        data: dict[str, str] = {}
        if location is not None:
            data["location"] = LocationPayload(
                country=location.country,
                region=location.region,
                city=location.city,
                sub_locality=location.sub_locality,
                country_code=location.country_code,
                latitude=location.latitude,
                longitude=location.longitude,
            ).model_dump_json()
        if date_text:
            data["date_text"] = date_text
        response = await self._post(
            "/photos",
            data=data,
            files={"image": ("photo.jpg", image, "image/jpeg")},
            timeout=60,
        )
        payload = UploadedPhotoPayload.model_validate(response.json())
        return UploadedPhoto(id=payload.id, image_ref=payload.image_ref)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _post(self, path: str, **kwargs: object) -> httpx.Response:
        try:
            response = await self.http_client.post(
                f"{self.base_url}{path}",
                headers={"X-User-Id": self.user_id},
                **kwargs,  # type: ignore[arg-type]
            )
        except httpx.TransportError as exc:
            raise OfflineError("No internet connection.") from exc
        if response.status_code in {400, 403}:
            raise AdministrativeError(_detail(response))
        response.raise_for_status()
        return response


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or "Request failed."
    if isinstance(body, dict) and isinstance(body.get("detail"), str):
        return body["detail"]
    return "Request failed."
