"""Image download client for the blob store's public URLs."""

from dataclasses import dataclass, field

import httpx

from ziora.domain.errors import OfflineError, PhotoNotFoundError
from ziora.services.cache import ImageCache, InMemoryImageCache
from ziora.services.orchestrator import ImageClient

MAX_IMAGE_BYTES = 10 * 1024 * 1024


@dataclass
class HttpxImageClient(ImageClient):
    """Downloads images over HTTP with an in-memory cache."""

    base_url: str
    http_client: httpx.AsyncClient
    cache: ImageCache = field(default_factory=InMemoryImageCache)

    @classmethod
    def create(cls, base_url: str) -> "HttpxImageClient":
        """Create an image client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def download(self, image_ref: str) -> bytes:
        """Return image bytes, mapping 404 to PhotoNotFoundError."""
        cached = self.cache.get(image_ref)
        if cached is not None:
            return cached
        try:
            response = await self.http_client.get(
                f"{self.base_url}/{image_ref.lstrip('/')}", timeout=20
            )
        except httpx.TransportError as exc:
            raise OfflineError("No internet connection.") from exc
        # Storage answers 400 for some missing objects.
        if response.status_code in {400, 404}:
            raise PhotoNotFoundError(image_ref)
        response.raise_for_status()
        content = response.content
        if len(content) > MAX_IMAGE_BYTES:
            raise ValueError(f"Image too large: {image_ref}")
        self.cache.set(image_ref, content)
        return content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
