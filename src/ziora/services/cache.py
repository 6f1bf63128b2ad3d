"""Image byte cache used by the image client."""

from collections import OrderedDict
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol


class ImageCache(Protocol):
    """Cache interface for downloaded images keyed by storage path."""

    def get(self, image_ref: str) -> bytes | None:
        """Return cached bytes if present and not expired."""

    def set(self, image_ref: str, data: bytes) -> None:
        """Store image bytes."""


@dataclass
class _CacheEntry:
    data: bytes
    expires_at: datetime


class InMemoryImageCache(ImageCache):
    """Bounded in-memory cache with least-recently-used eviction."""

    def __init__(self, max_entries: int = 64, ttl_seconds: int = 3600) -> None:
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()

    def get(self, image_ref: str) -> bytes | None:
        """Return cached bytes if they haven't expired."""
        entry = self._entries.get(image_ref)
        if entry is None:
            return None
        if datetime.now(tz=UTC) >= entry.expires_at:
            self._entries.pop(image_ref, None)
            return None
        self._entries.move_to_end(image_ref)
        return entry.data

    def set(self, image_ref: str, data: bytes) -> None:
        """Store bytes, evicting the oldest entry when full."""
        expires_at = datetime.now(tz=UTC) + timedelta(seconds=self.ttl_seconds)
        self._entries[image_ref] = _CacheEntry(data=data, expires_at=expires_at)
        self._entries.move_to_end(image_ref)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)
