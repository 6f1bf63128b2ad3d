"""Supabase Storage blob store for photo images."""

from dataclasses import dataclass

from supabase import Client

from ziora.services.photos import BlobStore


@dataclass
class SupabaseBlobStore(BlobStore):
    """Stores image bytes in a Supabase Storage bucket."""

    client: Client
    bucket: str = "photos"

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Upload bytes to the bucket."""
        self.client.storage.from_(self.bucket).upload(
            path, data, {"content-type": content_type}
        )

    def exists(self, path: str) -> bool:
        """Check whether an object exists by listing its folder."""
        folder, _, name = path.rpartition("/")
        entries = self.client.storage.from_(self.bucket).list(
            folder, {"search": name}
        )
        return any(entry.get("name") == name for entry in entries or [])

    def delete(self, path: str) -> None:
        """Remove an object from the bucket."""
        self.client.storage.from_(self.bucket).remove([path])
