"""Supabase repository for likes, reports and blocks."""

from dataclasses import dataclass

from supabase import Client

from ziora.services.photos import SocialRepository


@dataclass
class SupabaseSocialRepository(SocialRepository):
    """Supabase-backed social actions."""

    client: Client

    def add_like(
        self,
        photo_id: str,
        liker_id: str,
        liker_country: str,
        liker_country_code: str | None,
    ) -> bool:
        """Insert a like row unless the liker already liked the photo."""
        existing = (
            self.client.table("photo_likes")
            .select("photo_id")
            .eq("photo_id", photo_id)
            .eq("liker_id", liker_id)
            .limit(1)
            .execute()
        )
        if existing.data:
            return False
        self.client.table("photo_likes").insert(
            {
                "photo_id": photo_id,
                "liker_id": liker_id,
                "liker_country": liker_country,
                "liker_country_code": liker_country_code or "",
            }
        ).execute()
        return True

    def remove_like(self, photo_id: str, liker_id: str) -> bool:
        """Delete a like row and report whether one was removed."""
        response = (
            self.client.table("photo_likes")
            .delete()
            .eq("photo_id", photo_id)
            .eq("liker_id", liker_id)
            .execute()
        )
        return bool(response.data)

    def create_report(self, photo_id: str, reporter_id: str, reason: str) -> None:
        """Insert a pending moderation report."""
        self.client.table("reports").insert(
            {
                "photo_id": photo_id,
                "reporter_id": reporter_id,
                "reason": reason,
                "status": "pending",
            }
        ).execute()

    def block_user(self, user_id: str, blocked_user_id: str) -> None:
        """Insert or keep a block relation."""
        self.client.table("blocked_users").upsert(
            {"user_id": user_id, "blocked_user_id": blocked_user_id}
        ).execute()
