"""Supabase-backed user push settings."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from ziora.domain.social import PushTarget
from ziora.services.notifications import UserRepository


@dataclass
class SupabaseUserRepository(UserRepository):
    """Supabase implementation for per-user push settings."""

    client: Client

    def get_push_target(self, user_id: str) -> PushTarget | None:
        """Return the push token and language for a user, if present."""
        response = (
            self.client.table("users")
            .select("fcm_token, language")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return PushTarget(
            token=row.get("fcm_token") or None,
            language=row.get("language") or "en",
        )

    def save_push_target(
        self, user_id: str, token: str | None, language: str | None
    ) -> None:
        """Upsert the push token and language for a user."""
        payload: dict[str, object] = {
            "id": user_id,
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        if token is not None:
            payload["fcm_token"] = token
        if language is not None:
            payload["language"] = language
        self.client.table("users").upsert(payload).execute()
