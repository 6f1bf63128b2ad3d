"""Like notifications handed to the push sender."""

import logging
from dataclasses import dataclass
from typing import Protocol

from ziora.domain.photos import PhotoRecord
from ziora.domain.social import PushMessage, PushTarget

logger = logging.getLogger(__name__)


class UserRepository(Protocol):
    """Persistence interface for per-user push settings."""

    def get_push_target(self, user_id: str) -> PushTarget | None:
        """Return the push token and language for a user, if present."""

    def save_push_target(
        self, user_id: str, token: str | None, language: str | None
    ) -> None:
        """Store the push token and preferred language for a user."""


class PushSender(Protocol):
    """Interface for fire-and-forget push delivery."""

    async def send(self, message: PushMessage) -> None:
        """Deliver a push message."""


_LIKE_TEMPLATES: dict[str, tuple[str, str]] = {
    "en": ("New Like!", "Someone from {country} liked your photo!"),
    "ja": ("新しいいいね！", "{country} の誰かがあなたの写真にいいねしました！"),
    "ko": ("새로운 좋아요!", "{country}에서 누군가가 회원님의 사진을 좋아합니다!"),
    "es": ("¡Nuevo Me gusta!", "¡A alguien de {country} le gustó tu foto!"),
    "fr": ("Nouveau J'aime !", "Quelqu'un de {country} a aimé votre photo !"),
}


def build_like_message(
    target: PushTarget, photo_id: str, liker_country: str
) -> PushMessage | None:
    """Build the localized like message, or None without a token."""
    if not target.token:
        return None
    title, body = _LIKE_TEMPLATES.get(target.language, _LIKE_TEMPLATES["en"])
    return PushMessage(
        token=target.token,
        title=title,
        body=body.format(country=liker_country or "Unknown"),
        data={"type": "like", "photoId": photo_id},
    )


@dataclass
class NotificationService:
    """Notifies photo owners about likes."""

    user_repository: UserRepository
    push_sender: PushSender

    async def notify_like(
        self, photo: PhotoRecord, liker_id: str, liker_country: str
    ) -> bool:
        """Send a like notification; returns True when one was sent."""
        if photo.owner_id == liker_id:
            return False
        target = self.user_repository.get_push_target(photo.owner_id)
        if target is None:
            return False
        message = build_like_message(target, photo.id, liker_country)
        if message is None:
            logger.info("No push token for user %s", photo.owner_id)
            return False
        try:
            await self.push_sender.send(message)
        except Exception:
            logger.exception("Failed to send like notification for %s", photo.id)
            return False
        return True

    def save_push_target(
        self, user_id: str, token: str | None, language: str | None
    ) -> None:
        """Register the device token and language of a user."""
        self.user_repository.save_push_target(user_id, token, language)
