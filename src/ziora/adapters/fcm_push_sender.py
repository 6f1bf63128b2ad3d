"""Firebase Cloud Messaging push sender."""

from dataclasses import dataclass

import httpx

from ziora.domain.social import PushMessage
from ziora.services.notifications import PushSender


@dataclass
class HttpxFcmPushSender(PushSender):
    """Sends push messages through the FCM v1 HTTP API."""

    project_id: str
    access_token: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, project_id: str, access_token: str) -> "HttpxFcmPushSender":
        """Create a sender with a managed httpx session."""
        return cls(
            project_id=project_id,
            access_token=access_token,
            http_client=httpx.AsyncClient(),
        )

    async def send(self, message: PushMessage) -> None:
        """Deliver a message via messages:send."""
        url = (
            f"https://fcm.googleapis.com/v1/projects/{self.project_id}/messages:send"
        )
        payload = {
            "message": {
                "token": message.token,
                "notification": {"title": message.title, "body": message.body},
                "data": message.data,
                "android": {"priority": "high"},
                "apns": {"payload": {"aps": {"sound": "default"}}},
            }
        }
        response = await self.http_client.post(
            url,
            json=payload,
            headers={"Authorization": f"Bearer {self.access_token}"},
            timeout=10,
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


@dataclass
class DisabledPushSender(PushSender):
    """Sender used when push credentials are not configured."""

    sent: int = 0

    async def send(self, message: PushMessage) -> None:
        """Drop the message."""
        self.sent += 1

    async def close(self) -> None:
        """Nothing to release."""
