"""Domain models for likes, reports and push delivery."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PushTarget:
    """Where and in which language to notify a user."""

    token: str | None
    language: str = "en"


@dataclass(frozen=True)
class PushMessage:
    """A localized notification ready for delivery."""

    token: str
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
