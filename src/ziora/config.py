"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from ziora.domain.gacha import GachaPolicy

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    storage_bucket: str = "photos"
    image_base_url: str | None = None
    api_base_url: str = "http://localhost:8000"
    fcm_project_id: str | None = None
    fcm_access_token: str | None = None
    blocked_country_codes: str | None = None
    photo_ttl_days: int = 7
    device_state_path: str = ".ziora/device_state.json"
    log_level: str = "INFO"
    gacha_sample_batch_size: int = 10
    gacha_reseed_attempts: int = 3
    gacha_freshness_limit: int = 50
    gacha_max_attempts: int = 3
    gacha_ad_interval: int = 5
    gacha_ad_chance: int = 5
    gacha_card_signal_timeout_seconds: float | None = 5.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def gacha_policy(self) -> GachaPolicy:
        """Build the selection and ad tuning values."""
        return GachaPolicy(
            sample_batch_size=self.gacha_sample_batch_size,
            reseed_attempts=self.gacha_reseed_attempts,
            freshness_limit=self.gacha_freshness_limit,
            max_attempts=self.gacha_max_attempts,
            ad_interval=self.gacha_ad_interval,
            ad_chance=self.gacha_ad_chance,
            card_signal_timeout_seconds=self.gacha_card_signal_timeout_seconds,
        )

    def resolved_image_base_url(self) -> str:
        """Return the public URL prefix for stored images."""
        if self.image_base_url:
            return self.image_base_url.rstrip("/")
        base = self.supabase_url.rstrip("/")
        return f"{base}/storage/v1/object/public/{self.storage_bucket}"


def parse_country_codes(raw: str | None) -> set[str]:
    """Parse comma separated ISO country codes from env."""
    if raw is None:
        return set()
    codes: set[str] = set()
    for chunk in raw.split(","):
        value = chunk.strip().upper()
        if len(value) == 2 and value.isalpha():
            codes.add(value)
    return codes
