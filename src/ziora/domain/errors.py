"""Error taxonomy shared by the gacha services and adapters."""


class ZioraError(Exception):
    """Base error for the application."""


class PhotoNotFoundError(ZioraError):
    """Raised when a photo record or its image is missing."""

    def __init__(self, photo_ref: str) -> None:
        super().__init__(f"Photo not found: {photo_ref}")
        self.photo_ref = photo_ref


class OfflineError(ZioraError):
    """Raised when a network call cannot reach its backend."""


class AdLoadError(ZioraError):
    """Raised when the ad provider fails to deliver a creative."""


class AdministrativeError(ZioraError):
    """User-facing failure for upload, delete, report and block actions."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RegionBlockedError(AdministrativeError):
    """Raised when uploads are disabled for the uploader's country."""

    def __init__(self, country_code: str) -> None:
        super().__init__(
            f"Service is not available in your region ({country_code})."
        )
        self.country_code = country_code
