"""Environment-driven settings for the media gateway."""

from typing import Optional

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

CLOUD_NAME_PLACEHOLDER = "{CLOUDINARY_CLOUD_NAME}"


class GatewayConfig(BaseSettings):
    """
    Endpoints, upload preset and tuning knobs of the gateway.

    Every field is read from the environment variable named by its alias.
    Fields may also be passed by name, which is what tests and factories do.

    Environment Variables:
        MEDIA_SIGNATURE_URL: Full URL of the signing authority.
        API_AWS_GATEWAY_MEDIA_URL: Media gateway base URL, used to build the
            signing URL when MEDIA_SIGNATURE_URL is not set.
        CLOUDINARY_UPLOAD_URL: CDN upload URL, may contain the
            "{CLOUDINARY_CLOUD_NAME}" placeholder.
        CLOUDINARY_CLOUD_NAME: Cloud name substituted into the upload URL.
        CLOUDINARY_UPLOAD_PRESET: Upload preset sent to the signer.
        MEDIA_HTTP_TIMEOUT: Transport timeout in seconds (default 30).
        MEDIA_CACHE_CAPACITY: Recent-result cache size (default 3).
        MEDIA_DEBUG: Log at DEBUG level (default false).
    """

    signature_url: str = Field(default="", alias="MEDIA_SIGNATURE_URL")
    gateway_media_url: Optional[str] = Field(
        default=None, alias="API_AWS_GATEWAY_MEDIA_URL", exclude=True
    )
    upload_url: str = Field(default="", alias="CLOUDINARY_UPLOAD_URL")
    cloud_name: Optional[str] = Field(default=None, alias="CLOUDINARY_CLOUD_NAME")
    upload_preset: str = Field(default="", alias="CLOUDINARY_UPLOAD_PRESET")
    timeout: float = Field(default=30.0, gt=0, alias="MEDIA_HTTP_TIMEOUT")
    cache_capacity: int = Field(default=3, ge=1, alias="MEDIA_CACHE_CAPACITY")
    debug: bool = Field(default=False, alias="MEDIA_DEBUG")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def resolve_endpoints(self) -> "GatewayConfig":
        """Build derived URLs and reject incomplete endpoint settings."""
        if not self.signature_url and self.gateway_media_url:
            gateway = self.gateway_media_url.rstrip("/")
            self.signature_url = f"{gateway}/cloudinary/signature"

        if CLOUD_NAME_PLACEHOLDER in self.upload_url:
            if not self.cloud_name:
                raise ValueError(
                    "CLOUDINARY_CLOUD_NAME is required by CLOUDINARY_UPLOAD_URL"
                )
            self.upload_url = self.upload_url.replace(
                CLOUD_NAME_PLACEHOLDER, self.cloud_name
            )

        missing = [
            name
            for name, value in (
                ("MEDIA_SIGNATURE_URL", self.signature_url),
                ("CLOUDINARY_UPLOAD_URL", self.upload_url),
                ("CLOUDINARY_UPLOAD_PRESET", self.upload_preset),
            )
            if not value
        ]
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
        return self

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        """
        Load the configuration from the process environment.

        Raises:
            ConfigurationError: If a required variable is missing or invalid.
        """
        try:
            return cls()
        except ValidationError as exc:
            raise ConfigurationError(describe_settings_error(exc)) from exc


def describe_settings_error(exc: ValidationError) -> str:
    """One line per invalid setting, named by its environment variable."""
    problems = []
    for error in exc.errors():
        message = error["msg"].removeprefix("Value error, ")
        if error.get("loc"):
            problems.append(f"{error['loc'][0]}: {message}")
        else:
            problems.append(message)
    return "; ".join(problems)
