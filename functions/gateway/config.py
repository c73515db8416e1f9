"""
Configuration and settings for the preview gateway.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

FIRESTORE_API_ROOT = "https://firestore.googleapis.com/v1"


class Settings(BaseSettings):
    """Environment-backed settings for the gateway service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Firestore (REST)
    firebase_project: str = Field(default="my-maps-app-9cf67")
    firestore_base_url: Optional[str] = Field(default=None)
    firestore_timeout_seconds: float = Field(default=10.0)

    # Public site
    site_url: str = Field(default="https://my-maps-d00.pages.dev")
    site_name: str = Field(default="MyMaps")
    default_image_path: str = Field(default="/og-image.png")

    # Only public posts get a preview when looked up by id.
    enforce_post_visibility: bool = Field(default=True)

    # Static export of the web app, served to non-crawler traffic.
    static_dir: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="MYMAPS_USE_IN_MEMORY_BACKENDS"
    )
    log_level: str = Field(default="INFO")

    @field_validator("site_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def documents_base_url(self) -> str:
        """Root of the Firestore documents REST resource."""
        if self.firestore_base_url:
            return self.firestore_base_url.rstrip("/")
        return (
            f"{FIRESTORE_API_ROOT}/projects/{self.firebase_project}"
            "/databases/(default)/documents"
        )

    @property
    def default_image_url(self) -> str:
        if self.default_image_path.startswith(("http://", "https://")):
            return self.default_image_path
        return f"{self.site_url}/{self.default_image_path.lstrip('/')}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
