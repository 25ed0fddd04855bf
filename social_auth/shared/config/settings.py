# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_PERMISSIONS = ["email", "public_profile", "user_friends"]
DEFAULT_USER_FIELDS = "name,email,picture.width(200),first_name,last_name"


class ApiConfig(BaseSettings):
    base_url: str = Field("http://localhost:5001/api", alias="API_BASE_URL")
    auth_path: str = Field("/auth", alias="API_AUTH_PATH")
    users_path: str = Field("/users", alias="API_USERS_PATH")
    timeout: float = Field(30.0, ge=0.1, alias="API_TIMEOUT")

    model_config = SettingsConfigDict(validate_by_name=True, extra="ignore")

    @property
    def auth_url(self) -> str:
        return self.base_url.rstrip("/") + self.auth_path

    @property
    def users_url(self) -> str:
        return self.base_url.rstrip("/") + self.users_path


class FacebookConfig(BaseSettings):
    permissions: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_PERMISSIONS), alias="FACEBOOK_PERMISSIONS"
    )
    user_fields: str = Field(DEFAULT_USER_FIELDS, alias="FACEBOOK_USER_FIELDS")

    model_config = SettingsConfigDict(validate_by_name=True, extra="ignore")

    @field_validator("permissions", mode="before")
    @classmethod
    def _parse_permissions(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


class StorageConfig(BaseSettings):
    directory: Path = Field(Path("instance/secure_storage"), alias="SECURE_STORAGE_DIR")
    encryption_key: str | None = Field(None, alias="ENCRYPTION_KEY")

    model_config = SettingsConfigDict(validate_by_name=True, extra="ignore")


def _api_config_factory() -> ApiConfig:
    return ApiConfig()  # type: ignore[call-arg]


def _facebook_config_factory() -> FacebookConfig:
    return FacebookConfig()  # type: ignore[call-arg]


def _storage_config_factory() -> StorageConfig:
    return StorageConfig()  # type: ignore[call-arg]


class AppConfig(BaseSettings):
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_file: str | None = Field(None, alias="LOG_FILE")
    debug_logging: bool = Field(False, alias="DEBUG_LOGGING")

    api: ApiConfig = Field(default_factory=_api_config_factory)
    facebook: FacebookConfig = Field(default_factory=_facebook_config_factory)
    storage: StorageConfig = Field(default_factory=_storage_config_factory)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        validate_by_name=True,
        extra="ignore",
    )

    @field_validator("debug_logging", mode="before")
    @classmethod
    def _parse_bool(cls, value: str | bool) -> bool:
        if isinstance(value, str):
            return value.lower() in ("1", "true", "yes")
        return bool(value)

    def is_production(self) -> bool:
        return self.app_env.lower() in ("production", "prod")

    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug_logging else self.log_level.upper()


@lru_cache(maxsize=1)
def load_config() -> AppConfig:
    return AppConfig()  # type: ignore[call-arg]


__all__ = ["ApiConfig", "AppConfig", "FacebookConfig", "StorageConfig", "load_config"]
