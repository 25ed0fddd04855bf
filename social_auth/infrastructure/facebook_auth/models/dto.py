# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from social_auth.domain.users.entities import UserIdentity
from social_auth.infrastructure.facebook_auth.error_mapper import user_friendly_message


class ProviderLoginStatus(StrEnum):
    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"


class SessionState(StrEnum):
    LOGGED_OUT = "logged_out"
    AUTHENTICATING = "authenticating"
    LOGGED_IN = "logged_in"
    ERROR = "error"


class AuthStatus(StrEnum):
    SUCCESS = "success"
    CANCELLED = "cancelled"
    ERROR = "error"


@dataclass(frozen=True)
class ProviderAccessToken:
    token: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class ProviderLoginResult:
    status: ProviderLoginStatus
    access_token: ProviderAccessToken | None = None
    message: str | None = None

    @classmethod
    def success(cls, access_token: ProviderAccessToken) -> "ProviderLoginResult":
        return cls(status=ProviderLoginStatus.SUCCESS, access_token=access_token)

    @classmethod
    def cancelled(cls) -> "ProviderLoginResult":
        return cls(status=ProviderLoginStatus.CANCELLED)

    @classmethod
    def failed(cls, message: str | None = None) -> "ProviderLoginResult":
        return cls(status=ProviderLoginStatus.FAILED, message=message)


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    expires_at: datetime
    user: UserIdentity


@dataclass(frozen=True)
class StoredCredential:
    """Raw contents of the three credential keys.

    Any field may be missing independently, since writes are per key.
    """

    token: str | None = None
    expiry_raw: str | None = None
    user_raw: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.token is None


@dataclass(frozen=True)
class AuthResult:
    status: AuthStatus
    user: UserIdentity | None = None
    error: str | None = None
    error_code: str | None = None
    data: dict[str, Any] | None = None

    @property
    def is_success(self) -> bool:
        return self.status is AuthStatus.SUCCESS

    @property
    def is_cancelled(self) -> bool:
        return self.status is AuthStatus.CANCELLED

    @property
    def user_message(self) -> str | None:
        if self.is_success:
            return None
        if self.is_cancelled:
            return "Login was cancelled"
        return user_friendly_message(self.error or "")

    @classmethod
    def ok(cls, user: UserIdentity) -> "AuthResult":
        return cls(status=AuthStatus.SUCCESS, user=user)

    @classmethod
    def cancelled(cls) -> "AuthResult":
        return cls(status=AuthStatus.CANCELLED)

    @classmethod
    def fail(
        cls,
        error: str,
        error_code: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> "AuthResult":
        return cls(status=AuthStatus.ERROR, error=error, error_code=error_code, data=data)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": str(self.status)}

        if self.user is not None:
            result["user"] = self.user.to_dict()
        if self.status is AuthStatus.ERROR:
            result["error"] = self.error
            if self.error_code:
                result["error_code"] = self.error_code
            if self.data:
                result["context"] = self.data
            result["message"] = self.user_message

        return result
