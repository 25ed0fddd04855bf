# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from typing import Any

from social_auth.shared.errors.base import AppError


class SocialAuthError(AppError):
    code = "social_auth_error"


class ProviderError(SocialAuthError):
    code = "provider_failed"


class ProfileFetchError(SocialAuthError):
    code = "profile_fetch_failed"


class StorageError(SocialAuthError):
    code = "storage_failed"


class OperationInProgressError(SocialAuthError):
    def __init__(self, operation: str):
        super().__init__(
            message="Login operation already in progress",
            error_code="operation_in_progress",
            context={"operation": operation},
        )


class InvalidStorageKeyError(StorageError):
    def __init__(self, key: str, context: dict[str, Any] | None = None):
        super().__init__(
            message=f"Invalid storage key: {key!r}",
            error_code="invalid_storage_key",
            context={"key": key, **(context or {})},
        )
