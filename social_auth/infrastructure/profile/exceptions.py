# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from collections.abc import Mapping
from typing import Any

from social_auth.shared.errors.base import InfrastructureError


class BackendApiError(InfrastructureError):
    code = "backend_api_error"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, context=context)
        self.status_code = status_code
        if status_code is not None:
            self.context["status_code"] = status_code


class MissingAccessTokenError(BackendApiError):
    def __init__(self) -> None:
        super().__init__(
            "No access token set for the profile API",
            error_code="missing_access_token",
        )


class EmptyProfileUpdateError(BackendApiError):
    def __init__(self) -> None:
        super().__init__("No profile changes to send", error_code="empty_profile_update")
