# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from collections.abc import Sequence
from typing import Any, Protocol

from social_auth.infrastructure.facebook_auth.models.dto import (
    ProviderAccessToken,
    ProviderLoginResult,
)


class IAuthProvider(Protocol):
    """Platform SDK performing the OAuth consent and token exchange."""

    async def login(self, permissions: Sequence[str]) -> ProviderLoginResult: ...

    async def get_user_data(self, fields: str) -> dict[str, Any]: ...

    async def get_access_token(self) -> ProviderAccessToken | None: ...

    async def refresh_access_token(self) -> ProviderAccessToken | None: ...

    async def log_out(self) -> None: ...
