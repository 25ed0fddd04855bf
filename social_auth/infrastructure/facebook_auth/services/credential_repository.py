# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

import asyncio
from datetime import UTC, datetime

from social_auth.domain.users.entities import UserIdentity
from social_auth.infrastructure.facebook_auth.exceptions import StorageError
from social_auth.infrastructure.facebook_auth.interfaces.secure_store import ISecureStore
from social_auth.infrastructure.facebook_auth.models.dto import StoredCredential
from social_auth.shared.logging import logger

TOKEN_KEY = "facebook_access_token"
USER_KEY = "facebook_user_data"
EXPIRY_KEY = "facebook_token_expiry"

CREDENTIAL_KEYS = (TOKEN_KEY, USER_KEY, EXPIRY_KEY)


def format_expiry(expires_at: datetime) -> str:
    return str(int(expires_at.timestamp() * 1000))


def parse_expiry(raw: str) -> datetime:
    try:
        millis = int(raw)
    except (TypeError, ValueError) as e:
        raise StorageError(
            "Stored token expiry is not an epoch timestamp",
            error_code="expiry_corrupted",
            context={"value": raw},
        ) from e
    return datetime.fromtimestamp(millis / 1000, tz=UTC)


class CredentialRepository:
    """Maps the persisted credential onto three independent secure-store keys."""

    def __init__(self, store: ISecureStore) -> None:
        self._store = store

    async def save_token(self, token: str, expires_at: datetime) -> None:
        await self._store.write(TOKEN_KEY, token)
        await self._store.write(EXPIRY_KEY, format_expiry(expires_at))
        logger.debug("CredentialRepository: token stored")

    async def save_user(self, user: UserIdentity) -> None:
        await self._store.write(USER_KEY, user.to_json())
        logger.debug(f"CredentialRepository: user stored uid={user.id}")

    async def load(self) -> StoredCredential:
        token = await self._store.read(TOKEN_KEY)
        expiry_raw = await self._store.read(EXPIRY_KEY)
        user_raw = await self._store.read(USER_KEY)
        return StoredCredential(token=token, expiry_raw=expiry_raw, user_raw=user_raw)

    async def clear(self) -> bool:
        results = await asyncio.gather(
            *(self._store.delete(key) for key in CREDENTIAL_KEYS),
            return_exceptions=True,
        )

        cleared = True
        for key, result in zip(CREDENTIAL_KEYS, results, strict=True):
            if isinstance(result, Exception):
                cleared = False
                logger.opt(exception=result).error(
                    f"CredentialRepository: failed to delete key={key}"
                )

        if cleared:
            logger.debug("CredentialRepository: stored data cleared")
        return cleared
