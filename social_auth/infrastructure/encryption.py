# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import base64
import binascii
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from social_auth.shared.config import AppConfig, load_config
from social_auth.shared.errors import ConfigurationError
from social_auth.shared.logging import logger

_DEV_KEY_RAW = b"dev-key-for-local-dev-32-bytes!!"


class EncryptionService:
    def __init__(self, key: bytes | str | None = None, config: AppConfig | None = None) -> None:
        if key is None:
            key = self._load_key_from_config(config)
        if isinstance(key, str):
            key = key.encode("utf-8")
        self._fernet = Fernet(key)
        logger.debug("EncryptionService: initialized")

    @staticmethod
    def _load_key_from_config(config: AppConfig | None = None) -> bytes:
        config = config or load_config()
        key_str = config.storage.encryption_key or ""

        if not key_str:
            if config.is_production():
                logger.critical("EncryptionService: ENCRYPTION_KEY not set in production")
                raise ConfigurationError(
                    "ENCRYPTION_KEY must be set in production",
                    error_code="encryption_key_missing",
                )
            logger.warning(
                "ENCRYPTION_KEY not set, using fixed development key. DO NOT use this in production!"
            )
            return base64.urlsafe_b64encode(_DEV_KEY_RAW)

        try:
            raw = base64.urlsafe_b64decode(key_str)
        except (binascii.Error, ValueError) as exc:
            raise ConfigurationError(
                "ENCRYPTION_KEY must be a valid Fernet key (32 url-safe base64-encoded bytes)",
                error_code="encryption_key_invalid",
            ) from exc
        if len(raw) != 32:
            raise ConfigurationError(
                "ENCRYPTION_KEY must decode to 32 bytes",
                error_code="encryption_key_invalid",
                context={"length": len(raw)},
            )
        return key_str.encode("utf-8")

    def encrypt(self, plaintext: str | None) -> str | None:
        if plaintext is None:
            return None
        if not isinstance(plaintext, str):
            raise TypeError(f"Expected str, got {type(plaintext).__name__}")
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str | None) -> str | None:
        if ciphertext is None:
            return None
        if not isinstance(ciphertext, str):
            raise TypeError(f"Expected str, got {type(ciphertext).__name__}")
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise ValueError("Failed to decrypt: invalid token or corrupted data") from exc

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("utf-8")


@lru_cache(maxsize=1)
def get_encryption_service() -> EncryptionService:
    return EncryptionService()


__all__ = [
    "EncryptionService",
    "get_encryption_service",
]
