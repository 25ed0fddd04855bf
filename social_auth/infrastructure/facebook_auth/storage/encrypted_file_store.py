# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

import asyncio
import os
import re
from pathlib import Path

from social_auth.infrastructure.encryption import EncryptionService, get_encryption_service
from social_auth.infrastructure.facebook_auth.exceptions import (
    InvalidStorageKeyError,
    StorageError,
)
from social_auth.shared.config import load_config
from social_auth.shared.logging import logger

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class EncryptedFileStore:
    """Secret key/value store keeping one Fernet-encrypted file per key.

    Each write replaces a single file atomically. There is no cross-key
    transaction and no in-process cache: every read goes to disk.
    """

    def __init__(
        self,
        base_directory: str | Path | None = None,
        encryption: EncryptionService | None = None,
    ) -> None:
        if base_directory is None:
            base_directory = load_config().storage.directory

        self._base_directory = Path(base_directory)
        self._encryption = encryption or get_encryption_service()
        self._ensure_base_directory()

        logger.debug(f"EncryptedFileStore: initialized base_dir={self._base_directory}")

    def _ensure_base_directory(self) -> None:
        try:
            self._base_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Failed to create storage directory: {self._base_directory}",
                error_code="directory_creation_failed",
            ) from e

    def _path_for(self, key: str) -> Path:
        if not _KEY_RE.match(key) or key in (".", ".."):
            raise InvalidStorageKeyError(key)
        return self._base_directory / f"{key}.enc"

    async def read(self, key: str) -> str | None:
        path = self._path_for(key)
        return await asyncio.to_thread(self._read_sync, key, path)

    async def write(self, key: str, value: str) -> None:
        path = self._path_for(key)
        await asyncio.to_thread(self._write_sync, key, path, value)

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        await asyncio.to_thread(self._delete_sync, key, path)

    def _read_sync(self, key: str, path: Path) -> str | None:
        try:
            ciphertext = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"EncryptedFileStore: key not found key={key}")
            return None
        except OSError as e:
            raise StorageError(
                f"Failed to read key {key}", error_code="read_failed", context={"key": key}
            ) from e

        try:
            return self._encryption.decrypt(ciphertext)
        except ValueError as e:
            raise StorageError(
                f"Failed to decrypt key {key}",
                error_code="decrypt_failed",
                context={"key": key},
            ) from e

    def _write_sync(self, key: str, path: Path, value: str) -> None:
        ciphertext = self._encryption.encrypt(value) or ""
        tmp = path.with_suffix(path.suffix + ".tmp")

        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(ciphertext)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as e:
            logger.exception(f"EncryptedFileStore: write failed key={key}")
            raise StorageError(
                f"Failed to write key {key}", error_code="write_failed", context={"key": key}
            ) from e

        logger.debug(f"EncryptedFileStore: wrote key={key}")

    def _delete_sync(self, key: str, path: Path) -> None:
        try:
            os.remove(path)
            logger.debug(f"EncryptedFileStore: deleted key={key}")
        except FileNotFoundError:
            logger.debug(f"EncryptedFileStore: nothing to delete key={key}")
        except OSError as e:
            raise StorageError(
                f"Failed to delete key {key}", error_code="delete_failed", context={"key": key}
            ) from e
