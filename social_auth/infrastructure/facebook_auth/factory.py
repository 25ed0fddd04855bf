# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from social_auth.infrastructure.encryption import EncryptionService
from social_auth.infrastructure.facebook_auth.interfaces.auth_provider import IAuthProvider
from social_auth.infrastructure.facebook_auth.interfaces.secure_store import ISecureStore
from social_auth.infrastructure.facebook_auth.services.credential_repository import (
    CredentialRepository,
)
from social_auth.infrastructure.facebook_auth.services.event_bus import SessionEventBus
from social_auth.infrastructure.facebook_auth.services.session_manager import (
    AuthSessionManager,
)
from social_auth.infrastructure.facebook_auth.storage.encrypted_file_store import (
    EncryptedFileStore,
)
from social_auth.shared.config import AppConfig, load_config
from social_auth.shared.logging import logger


class SessionManagerFactory:
    @staticmethod
    def create(
        provider: IAuthProvider,
        config: AppConfig | None = None,
        store: ISecureStore | None = None,
    ) -> AuthSessionManager:
        logger.debug("SessionManagerFactory: creating AuthSessionManager")

        config = config or load_config()
        if store is None:
            store = EncryptedFileStore(
                config.storage.directory, encryption=EncryptionService(config=config)
            )

        session_manager = AuthSessionManager(
            provider=provider,
            credentials=CredentialRepository(store),
            events=SessionEventBus(),
            permissions=config.facebook.permissions,
            user_fields=config.facebook.user_fields,
        )

        logger.debug("SessionManagerFactory: AuthSessionManager created")

        return session_manager


def create_session_manager(
    provider: IAuthProvider,
    config: AppConfig | None = None,
    store: ISecureStore | None = None,
) -> AuthSessionManager:
    return SessionManagerFactory.create(provider, config=config, store=store)
