# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from social_auth.infrastructure.facebook_auth.factory import create_session_manager
from social_auth.infrastructure.facebook_auth.models.dto import (
    AuthResult,
    AuthStatus,
    ProviderAccessToken,
    ProviderLoginResult,
    ProviderLoginStatus,
    SessionState,
)
from social_auth.infrastructure.facebook_auth.services.event_bus import (
    LoggedIn,
    LoggedOut,
    SessionEvent,
    SessionEventBus,
)
from social_auth.infrastructure.facebook_auth.services.session_manager import (
    AuthSessionManager,
)

__all__ = [
    "AuthResult",
    "AuthSessionManager",
    "AuthStatus",
    "LoggedIn",
    "LoggedOut",
    "ProviderAccessToken",
    "ProviderLoginResult",
    "ProviderLoginStatus",
    "SessionEvent",
    "SessionEventBus",
    "SessionState",
    "create_session_manager",
]
