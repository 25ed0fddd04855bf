# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Facebook login session handling and backend profile client."""

from social_auth.domain import UserIdentity
from social_auth.infrastructure.facebook_auth import (
    AuthResult,
    AuthSessionManager,
    LoggedIn,
    LoggedOut,
    SessionState,
    create_session_manager,
)
from social_auth.infrastructure.profile import BackendApiError, ProfileClient

__all__ = [
    "AuthResult",
    "AuthSessionManager",
    "BackendApiError",
    "LoggedIn",
    "LoggedOut",
    "ProfileClient",
    "SessionState",
    "UserIdentity",
    "create_session_manager",
]
