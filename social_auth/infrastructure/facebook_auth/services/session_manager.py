# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import UTC, datetime

from social_auth.domain.users.entities import UserIdentity
from social_auth.domain.users.exceptions import InvalidIdentityPayloadError
from social_auth.infrastructure.facebook_auth.exceptions import (
    OperationInProgressError,
    ProfileFetchError,
    ProviderError,
    SocialAuthError,
    StorageError,
)
from social_auth.infrastructure.facebook_auth.interfaces.auth_provider import IAuthProvider
from social_auth.infrastructure.facebook_auth.models.dto import (
    AuthResult,
    AuthSession,
    ProviderAccessToken,
    ProviderLoginResult,
    ProviderLoginStatus,
    SessionState,
)
from social_auth.infrastructure.facebook_auth.services.credential_repository import (
    CredentialRepository,
    parse_expiry,
)
from social_auth.infrastructure.facebook_auth.services.event_bus import (
    LoggedIn,
    LoggedOut,
    SessionEventBus,
    SessionListener,
    Subscription,
)
from social_auth.shared.config.settings import DEFAULT_PERMISSIONS, DEFAULT_USER_FIELDS
from social_auth.shared.logging import logger


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AuthSessionManager:
    """Owns the single login session of the process.

    ``login`` and ``restore`` share one busy flag: while either is in flight
    the other is refused instead of interleaved.

    A token counts as expired once ``now >= expires_at``. Reading ``session``
    past that point drops the session, publishes ``LoggedOut`` and leaves the
    stored credential to be wiped by the next ``login`` or ``restore``.
    """

    def __init__(
        self,
        provider: IAuthProvider,
        credentials: CredentialRepository,
        events: SessionEventBus | None = None,
        permissions: Sequence[str] = DEFAULT_PERMISSIONS,
        user_fields: str = DEFAULT_USER_FIELDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._provider = provider
        self._credentials = credentials
        self._events = events or SessionEventBus()
        self._permissions = list(permissions)
        self._user_fields = user_fields
        self._clock = clock

        self._state = SessionState.LOGGED_OUT
        self._session: AuthSession | None = None
        self._busy = False
        self._expired_pending_wipe = False

        logger.debug("AuthSessionManager: initialized")

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def events(self) -> SessionEventBus:
        return self._events

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def session(self) -> AuthSession | None:
        if self._session is not None and self._clock() >= self._session.expires_at:
            self._expire()
        return self._session

    @property
    def current_user(self) -> UserIdentity | None:
        session = self.session
        return session.user if session else None

    @property
    def is_logged_in(self) -> bool:
        return self.current_user is not None

    def subscribe(self, listener: SessionListener) -> Subscription:
        return self._events.subscribe(listener)

    async def login(self) -> AuthResult:
        if self._busy:
            logger.warning("AuthSessionManager: login rejected, operation already in progress")
            return self._fail(OperationInProgressError("login"))

        self._busy = True

        try:
            await self._wipe_expired_credential()
            self._set_state(SessionState.AUTHENTICATING)
            logger.info(f"AuthSessionManager: starting login permissions={self._permissions}")

            result = await self._provider.login(self._permissions)
            return await self._handle_login_result(result)

        except SocialAuthError as e:
            self._set_state(SessionState.ERROR)
            logger.warning(
                f"AuthSessionManager: login failed code={e.error_code} detail={e.message}"
            )
            return self._fail(e)
        except Exception as e:
            self._set_state(SessionState.ERROR)
            logger.exception("AuthSessionManager: login unexpected error")
            return AuthResult.fail(error=f"Login failed: {e}", error_code="login_failed")
        finally:
            self._busy = False

    async def _handle_login_result(self, result: ProviderLoginResult) -> AuthResult:
        match result.status:
            case ProviderLoginStatus.SUCCESS:
                token = result.access_token
                if token is None:
                    raise ProviderError("Access token is null", error_code="missing_access_token")

                user = await self._fetch_user()
                await self._persist(token, user)

                self._session = AuthSession(
                    access_token=token.token, expires_at=token.expires_at, user=user
                )
                self._set_state(SessionState.LOGGED_IN)
                self._events.publish(LoggedIn(user))

                logger.info(f"AuthSessionManager: login success uid={user.id}")
                return AuthResult.ok(user)

            case ProviderLoginStatus.CANCELLED:
                logger.warning("AuthSessionManager: login was cancelled by user")
                self._set_state(
                    SessionState.LOGGED_IN if self.session else SessionState.LOGGED_OUT
                )
                return AuthResult.cancelled()

            case ProviderLoginStatus.FAILED:
                raise ProviderError(result.message or "Login failed")

        raise ProviderError(f"Unknown login status: {result.status}")

    async def _fetch_user(self) -> UserIdentity:
        logger.debug(f"AuthSessionManager: fetching user data fields={self._user_fields}")
        try:
            data = await self._provider.get_user_data(self._user_fields)
            return UserIdentity.from_provider_profile(data, now=self._clock())
        except Exception as e:
            logger.opt(exception=e).error("AuthSessionManager: failed to get user data")
            raise ProfileFetchError(
                "Failed to retrieve user data", context={"reason": str(e)}
            ) from e

    async def _persist(self, token: ProviderAccessToken, user: UserIdentity) -> None:
        try:
            await self._credentials.save_token(token.token, token.expires_at)
            await self._credentials.save_user(user)
        except Exception as e:
            logger.opt(exception=e).error("AuthSessionManager: failed to store credential")
            await self._credentials.clear()
            if isinstance(e, StorageError):
                raise
            raise StorageError("Failed to store credential securely") from e

    async def restore(self) -> SessionState:
        if self._busy:
            logger.warning("AuthSessionManager: restore skipped, operation already in progress")
            return self._state

        self._busy = True
        logger.info("AuthSessionManager: restoring stored session")

        try:
            await self._wipe_expired_credential()
            await self._restore_stored_session()
        except Exception:
            logger.exception("AuthSessionManager: failed to check stored token")
            await self.invalidate("restore_failed")
        finally:
            self._busy = False

        return self._state

    initialize = restore

    async def _restore_stored_session(self) -> None:
        stored = await self._credentials.load()

        if stored.is_empty:
            logger.info("AuthSessionManager: no stored session")
            self._set_state(SessionState.LOGGED_OUT)
            return

        expires_at = parse_expiry(stored.expiry_raw) if stored.expiry_raw is not None else None
        if expires_at is not None and self._clock() >= expires_at:
            logger.warning("AuthSessionManager: stored token is expired, clearing storage")
            await self.invalidate("token_expired")
            return

        provider_token = await self._validate_with_provider()
        if provider_token is None or stored.user_raw is None:
            logger.warning("AuthSessionManager: invalid token or missing user data, clearing storage")
            await self.invalidate("validation_failed")
            return

        try:
            user = UserIdentity.from_json(stored.user_raw)
        except InvalidIdentityPayloadError:
            logger.warning("AuthSessionManager: stored user data is corrupted, clearing storage")
            await self.invalidate("user_data_corrupted")
            return

        self._session = AuthSession(
            access_token=stored.token or provider_token.token,
            expires_at=expires_at or provider_token.expires_at,
            user=user,
        )
        self._set_state(SessionState.LOGGED_IN)
        self._events.publish(LoggedIn(user))
        logger.info(f"AuthSessionManager: session restored uid={user.id}")

    async def _validate_with_provider(self) -> ProviderAccessToken | None:
        try:
            token = await self._provider.get_access_token()
        except Exception as e:
            logger.opt(exception=e).error("AuthSessionManager: token validation failed")
            return None

        if token is None or token.is_expired(self._clock()):
            return None
        return token

    async def refresh_token_if_needed(self) -> bool:
        try:
            token = await self._provider.get_access_token()
            if token is None or not token.is_expired(self._clock()):
                return False

            logger.info("AuthSessionManager: token expired, attempting refresh")
            new_token = await self._provider.refresh_access_token()

            if new_token is None or new_token.is_expired(self._clock()):
                logger.warning("AuthSessionManager: provider returned no usable token")
                return False

            await self._credentials.save_token(new_token.token, new_token.expires_at)
            if self._session is not None:
                self._session = replace(
                    self._session,
                    access_token=new_token.token,
                    expires_at=new_token.expires_at,
                )
            self._expired_pending_wipe = False

            logger.info("AuthSessionManager: token refreshed successfully")
            return True

        except Exception:
            logger.exception("AuthSessionManager: failed to refresh token")
            return False

    async def logout(self) -> None:
        logger.info("AuthSessionManager: starting logout")

        try:
            await self._provider.log_out()
            logger.info("AuthSessionManager: provider logout completed")
        except Exception as e:
            logger.opt(exception=e).error("AuthSessionManager: provider logout failed")
            raise ProviderError(f"Logout failed: {e}", error_code="logout_failed") from e
        finally:
            self._expired_pending_wipe = False
            await self._credentials.clear()
            self._session = None
            self._set_state(SessionState.LOGGED_OUT)
            self._events.publish(LoggedOut())

    async def invalidate(self, reason: str) -> None:
        """Drop the local session and stored credential without contacting the provider."""
        logger.info(f"AuthSessionManager: invalidating session reason={reason}")

        had_session = self._session is not None
        self._expired_pending_wipe = False
        await self._credentials.clear()
        self._session = None
        self._set_state(SessionState.LOGGED_OUT)

        if had_session:
            self._events.publish(LoggedOut())

    async def get_current_access_token(self) -> str | None:
        try:
            token = await self._provider.get_access_token()
        except Exception as e:
            logger.opt(exception=e).error("AuthSessionManager: failed to get current access token")
            return None
        return token.token if token else None

    async def aclose(self) -> None:
        self._events.close()
        logger.debug("AuthSessionManager: closed")

    def _expire(self) -> None:
        # Storage is wiped by the next awaited operation.
        logger.info("AuthSessionManager: session token expired")
        self._session = None
        self._expired_pending_wipe = True
        if self._state is SessionState.LOGGED_IN:
            self._set_state(SessionState.LOGGED_OUT)
        self._events.publish(LoggedOut())

    async def _wipe_expired_credential(self) -> None:
        if self._expired_pending_wipe:
            await self.invalidate("token_expired")

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.debug(f"AuthSessionManager: state {self._state} -> {state}")
        self._state = state

    @staticmethod
    def _fail(error: SocialAuthError) -> AuthResult:
        return AuthResult.fail(
            error=error.message,
            error_code=error.error_code,
            data=error.context or None,
        )
