from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import timedelta

import pytest

from social_auth.domain.users.entities import UserIdentity
from social_auth.infrastructure.facebook_auth.exceptions import ProviderError
from social_auth.infrastructure.facebook_auth.models.dto import (
    ProviderAccessToken,
    ProviderLoginResult,
    ProviderLoginStatus,
    SessionState,
)
from social_auth.infrastructure.facebook_auth.services.credential_repository import (
    EXPIRY_KEY,
    TOKEN_KEY,
    USER_KEY,
    CredentialRepository,
    format_expiry,
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
from social_auth.tests.fakes import NOW, FakeAuthProvider, FakeClock, RecordingStore

STORED_USER = UserIdentity(
    id="1234567890",
    display_name="Alice Example",
    email="alice@example.com",
    email_verified=True,
    profile_image_url="https://graph.example/alice.jpg",
    created_at=NOW - timedelta(days=3),
)


def _record(events: SessionEventBus) -> list[SessionEvent]:
    received: list[SessionEvent] = []
    events.subscribe(received.append)
    return received


async def _seed(
    store: RecordingStore,
    *,
    expires_at=NOW + timedelta(days=30),
    user: UserIdentity | None = STORED_USER,
) -> None:
    repo = CredentialRepository(store)
    await repo.save_token("stored-token", expires_at)
    if user is not None:
        await repo.save_user(user)
    store.writes.clear()


# --- login -----------------------------------------------------------------


@pytest.mark.asyncio
async def test_login_success_persists_and_publishes(
    manager: AuthSessionManager,
    provider: FakeAuthProvider,
    store: RecordingStore,
    events: SessionEventBus,
) -> None:
    received = _record(events)

    result = await manager.login()

    assert result.is_success
    assert result.user is not None
    assert result.user.id == "1234567890"
    assert result.user.display_name == "Alice Example"
    assert result.user.email_verified is True
    assert result.user.profile_image_url == "https://graph.example/alice.jpg"
    assert result.user.created_at == NOW

    assert provider.login_calls == [["email", "public_profile", "user_friends"]]
    assert provider.user_data_calls == ["name,email,picture.width(200),first_name,last_name"]

    snapshot = store.snapshot()
    assert snapshot[TOKEN_KEY] == "fb-token-1"
    assert snapshot[EXPIRY_KEY] == format_expiry(NOW + timedelta(days=60))
    assert UserIdentity.from_json(snapshot[USER_KEY]) == result.user

    assert manager.state is SessionState.LOGGED_IN
    assert manager.current_user == result.user
    assert manager.is_logged_in
    assert received == [LoggedIn(result.user)]


@pytest.mark.asyncio
async def test_second_login_while_pending_is_rejected(
    manager: AuthSessionManager, provider: FakeAuthProvider
) -> None:
    gate = asyncio.Event()
    original_login = provider.login

    async def slow_login(permissions: Sequence[str]) -> ProviderLoginResult:
        await gate.wait()
        return await original_login(permissions)

    provider.login = slow_login  # type: ignore[method-assign]

    first = asyncio.create_task(manager.login())
    await asyncio.sleep(0)
    assert manager.state is SessionState.AUTHENTICATING
    assert manager.is_busy

    second = await manager.login()

    assert not second.is_success
    assert not second.is_cancelled
    assert second.error_code == "operation_in_progress"
    assert second.error == "Login operation already in progress"

    gate.set()
    first_result = await first

    assert first_result.is_success
    assert len(provider.login_calls) == 1
    assert not manager.is_busy


@pytest.mark.asyncio
async def test_restore_during_login_is_skipped(
    manager: AuthSessionManager, provider: FakeAuthProvider
) -> None:
    gate = asyncio.Event()
    original_login = provider.login

    async def slow_login(permissions: Sequence[str]) -> ProviderLoginResult:
        await gate.wait()
        return await original_login(permissions)

    provider.login = slow_login  # type: ignore[method-assign]

    pending = asyncio.create_task(manager.login())
    await asyncio.sleep(0)

    state = await manager.restore()

    assert state is SessionState.AUTHENTICATING
    assert provider.access_token_calls == 0

    gate.set()
    assert (await pending).is_success


@pytest.mark.asyncio
async def test_profile_fetch_failure_persists_nothing(
    manager: AuthSessionManager,
    provider: FakeAuthProvider,
    store: RecordingStore,
    events: SessionEventBus,
) -> None:
    received = _record(events)
    provider.user_data_error = RuntimeError("graph api unavailable")

    result = await manager.login()

    assert not result.is_success
    assert result.error == "Failed to retrieve user data"
    assert result.error_code == "profile_fetch_failed"
    assert store.writes == []
    assert store.snapshot() == {}
    assert manager.state is SessionState.ERROR
    assert manager.current_user is None
    assert received == []


@pytest.mark.asyncio
async def test_profile_without_id_is_a_fetch_failure(
    manager: AuthSessionManager, provider: FakeAuthProvider, store: RecordingStore
) -> None:
    provider.user_data = {"name": "No Id"}

    result = await manager.login()

    assert result.error_code == "profile_fetch_failed"
    assert store.snapshot() == {}


@pytest.mark.asyncio
async def test_cancelled_login_returns_to_logged_out(
    manager: AuthSessionManager,
    provider: FakeAuthProvider,
    store: RecordingStore,
    events: SessionEventBus,
) -> None:
    received = _record(events)
    provider.login_result = ProviderLoginResult.cancelled()

    result = await manager.login()

    assert result.is_cancelled
    assert result.user_message == "Login was cancelled"
    assert manager.state is SessionState.LOGGED_OUT
    assert provider.user_data_calls == []
    assert store.snapshot() == {}
    assert received == []


@pytest.mark.asyncio
async def test_provider_failure_surfaces_message(
    manager: AuthSessionManager, provider: FakeAuthProvider, events: SessionEventBus
) -> None:
    received = _record(events)
    provider.login_result = ProviderLoginResult.failed("Network error while contacting Facebook")

    result = await manager.login()

    assert result.error == "Network error while contacting Facebook"
    assert result.error_code == "provider_failed"
    assert result.user_message == "Network error. Please check your connection and try again."
    assert manager.state is SessionState.ERROR
    assert received == []


@pytest.mark.asyncio
async def test_provider_failure_without_message_uses_fallback(
    manager: AuthSessionManager, provider: FakeAuthProvider
) -> None:
    provider.login_result = ProviderLoginResult.failed()

    result = await manager.login()

    assert result.error == "Login failed"


@pytest.mark.asyncio
async def test_success_without_token_is_an_error(
    manager: AuthSessionManager, provider: FakeAuthProvider, store: RecordingStore
) -> None:
    provider.login_result = ProviderLoginResult(status=ProviderLoginStatus.SUCCESS)

    result = await manager.login()

    assert result.error == "Access token is null"
    assert result.error_code == "missing_access_token"
    assert provider.user_data_calls == []
    assert store.snapshot() == {}


@pytest.mark.asyncio
async def test_unexpected_provider_exception_becomes_generic_failure(
    manager: AuthSessionManager, provider: FakeAuthProvider
) -> None:
    provider.login_error = RuntimeError("sdk crashed")

    result = await manager.login()

    assert result.error == "Login failed: sdk crashed"
    assert result.error_code == "login_failed"
    assert manager.state is SessionState.ERROR
    assert not manager.is_busy


@pytest.mark.asyncio
async def test_storage_failure_during_login_leaves_no_torn_credential(
    manager: AuthSessionManager, store: RecordingStore
) -> None:
    store.fail_writes_for = {USER_KEY}

    result = await manager.login()

    assert result.error_code == "storage_failed"
    assert store.snapshot() == {}
    assert manager.current_user is None
    assert manager.state is SessionState.ERROR


@pytest.mark.asyncio
async def test_session_expires_with_the_token(
    manager: AuthSessionManager,
    provider: FakeAuthProvider,
    store: RecordingStore,
    events: SessionEventBus,
    clock: FakeClock,
) -> None:
    received = _record(events)
    result = await manager.login()
    assert manager.is_logged_in

    clock.now = NOW + timedelta(days=60)

    assert manager.current_user is None
    assert not manager.is_logged_in
    assert manager.state is SessionState.LOGGED_OUT
    assert received == [LoggedIn(result.user), LoggedOut()]

    # Reading again does not publish a second time.
    assert manager.session is None
    assert received == [LoggedIn(result.user), LoggedOut()]

    assert await manager.restore() is SessionState.LOGGED_OUT
    assert store.snapshot() == {}
    assert provider.access_token_calls == 0
    assert received == [LoggedIn(result.user), LoggedOut()]


@pytest.mark.asyncio
async def test_login_after_expiry_wipes_stale_credential_first(
    manager: AuthSessionManager,
    provider: FakeAuthProvider,
    store: RecordingStore,
    clock: FakeClock,
) -> None:
    await manager.login()
    clock.now = NOW + timedelta(days=61)
    assert manager.session is None

    provider.login_result = ProviderLoginResult.cancelled()
    result = await manager.login()

    assert result.is_cancelled
    assert manager.state is SessionState.LOGGED_OUT
    assert store.snapshot() == {}


# --- restore ---------------------------------------------------------------


@pytest.mark.asyncio
async def test_restore_without_stored_keys_makes_no_provider_call(
    manager: AuthSessionManager, provider: FakeAuthProvider, events: SessionEventBus
) -> None:
    received = _record(events)

    state = await manager.restore()

    assert state is SessionState.LOGGED_OUT
    assert provider.access_token_calls == 0
    assert received == []


@pytest.mark.asyncio
async def test_restore_with_expired_token_wipes_without_validation(
    manager: AuthSessionManager, provider: FakeAuthProvider, store: RecordingStore
) -> None:
    await _seed(store, expires_at=NOW - timedelta(minutes=1))

    state = await manager.restore()

    assert state is SessionState.LOGGED_OUT
    assert store.snapshot() == {}
    assert provider.access_token_calls == 0


@pytest.mark.asyncio
async def test_restore_at_exact_expiry_wipes(
    manager: AuthSessionManager,
    provider: FakeAuthProvider,
    store: RecordingStore,
    events: SessionEventBus,
) -> None:
    await _seed(store, expires_at=NOW)
    received = _record(events)

    state = await manager.restore()

    assert state is SessionState.LOGGED_OUT
    assert manager.current_user is None
    assert store.snapshot() == {}
    assert provider.access_token_calls == 0
    assert received == []


@pytest.mark.asyncio
async def test_restore_with_failed_validation_wipes(
    manager: AuthSessionManager, provider: FakeAuthProvider, store: RecordingStore
) -> None:
    await _seed(store)
    provider.current_token = None

    state = await manager.restore()

    assert state is SessionState.LOGGED_OUT
    assert provider.access_token_calls == 1
    assert store.snapshot() == {}


@pytest.mark.asyncio
async def test_restore_with_provider_token_expired_wipes(
    manager: AuthSessionManager, provider: FakeAuthProvider, store: RecordingStore
) -> None:
    await _seed(store)
    provider.current_token = ProviderAccessToken("fb-token-1", NOW - timedelta(seconds=1))

    assert await manager.restore() is SessionState.LOGGED_OUT
    assert store.snapshot() == {}


@pytest.mark.asyncio
async def test_restore_when_validation_raises_wipes(
    manager: AuthSessionManager, provider: FakeAuthProvider, store: RecordingStore
) -> None:
    await _seed(store)
    provider.access_token_error = ConnectionError("offline")

    assert await manager.restore() is SessionState.LOGGED_OUT
    assert store.snapshot() == {}


@pytest.mark.asyncio
async def test_restore_adopts_valid_session(
    manager: AuthSessionManager,
    provider: FakeAuthProvider,
    store: RecordingStore,
    events: SessionEventBus,
) -> None:
    await _seed(store)
    received = _record(events)

    state = await manager.restore()

    assert state is SessionState.LOGGED_IN
    assert manager.current_user == STORED_USER
    assert manager.session is not None
    assert manager.session.access_token == "stored-token"
    assert received == [LoggedIn(STORED_USER)]
    assert provider.login_calls == []


@pytest.mark.asyncio
async def test_initialize_is_restore(
    manager: AuthSessionManager, store: RecordingStore
) -> None:
    await _seed(store)

    assert await manager.initialize() is SessionState.LOGGED_IN


@pytest.mark.asyncio
async def test_restore_with_missing_user_payload_wipes(
    manager: AuthSessionManager, store: RecordingStore
) -> None:
    await _seed(store, user=None)

    state = await manager.restore()

    assert state is SessionState.LOGGED_OUT
    assert store.snapshot() == {}


@pytest.mark.asyncio
async def test_restore_with_corrupted_user_payload_wipes(
    manager: AuthSessionManager, store: RecordingStore
) -> None:
    await _seed(store)
    await store.write(USER_KEY, "{not json")

    assert await manager.restore() is SessionState.LOGGED_OUT
    assert store.snapshot() == {}


@pytest.mark.asyncio
async def test_restore_with_corrupted_expiry_wipes(
    manager: AuthSessionManager, provider: FakeAuthProvider, store: RecordingStore
) -> None:
    await _seed(store)
    await store.write(EXPIRY_KEY, "tomorrow")

    assert await manager.restore() is SessionState.LOGGED_OUT
    assert store.snapshot() == {}
    assert provider.access_token_calls == 0


@pytest.mark.asyncio
async def test_restore_storage_read_failure_is_not_fatal(
    manager: AuthSessionManager, store: RecordingStore
) -> None:
    await _seed(store)
    store.fail_reads = True

    state = await manager.restore()

    assert state is SessionState.LOGGED_OUT
    assert store.snapshot() == {}


# --- refresh ---------------------------------------------------------------


@pytest.mark.asyncio
async def test_refresh_skipped_when_token_still_valid(
    manager: AuthSessionManager, provider: FakeAuthProvider
) -> None:
    assert await manager.refresh_token_if_needed() is False
    assert provider.refresh_calls == 0


@pytest.mark.asyncio
async def test_refresh_persists_new_token(
    manager: AuthSessionManager,
    provider: FakeAuthProvider,
    store: RecordingStore,
    clock: FakeClock,
) -> None:
    await manager.login()
    clock.now = NOW + timedelta(days=61)
    provider.current_token = ProviderAccessToken("fb-token-1", NOW + timedelta(days=60))
    provider.refreshed_token = ProviderAccessToken("fb-token-2", NOW + timedelta(days=120))

    assert await manager.refresh_token_if_needed() is True

    snapshot = store.snapshot()
    assert snapshot[TOKEN_KEY] == "fb-token-2"
    assert snapshot[EXPIRY_KEY] == format_expiry(NOW + timedelta(days=120))
    assert manager.session is not None
    assert manager.session.access_token == "fb-token-2"
    assert manager.is_logged_in


@pytest.mark.asyncio
async def test_refresh_rejects_expired_replacement(
    manager: AuthSessionManager,
    provider: FakeAuthProvider,
    store: RecordingStore,
    clock: FakeClock,
) -> None:
    clock.now = NOW + timedelta(days=61)
    provider.refreshed_token = ProviderAccessToken("fb-token-2", NOW + timedelta(days=61))

    assert await manager.refresh_token_if_needed() is False
    assert provider.refresh_calls == 1
    assert TOKEN_KEY not in store.snapshot()


@pytest.mark.asyncio
async def test_refresh_never_raises(
    manager: AuthSessionManager, provider: FakeAuthProvider
) -> None:
    provider.access_token_error = RuntimeError("sdk unavailable")

    assert await manager.refresh_token_if_needed() is False


# --- logout ----------------------------------------------------------------


@pytest.mark.asyncio
async def test_logout_clears_storage_and_publishes(
    manager: AuthSessionManager,
    provider: FakeAuthProvider,
    store: RecordingStore,
    events: SessionEventBus,
) -> None:
    await manager.login()
    received = _record(events)

    await manager.logout()

    assert provider.logout_calls == 1
    assert store.snapshot() == {}
    assert manager.state is SessionState.LOGGED_OUT
    assert manager.current_user is None
    assert received == [LoggedOut()]


@pytest.mark.asyncio
async def test_logout_clears_even_when_provider_fails(
    manager: AuthSessionManager,
    provider: FakeAuthProvider,
    store: RecordingStore,
    events: SessionEventBus,
) -> None:
    await manager.login()
    received = _record(events)
    provider.logout_error = RuntimeError("facebook sdk error")

    with pytest.raises(ProviderError) as excinfo:
        await manager.logout()

    assert excinfo.value.error_code == "logout_failed"
    assert store.snapshot() == {}
    assert manager.state is SessionState.LOGGED_OUT
    assert manager.current_user is None
    assert received == [LoggedOut()]


@pytest.mark.asyncio
async def test_invalidate_publishes_only_for_held_session(
    manager: AuthSessionManager, events: SessionEventBus
) -> None:
    received = _record(events)

    await manager.invalidate("unauthorized")
    assert received == []

    await manager.login()
    await manager.invalidate("unauthorized")

    assert received[-1] == LoggedOut()
    assert manager.current_user is None


# --- misc ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_current_access_token(
    manager: AuthSessionManager, provider: FakeAuthProvider
) -> None:
    assert await manager.get_current_access_token() == "fb-token-1"

    provider.access_token_error = RuntimeError("boom")
    assert await manager.get_current_access_token() is None


@pytest.mark.asyncio
async def test_aclose_closes_event_bus(
    manager: AuthSessionManager, events: SessionEventBus
) -> None:
    await manager.aclose()

    assert events.closed
