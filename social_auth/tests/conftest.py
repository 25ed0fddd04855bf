from __future__ import annotations

import pytest

from social_auth.infrastructure.facebook_auth.services.credential_repository import (
    CredentialRepository,
)
from social_auth.infrastructure.facebook_auth.services.event_bus import SessionEventBus
from social_auth.infrastructure.facebook_auth.services.session_manager import (
    AuthSessionManager,
)
from social_auth.tests.fakes import FakeAuthProvider, FakeClock, RecordingStore


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def provider() -> FakeAuthProvider:
    return FakeAuthProvider()


@pytest.fixture()
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture()
def events() -> SessionEventBus:
    return SessionEventBus()


@pytest.fixture()
def manager(
    provider: FakeAuthProvider,
    store: RecordingStore,
    events: SessionEventBus,
    clock: FakeClock,
) -> AuthSessionManager:
    return AuthSessionManager(
        provider=provider,
        credentials=CredentialRepository(store),
        events=events,
        clock=clock,
    )
