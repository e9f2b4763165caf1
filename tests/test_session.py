from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import AuthError
from database.manager import SESSION_KEY, LocalSettings
from models.session import SessionLease
from services.session_service import OfflineSessionManager, SessionManager, needs_refresh

NOW = datetime(2025, 2, 3, 12, 0, tzinfo=timezone.utc)


def make_lease(expires_in: timedelta) -> SessionLease:
    return SessionLease(
        access_token="access",
        refresh_token="refresh",
        user_id="user-1",
        expires_at=NOW + expires_in,
        checked_at=NOW,
    )


def test_needs_refresh_without_lease():
    assert needs_refresh(None, NOW)


@pytest.mark.parametrize("expires_in, leeway, expected", [
    (timedelta(hours=1), 60, False),
    (timedelta(seconds=61), 60, False),
    (timedelta(seconds=60), 60, True),
    (timedelta(seconds=30), 60, True),
    (timedelta(seconds=-5), 0, True),
    (timedelta(seconds=5), 0, False),
])
def test_needs_refresh_boundaries(expires_in, leeway, expected):
    assert needs_refresh(make_lease(expires_in), NOW, leeway) is expected


def test_lease_round_trips_through_settings(tmp_path):
    settings = LocalSettings(tmp_path / "settings.json")
    lease = make_lease(timedelta(hours=1))
    settings.set(SESSION_KEY, lease.to_dict())

    restored = SessionLease.from_dict(LocalSettings(tmp_path / "settings.json").get(SESSION_KEY))

    assert restored == lease


@pytest.mark.asyncio
async def test_offline_sign_in_is_stable_and_persisted(settings):
    manager = OfflineSessionManager(settings, now=lambda: NOW)

    first = await manager.sign_in("Me@Example.com", "secret")
    second = await manager.sign_in("me@example.com ", "other")

    assert first == second
    assert OfflineSessionManager(settings).get_current_user_id() == first


@pytest.mark.asyncio
async def test_refresh_without_session_raises(settings):
    manager = OfflineSessionManager(settings, now=lambda: NOW)

    assert manager.get_current_user_id() is None
    with pytest.raises(AuthError):
        await manager.refresh_session()
    with pytest.raises(AuthError):
        manager.require_user_id()


@pytest.mark.asyncio
async def test_ensure_session_refreshes_expiring_lease(settings):
    clock = {"now": NOW}
    manager = OfflineSessionManager(settings, leeway_seconds=60, now=lambda: clock["now"])
    user_id = await manager.sign_in("me@example.com", "secret")
    old_token = manager.lease.access_token

    clock["now"] = manager.lease.expires_at - timedelta(seconds=30)
    lease = await manager.ensure_session()

    assert lease.access_token != old_token
    assert lease.user_id == user_id
    assert lease.expires_at > clock["now"] + timedelta(days=1)


@pytest.mark.asyncio
async def test_sign_out_clears_lease(settings):
    manager = OfflineSessionManager(settings, now=lambda: NOW)
    await manager.sign_in("me@example.com", "secret")

    await manager.sign_out()

    assert manager.get_current_user_id() is None
    assert settings.get(SESSION_KEY) is None


def test_session_manager_needs_an_auth_backend(settings):
    with pytest.raises(TypeError):
        SessionManager(settings)
