"""Session manager tests."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from gatehouse.models import Account
from gatehouse.services.accounts import build_claims
from gatehouse.services.container import Services
from gatehouse.services.sessions import SessionManager
from tests.conftest import FakeClock


async def _claims(services: Services, account: Account):
    profile = await services.profiles.find_by_user_id(account.id)
    return build_claims(account, profile)


@pytest.mark.asyncio
async def test_login_creates_new_session_each_time(services: Services, account: Account):
    claims = await _claims(services, account)

    first = await services.sessions.login(claims, device="phone", location="Paris")
    second = await services.sessions.login(claims)

    assert first.session_id != second.session_id
    assert services.codec.verify(first.access_token) == claims
    stored = await services.session_store.find_by_session_id(first.session_id)
    assert stored is not None
    assert stored.device == "phone"
    assert stored.location == "Paris"


@pytest.mark.asyncio
async def test_refresh_keeps_session_id(services: Services, account: Account):
    tokens = await services.sessions.login(await _claims(services, account))

    result = await services.sessions.refresh(tokens.session_id)

    assert result.is_token_refresh is True
    assert result.session_id == tokens.session_id
    assert services.codec.verify(result.access_token).user_id == account.id


@pytest.mark.asyncio
async def test_refresh_picks_up_profile_changes(services: Services, account: Account):
    tokens = await services.sessions.login(await _claims(services, account))
    await services.profiles.update(account.id, display_name="CosmicComet")

    result = await services.sessions.refresh(tokens.session_id)

    assert services.codec.verify(result.access_token).display_name == "CosmicComet"


@pytest.mark.asyncio
@pytest.mark.parametrize("session_id", [None, "", "never-issued"])
async def test_refresh_rejects_unknown(services: Services, session_id: str | None):
    result = await services.sessions.refresh(session_id)

    assert result.is_token_refresh is False
    assert result.access_token is None


@pytest.mark.asyncio
async def test_refresh_after_logout_rejected(services: Services, account: Account):
    tokens = await services.sessions.login(await _claims(services, account))

    await services.sessions.logout(tokens.session_id)
    await services.sessions.logout(tokens.session_id)

    assert (await services.sessions.refresh(tokens.session_id)).is_token_refresh is False


@pytest.mark.asyncio
async def test_expired_session_is_absent(services: Services, account: Account, clock: FakeClock):
    tokens = await services.sessions.login(await _claims(services, account))

    clock.advance(days=90)

    assert (await services.sessions.refresh(tokens.session_id)).is_token_refresh is False
    assert await services.session_store.find_by_session_id(tokens.session_id) is None


@pytest.mark.asyncio
async def test_refresh_rejected_when_account_gone(services: Services, account: Account):
    tokens = await services.sessions.login(await _claims(services, account))
    await services.accounts.delete(account.id)

    assert (await services.sessions.refresh(tokens.session_id)).is_token_refresh is False


@pytest.mark.asyncio
async def test_refresh_rotates_when_enabled(services: Services, account: Account):
    manager = SessionManager(
        services.session_store,
        services.codec,
        services.accounts,
        services.profiles,
        services.settings.model_copy(update={"rotate_session_on_refresh": True}),
        services.sessions.clock,
    )
    tokens = await manager.login(await _claims(services, account), device="tablet")

    result = await manager.refresh(tokens.session_id)

    assert result.is_token_refresh is True
    assert result.session_id != tokens.session_id
    assert await services.session_store.find_by_session_id(tokens.session_id) is None
    rotated = await services.session_store.find_by_session_id(result.session_id)
    assert rotated.device == "tablet"


@pytest.mark.asyncio
async def test_refresh_store_failure_rejected(services: Services):
    with patch.object(
        services.session_store,
        "find_by_session_id",
        new_callable=AsyncMock,
        side_effect=OperationalError("SELECT", {}, Exception("db down")),
    ):
        result = await services.sessions.refresh("some-session")

    assert result.is_token_refresh is False


@pytest.mark.asyncio
async def test_revoke_all_and_list(services: Services, account: Account, clock: FakeClock):
    claims = await _claims(services, account)
    await services.sessions.login(claims)
    clock.advance(minutes=1)
    newest = await services.sessions.login(claims)

    sessions = await services.sessions.list_sessions(account.id)
    assert [s.session_id for s in sessions][0] == newest.session_id
    assert len(sessions) == 2

    assert await services.sessions.revoke_all(account.id) == 2
    assert await services.sessions.list_sessions(account.id) == []


@pytest.mark.asyncio
async def test_logout_store_failure_is_reported(services: Services, account: Account, caplog):
    tokens = await services.sessions.login(await _claims(services, account))

    with patch.object(
        services.session_store,
        "delete_one",
        AsyncMock(side_effect=OperationalError("DELETE", {}, Exception("db down"))),
    ):
        result = await services.sessions.logout(tokens.session_id)

    assert result.succeeded is False
    assert "Logout failed" in caplog.text


@pytest.mark.asyncio
async def test_remove_own_session(services: Services, account: Account):
    tokens = await services.sessions.login(await _claims(services, account))

    result = await services.sessions.remove_session(account.id, tokens.session_id)

    assert result.succeeded is True
    assert await services.session_store.find_by_session_id(tokens.session_id) is None


@pytest.mark.asyncio
async def test_remove_session_of_another_user(services: Services, account: Account, google_account: Account):
    tokens = await services.sessions.login(await _claims(services, google_account))

    result = await services.sessions.remove_session(account.id, tokens.session_id)

    assert result.succeeded is False
    assert result.error_message == "Session not found."
    assert await services.session_store.find_by_session_id(tokens.session_id) is not None


@pytest.mark.asyncio
async def test_remove_session_store_failure(services: Services, account: Account):
    with patch.object(
        services.session_store,
        "find_by_session_id",
        AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down"))),
    ):
        result = await services.sessions.remove_session(account.id, "whatever")

    assert result.succeeded is False


@pytest.mark.asyncio
async def test_refresh_rejected_once_blocked(services: Services, account: Account):
    tokens = await services.sessions.login(await _claims(services, account))

    assert await services.profiles.set_blocked(account.id, True) is True

    assert (await services.sessions.refresh(tokens.session_id)).is_token_refresh is False
    assert await services.sessions.resolve_identity(account.id) is None
