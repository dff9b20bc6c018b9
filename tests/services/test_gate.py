"""Authentication gate tests."""

from unittest.mock import AsyncMock, patch

import pytest

from gatehouse.models import Account
from gatehouse.services.container import Services
from tests.conftest import TEST_PASSWORD, FakeClock


async def _login(services: Services, account: Account):
    result = await services.identity.login_with_password(account.email, TEST_PASSWORD)
    return result.secure_session


@pytest.mark.asyncio
async def test_valid_access_token(services: Services, account: Account):
    tokens = await _login(services, account)

    check = await services.gate.authenticate(tokens.access_token, None)

    assert check.is_logged_in is True
    assert check.is_token_refresh is False
    assert check.user.user_id == account.id
    assert check.new_access_token is None


@pytest.mark.asyncio
async def test_expired_token_refreshed_from_session(services: Services, account: Account, clock: FakeClock):
    tokens = await _login(services, account)
    clock.advance(minutes=16)

    check = await services.gate.authenticate(tokens.access_token, tokens.session_id)

    assert check.is_logged_in is True
    assert check.is_token_refresh is True
    assert check.new_access_token != tokens.access_token
    assert check.new_session_id == tokens.session_id
    assert services.codec.verify(check.new_access_token).user_id == account.id


@pytest.mark.asyncio
async def test_session_only(services: Services, account: Account):
    tokens = await _login(services, account)

    check = await services.gate.authenticate(None, tokens.session_id)

    assert check.is_logged_in is True
    assert check.is_token_refresh is True


@pytest.mark.asyncio
async def test_nothing_presented(services: Services):
    check = await services.gate.authenticate(None, None)

    assert check.is_logged_in is False
    assert check.user is None


@pytest.mark.asyncio
async def test_expired_token_and_dead_session(services: Services, account: Account, clock: FakeClock):
    tokens = await _login(services, account)
    await services.sessions.logout(tokens.session_id)
    clock.advance(minutes=16)

    check = await services.gate.authenticate(tokens.access_token, tokens.session_id)

    assert check.is_logged_in is False


@pytest.mark.asyncio
async def test_unexpected_error_fails_closed(services: Services):
    with patch.object(
        services.sessions, "refresh", new_callable=AsyncMock, side_effect=RuntimeError("boom")
    ):
        check = await services.gate.authenticate("garbage", "some-session")

    assert check.is_logged_in is False
    assert check.error_message
