"""Profile command tests."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from gatehouse.models import Account
from gatehouse.services.container import Services
from gatehouse.services.profiles import (
    ADJECTIVES,
    AssignRandomDisplayName,
    FindUser,
    GetProfile,
    RemoveProfileImage,
    SearchProfiles,
    SearchUser,
    SetProfileImage,
    UpdateInfo,
    UpdateProfile,
    generate_display_name,
)


def test_generate_display_name():
    names = {generate_display_name() for _ in range(50)}

    assert len(names) > 1
    assert all(any(adj in name for adj in ADJECTIVES) for name in names)


@pytest.mark.asyncio
async def test_get_profile(services: Services, account: Account):
    result = await services.profile_service.execute(GetProfile(user_id=account.id), actor_id=account.id)

    assert result.succeeded is True
    assert result.profile.username == "tester"
    assert result.profile.display_name == "SwiftFalcon"


@pytest.mark.asyncio
async def test_get_missing_profile(services: Services):
    result = await services.profile_service.execute(GetProfile(user_id="nope"), actor_id="nope")

    assert result.succeeded is False
    assert result.error_message == "User not found."


@pytest.mark.asyncio
async def test_find_user_by_username_or_id(services: Services, account: Account):
    by_name = await services.profile_service.execute(FindUser(username="tester"), actor_id=account.id)
    by_id = await services.profile_service.execute(SearchUser(user_id=account.id), actor_id=account.id)
    neither = await services.profile_service.execute(FindUser(), actor_id=account.id)

    assert by_name.profile.user_id == account.id
    assert by_id.profile.user_id == account.id
    assert neither.succeeded is False


@pytest.mark.asyncio
async def test_find_user_by_email(services: Services, account: Account):
    result = await services.profile_service.execute(FindUser(email=" Test@Example.com "), actor_id=account.id)
    missing = await services.profile_service.execute(FindUser(email="nobody@example.com"), actor_id=account.id)

    assert result.profile.user_id == account.id
    assert missing.succeeded is False


@pytest.mark.asyncio
async def test_search_profiles(services: Services, account: Account, google_account: Account):
    service = services.profile_service

    by_display = await service.execute(SearchProfiles(text="swiftfal"), actor_id=account.id)
    by_email = await service.execute(SearchProfiles(text="EXAMPLE.COM"), actor_id=account.id)
    empty = await service.execute(SearchProfiles(text="   "), actor_id=account.id)

    assert [p.username for p in by_display.profiles] == ["tester"]
    assert len(by_email.profiles) == 2
    assert empty.profiles == []


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(services: Services, account: Account, google_account: Account):
    result = await services.profile_service.execute(SearchProfiles(text="_"), actor_id=account.id)

    # Only the google account's username contains an underscore
    assert [p.username for p in result.profiles] == [google_account.username]


@pytest.mark.asyncio
async def test_update_profile_applies_to_actor(services: Services, account: Account, google_account: Account):
    result = await services.profile_service.execute(
        UpdateProfile(fields={"bio": "Hello there", "website": "https://example.com"}),
        actor_id=account.id,
    )

    assert result.succeeded is True
    assert result.profile.bio == "Hello there"
    other = await services.profiles.find_by_user_id(google_account.id)
    assert other.bio is None


@pytest.mark.asyncio
async def test_update_profile_rejects_protected_fields(services: Services, account: Account):
    result = await services.profile_service.execute(
        UpdateProfile(fields={"is_admin": True, "bio": "x"}), actor_id=account.id
    )

    assert result.succeeded is False
    assert "is_admin" in result.error_message
    assert (await services.profiles.find_by_user_id(account.id)).is_admin is False


@pytest.mark.asyncio
async def test_assign_random_display_name_keeps_existing(services: Services, account: Account):
    result = await services.profile_service.execute(AssignRandomDisplayName(), actor_id=account.id)

    assert result.display_name == "SwiftFalcon"


@pytest.mark.asyncio
async def test_assign_random_display_name_fills_blank(services: Services, account: Account):
    await services.profiles.update(account.id, display_name="  ")

    result = await services.profile_service.execute(AssignRandomDisplayName(), actor_id=account.id)

    assert result.succeeded is True
    assert result.display_name.strip()
    assert (await services.profiles.find_by_user_id(account.id)).display_name == result.display_name


@pytest.mark.asyncio
async def test_profile_image(services: Services, account: Account):
    service = services.profile_service

    set_result = await service.execute(
        SetProfileImage(profile_image_url="https://cdn.example.com/me.png"), actor_id=account.id
    )
    assert set_result.profile.profile_image_url == "https://cdn.example.com/me.png"

    removed = await service.execute(RemoveProfileImage(), actor_id=account.id)
    assert removed.profile.profile_image_url is None


@pytest.mark.asyncio
async def test_update_info(services: Services, account: Account):
    service = services.profile_service

    missing = await service.execute(UpdateInfo(first_name="", last_name="Smith"), actor_id=account.id)
    assert missing.succeeded is False

    result = await service.execute(
        UpdateInfo(first_name="Jane", last_name="Smith", bio="Plays chess", display_name="LunarKnight"),
        actor_id=account.id,
    )
    assert result.profile.first_name == "Jane"
    assert result.profile.display_name == "LunarKnight"


@pytest.mark.asyncio
async def test_store_failure_becomes_result(services: Services, account: Account):
    with patch.object(
        services.profiles,
        "find_by_user_id",
        new_callable=AsyncMock,
        side_effect=OperationalError("SELECT", {}, Exception("db down")),
    ):
        result = await services.profile_service.execute(GetProfile(user_id=account.id), actor_id=account.id)

    assert result.succeeded is False
