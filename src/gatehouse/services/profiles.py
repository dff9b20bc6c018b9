"""Profile commands.

Every profile operation is a small command class. ``ProfileService.execute``
matches on the command type; adding a command means adding a class to the
``ProfileCommand`` union and a branch to the match, and type checkers flag a
missing branch through ``assert_never``.

Mutating commands always apply to the signed-in user.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Any, assert_never

from sqlalchemy.exc import SQLAlchemyError

from gatehouse.models import Profile
from gatehouse.schemas.common import OperationResult
from gatehouse.schemas.profiles import ProfileRead, ProfileSummary
from gatehouse.services.accounts import ProfileStore

logger = logging.getLogger(__name__)

ADJECTIVES = [
    "Swift", "Mighty", "Shadow", "Golden", "Silver", "Crimson", "Azure", "Emerald",
    "Thunder", "Lightning", "Frost", "Blaze", "Storm", "Void", "Cosmic", "Lunar",
    "Solar", "Stellar", "Nebula", "Phoenix", "Dragon", "Wolf", "Eagle", "Lion",
    "Tiger", "Bear", "Shark", "Viper", "Cobra", "Falcon", "Hawk", "Raven",
    "Ghost", "Phantom", "Wraith", "Specter", "Valkyrie", "Knight", "Warrior", "Mage",
    "Archer", "Rogue", "Paladin", "Wizard", "Ninja", "Samurai", "Viking", "Gladiator",
    "Champion", "Hero", "Legend", "Myth", "Epic", "Divine",
]

NOUNS = [
    "Striker", "Slayer", "Hunter", "Seeker", "Runner", "Jumper", "Fighter", "Guardian",
    "Protector", "Defender", "Avenger", "Crusader", "Justice", "Honor", "Glory",
    "Victory", "Triumph", "Conquest", "Dominion", "Empire", "Kingdom", "Realm",
    "Dimension", "Universe", "Galaxy", "Star", "Planet", "Moon", "Sun", "Comet",
    "Meteor", "Asteroid", "BlackHole", "Wormhole", "Portal", "Gateway",
    "Path", "Trail", "Journey", "Quest", "Adventure", "Expedition", "Voyage",
]

TAGS = [
    "X", "Z", "Alpha", "Beta", "Omega", "Prime", "Ultra", "Mega", "Super", "Hyper",
    "Neo", "Cyber", "Digital", "Virtual", "Quantum", "Atomic", "Nuclear", "Plasma",
    "Fusion", "Gravity", "Magnetic", "Electric", "Sonic",
]


def generate_display_name() -> str:
    """Random display name such as ``FrostComet``, ``NeoRaven`` or ``SwiftTheQuest``."""
    adjective = secrets.choice(ADJECTIVES)
    noun = secrets.choice(NOUNS)
    tag = secrets.choice(TAGS)
    number = secrets.randbelow(999) + 1

    patterns = [
        f"{adjective}{noun}",
        f"{adjective}{noun}{number}",
        f"{adjective}{tag}",
        f"{tag}{adjective}",
        f"{adjective}The{noun}",
        f"{adjective}{noun}{tag}",
        f"{adjective}{tag}{noun}",
        f"{tag}{adjective}{noun}",
    ]
    return secrets.choice(patterns)


# Queries


@dataclass(frozen=True)
class GetProfile:
    user_id: str


@dataclass(frozen=True)
class FindUser:
    username: str | None = None
    user_id: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class SearchUser:
    username: str | None = None
    user_id: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class SearchProfiles:
    text: str
    limit: int = 10


# Mutations (applied to the signed-in user)


@dataclass(frozen=True)
class UpdateProfile:
    fields: dict[str, Any]


@dataclass(frozen=True)
class AssignRandomDisplayName:
    pass


@dataclass(frozen=True)
class SetProfileImage:
    profile_image_url: str


@dataclass(frozen=True)
class RemoveProfileImage:
    pass


@dataclass(frozen=True)
class UpdateInfo:
    first_name: str
    last_name: str
    bio: str | None = None
    display_name: str | None = None


ProfileQuery = GetProfile | FindUser | SearchUser | SearchProfiles
ProfileMutation = UpdateProfile | AssignRandomDisplayName | SetProfileImage | RemoveProfileImage | UpdateInfo
ProfileCommand = ProfileQuery | ProfileMutation

# Fields a user may change through UpdateProfile
SELF_EDITABLE_FIELDS = frozenset({"display_name", "first_name", "last_name", "bio", "website", "time_zone"})

NOT_FOUND = "User not found."


class ProfileResult(OperationResult):
    """Result of a profile command."""

    profile: ProfileRead | None = None
    profiles: list[ProfileSummary] | None = None
    display_name: str | None = None


class ProfileService:
    """Executes profile commands against the profile store."""

    def __init__(self, profiles: ProfileStore) -> None:
        self.profiles = profiles

    async def execute(self, command: ProfileCommand, *, actor_id: str) -> ProfileResult:
        """Run a command on behalf of ``actor_id``; store errors become a failed result."""
        try:
            return await self._dispatch(command, actor_id)
        except SQLAlchemyError as e:
            logger.error(f"Profile command {type(command).__name__} failed: {e!r}")
            return ProfileResult(succeeded=False, error_message="Failed to process profile request.")

    async def _dispatch(self, command: ProfileCommand, actor_id: str) -> ProfileResult:
        match command:
            case GetProfile(user_id=user_id):
                return self._found(await self.profiles.find_by_user_id(user_id))
            case FindUser(username=username, user_id=user_id, email=email) | SearchUser(
                username=username, user_id=user_id, email=email
            ):
                if username:
                    return self._found(await self.profiles.find_by_username(username))
                if user_id:
                    return self._found(await self.profiles.find_by_user_id(user_id))
                if email:
                    return self._found(await self.profiles.find_by_email(email))
                return ProfileResult(succeeded=False, error_message="Please provide a userId, username or email.")
            case SearchProfiles(text=text, limit=limit):
                if not text.strip():
                    return ProfileResult(succeeded=True, profiles=[])
                matches = await self.profiles.search(text, limit=max(1, min(limit, 50)))
                return ProfileResult(
                    succeeded=True,
                    profiles=[ProfileSummary.model_validate(p) for p in matches],
                )
            case UpdateProfile(fields=fields):
                disallowed = set(fields) - SELF_EDITABLE_FIELDS
                if disallowed:
                    return ProfileResult(
                        succeeded=False,
                        error_message=f"These fields cannot be changed: {', '.join(sorted(disallowed))}",
                    )
                if not fields:
                    return ProfileResult(succeeded=False, error_message="Nothing to update.")
                return self._found(await self.profiles.update(actor_id, **fields))
            case AssignRandomDisplayName():
                return await self._assign_display_name(actor_id)
            case SetProfileImage(profile_image_url=url):
                return self._found(await self.profiles.update(actor_id, profile_image_url=url))
            case RemoveProfileImage():
                return self._found(await self.profiles.update(actor_id, profile_image_url=None))
            case UpdateInfo(first_name=first_name, last_name=last_name, bio=bio, display_name=display_name):
                if not first_name or not last_name:
                    return ProfileResult(succeeded=False, error_message="First and last name are required.")
                return self._found(
                    await self.profiles.update(
                        actor_id,
                        first_name=first_name,
                        last_name=last_name,
                        bio=bio,
                        display_name=display_name,
                    )
                )
            case _:
                assert_never(command)

    async def _assign_display_name(self, user_id: str) -> ProfileResult:
        """Give the user a random display name unless they already have one."""
        profile = await self.profiles.find_by_user_id(user_id)
        if profile is None:
            return ProfileResult(succeeded=False, error_message=NOT_FOUND)
        if profile.display_name and profile.display_name.strip():
            return self._found(profile, display_name=profile.display_name)

        display_name = generate_display_name()
        updated = await self.profiles.update(user_id, display_name=display_name)
        return self._found(updated, display_name=display_name)

    @staticmethod
    def _found(profile: Profile | None, **extra: Any) -> ProfileResult:
        if profile is None:
            return ProfileResult(succeeded=False, error_message=NOT_FOUND)
        return ProfileResult(
            succeeded=True,
            profile=ProfileRead.model_validate(profile),
            **extra,
        )
