"""Account and profile persistence."""

from typing import Any

from sqlalchemy import delete, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from gatehouse.models import Account, Profile
from gatehouse.schemas.auth import IdentityClaims

# Columns a profile update may touch; identity columns are managed elsewhere
PROFILE_UPDATABLE_FIELDS = frozenset(
    {
        "username",
        "display_name",
        "first_name",
        "last_name",
        "email",
        "bio",
        "website",
        "profile_image_url",
        "time_zone",
        "number_of_wins",
        "number_of_losses",
        "number_of_ties",
        "level",
        "points",
    }
)


def build_claims(account: Account, profile: Profile | None) -> IdentityClaims:
    """Merge account and profile fields into the identity carried by access tokens."""
    return IdentityClaims(
        email=account.email,
        user_id=account.id,
        first_name=(profile.first_name if profile else None) or account.first_name,
        last_name=(profile.last_name if profile else None) or account.last_name,
        username=account.username,
        display_name=profile.display_name if profile else None,
    )


class AccountStore:
    """Lookup and mutation of accounts."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def find_by_id(self, user_id: str) -> Account | None:
        async with self.session_factory() as db:
            return await db.get(Account, user_id)

    async def find_by_email(self, email: str) -> Account | None:
        async with self.session_factory() as db:
            result = await db.execute(select(Account).where(Account.email == email))
            return result.scalar_one_or_none()

    async def find_by_username(self, username: str) -> Account | None:
        async with self.session_factory() as db:
            result = await db.execute(select(Account).where(Account.username == username))
            return result.scalar_one_or_none()

    async def create(self, account: Account, profile: Profile) -> Account:
        """Insert an account together with its profile."""
        async with self.session_factory() as db:
            db.add(account)
            db.add(profile)
            await db.commit()
        return account

    async def update_fields(self, user_id: str, **fields: Any) -> Account | None:
        async with self.session_factory() as db:
            account = await db.get(Account, user_id)
            if account is None:
                return None
            for name, value in fields.items():
                setattr(account, name, value)
            await db.commit()
            return account

    async def delete(self, user_id: str) -> bool:
        """Delete an account and its profile. Returns False if it did not exist."""
        async with self.session_factory() as db:
            account = await db.get(Account, user_id)
            if account is None:
                return False
            await db.execute(delete(Profile).where(Profile.user_id == user_id))
            await db.delete(account)
            await db.commit()
            return True

    async def list_all(self) -> list[Account]:
        async with self.session_factory() as db:
            result = await db.execute(select(Account).order_by(Account.email))
            return list(result.scalars().all())


class ProfileStore:
    """Lookup and mutation of profiles."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def find_by_user_id(self, user_id: str) -> Profile | None:
        async with self.session_factory() as db:
            result = await db.execute(select(Profile).where(Profile.user_id == user_id))
            return result.scalar_one_or_none()

    async def find_by_username(self, username: str) -> Profile | None:
        async with self.session_factory() as db:
            result = await db.execute(select(Profile).where(Profile.username == username))
            return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Profile | None:
        async with self.session_factory() as db:
            result = await db.execute(select(Profile).where(Profile.email == email.strip().lower()))
            return result.scalar_one_or_none()

    async def set_blocked(self, user_id: str, blocked: bool) -> bool:
        """Flag or unflag a profile as blocked. False if there is no profile."""
        async with self.session_factory() as db:
            result = await db.execute(
                update(Profile).where(Profile.user_id == user_id).values(blocked=blocked)
            )
            await db.commit()
            return bool(result.rowcount)

    async def update(self, user_id: str, **fields: Any) -> Profile | None:
        """Apply field updates to a profile and return it, or None if missing."""
        unknown = set(fields) - PROFILE_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")

        async with self.session_factory() as db:
            result = await db.execute(select(Profile).where(Profile.user_id == user_id))
            profile = result.scalar_one_or_none()
            if profile is None:
                return None
            for name, value in fields.items():
                setattr(profile, name, value)
            await db.commit()
            return profile

    async def search(self, text: str, limit: int = 10) -> list[Profile]:
        """Case-insensitive substring search over username, display name and email."""
        escaped = text.strip().lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        async with self.session_factory() as db:
            result = await db.execute(
                select(Profile)
                .where(
                    or_(
                        func.lower(Profile.username).like(pattern, escape="\\"),
                        func.lower(Profile.display_name).like(pattern, escape="\\"),
                        func.lower(Profile.email).like(pattern, escape="\\"),
                    )
                )
                .order_by(Profile.username)
                .limit(limit)
            )
            return list(result.scalars().all())
