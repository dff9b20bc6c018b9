"""Persistence for login sessions."""

from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from gatehouse.models import AuthSession, utcnow


class SessionStore:
    """CRUD over ``auth_sessions``.

    Every call runs in its own database session, so a single instance can be
    shared across concurrent requests.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def create(
        self,
        session_id: str,
        user_id: str,
        *,
        expires_at: datetime,
        created_at: datetime | None = None,
        device: str | None = None,
        location: str | None = None,
    ) -> AuthSession:
        record = AuthSession(
            session_id=session_id,
            user_id=user_id,
            created_at=created_at or utcnow(),
            expires_at=expires_at,
            device=device,
            location=location,
        )
        async with self.session_factory() as db:
            db.add(record)
            await db.commit()
        return record

    async def find_by_session_id(self, session_id: str) -> AuthSession | None:
        async with self.session_factory() as db:
            result = await db.execute(
                select(AuthSession).where(AuthSession.session_id == session_id)
            )
            return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> list[AuthSession]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(AuthSession)
                .where(AuthSession.user_id == user_id)
                .order_by(AuthSession.created_at.desc())  # type: ignore[attr-defined]
            )
            return list(result.scalars().all())

    async def delete_one(self, session_id: str) -> None:
        """Delete a session. Unknown ids are ignored."""
        async with self.session_factory() as db:
            await db.execute(delete(AuthSession).where(AuthSession.session_id == session_id))
            await db.commit()

    async def delete_all_for_user(self, user_id: str) -> int:
        """Delete every session owned by a user and return how many were removed."""
        async with self.session_factory() as db:
            result = await db.execute(delete(AuthSession).where(AuthSession.user_id == user_id))
            await db.commit()
            return result.rowcount or 0
