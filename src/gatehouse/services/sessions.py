"""Session lifecycle: login, refresh, logout and revocation.

A login produces two credentials:

- a short-lived access token (stateless JWT, see ``TokenCodec``)
- a long-lived session id backed by an ``auth_sessions`` row

When the access token expires, the session id is exchanged for a new access
token built from the *current* account and profile, so name changes show up
without signing in again. The session id stays the same across refreshes
unless ``rotate_session_on_refresh`` is enabled.
"""

import logging
import secrets
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from gatehouse.config import Settings
from gatehouse.models import AuthSession, ensure_utc
from gatehouse.schemas.auth import IdentityClaims, RefreshResult, SessionTokens
from gatehouse.schemas.common import OperationResult
from gatehouse.services.accounts import AccountStore, ProfileStore, build_claims
from gatehouse.services.session_store import SessionStore
from gatehouse.services.tokens import Clock, TokenCodec

logger = logging.getLogger(__name__)

SESSION_NOT_FOUND = "Session not found."
LOGOUT_FAILED = "Could not end the session. Please try again."


def generate_session_id() -> str:
    """256 bits of randomness, URL-safe."""
    return secrets.token_urlsafe(32)


class SessionManager:
    """Mints, refreshes and revokes sessions."""

    def __init__(
        self,
        store: SessionStore,
        codec: TokenCodec,
        accounts: AccountStore,
        profiles: ProfileStore,
        settings: Settings,
        clock: Clock,
    ) -> None:
        self.store = store
        self.codec = codec
        self.accounts = accounts
        self.profiles = profiles
        self.session_ttl = timedelta(days=settings.session_ttl_days)
        self.rotate_on_refresh = settings.rotate_session_on_refresh
        self.clock = clock

    async def login(
        self,
        claims: IdentityClaims,
        *,
        device: str | None = None,
        location: str | None = None,
    ) -> SessionTokens:
        """Start a new session for an already verified identity."""
        session = await self._open_session(claims.user_id, device=device, location=location)
        logger.info(f"Session opened for user {claims.user_id}")
        return SessionTokens(access_token=self.codec.sign(claims), session_id=session.session_id)

    async def refresh(self, session_id: str | None) -> RefreshResult:
        """Exchange a live session id for a fresh access token."""
        rejected = RefreshResult(is_token_refresh=False)
        if not session_id:
            return rejected

        try:
            session = await self.get_active_session(session_id)
            if session is None:
                return rejected

            claims = await self.resolve_identity(session.user_id)
            if claims is None:
                logger.warning(f"Session {session_id[:8]}... has no usable identity for user {session.user_id}")
                return rejected

            if self.rotate_on_refresh:
                session = await self._rotate(session)
        except SQLAlchemyError as e:
            logger.error(f"Session refresh failed: {e!r}")
            return rejected

        return RefreshResult(
            is_token_refresh=True,
            access_token=self.codec.sign(claims),
            session_id=session.session_id,
        )

    async def logout(self, session_id: str | None) -> OperationResult:
        """End a session. Unknown or missing ids are ignored."""
        if not session_id:
            return OperationResult.ok()
        try:
            await self.store.delete_one(session_id)
        except SQLAlchemyError as e:
            logger.error(f"Logout failed: {e!r}")
            return OperationResult.fail(LOGOUT_FAILED)
        return OperationResult.ok()

    async def remove_session(self, user_id: str, session_id: str) -> OperationResult:
        """End one of ``user_id``'s own sessions."""
        try:
            session = await self.store.find_by_session_id(session_id)
            if session is None or session.user_id != user_id:
                return OperationResult.fail(SESSION_NOT_FOUND)
            await self.store.delete_one(session_id)
        except SQLAlchemyError as e:
            logger.error(f"Removing session for user {user_id} failed: {e!r}")
            return OperationResult.fail(LOGOUT_FAILED)
        return OperationResult.ok()

    async def revoke_all(self, user_id: str) -> int:
        """End every session a user has open."""
        count = await self.store.delete_all_for_user(user_id)
        logger.info(f"Revoked {count} session(s) for user {user_id}")
        return count

    async def list_sessions(self, user_id: str) -> list[AuthSession]:
        """Active sessions for a user, newest first."""
        now = self.clock()
        sessions = await self.store.list_for_user(user_id)
        return [s for s in sessions if ensure_utc(s.expires_at) > now]

    async def get_active_session(self, session_id: str) -> AuthSession | None:
        """Look up a session, treating (and clearing) expired rows as absent."""
        session = await self.store.find_by_session_id(session_id)
        if session is None:
            return None
        if ensure_utc(session.expires_at) <= self.clock():
            logger.info(f"Session for user {session.user_id} expired, removing")
            await self.store.delete_one(session_id)
            return None
        return session

    async def resolve_identity(self, user_id: str) -> IdentityClaims | None:
        """Current identity claims for a user, or None if missing or blocked."""
        account = await self.accounts.find_by_id(user_id)
        if account is None:
            return None
        profile = await self.profiles.find_by_user_id(user_id)
        if profile is not None and profile.blocked:
            logger.info(f"User {user_id} is blocked")
            return None
        return build_claims(account, profile)

    async def _open_session(
        self,
        user_id: str,
        *,
        device: str | None,
        location: str | None,
    ) -> AuthSession:
        return await self.store.create(
            generate_session_id(),
            user_id,
            created_at=self.clock(),
            expires_at=self.clock() + self.session_ttl,
            device=device,
            location=location,
        )

    async def _rotate(self, session: AuthSession) -> AuthSession:
        replacement = await self._open_session(
            session.user_id, device=session.device, location=session.location
        )
        await self.store.delete_one(session.session_id)
        return replacement
