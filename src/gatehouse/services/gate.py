"""Request authentication: access token first, session refresh second."""

import logging

from gatehouse.schemas.auth import LoginCheck
from gatehouse.services.sessions import SessionManager
from gatehouse.services.tokens import TokenCodec

logger = logging.getLogger(__name__)


class AuthenticationGate:
    """Decides whether a request is authenticated.

    A valid access token is enough. Otherwise the session id is exchanged for a
    fresh token, which the caller is expected to hand back to the client. Any
    error along the way means "not authenticated".
    """

    def __init__(self, codec: TokenCodec, sessions: SessionManager) -> None:
        self.codec = codec
        self.sessions = sessions

    async def authenticate(self, access_token: str | None, session_id: str | None) -> LoginCheck:
        try:
            return await self._authenticate(access_token, session_id)
        except Exception:
            logger.exception("Authentication check failed")
            return LoginCheck(is_logged_in=False, error_message="Authentication failed.")

    async def _authenticate(self, access_token: str | None, session_id: str | None) -> LoginCheck:
        claims = self.codec.verify(access_token)
        if claims is not None:
            return LoginCheck(is_logged_in=True, user=claims)

        if not session_id:
            return LoginCheck(is_logged_in=False)

        refreshed = await self.sessions.refresh(session_id)
        if not refreshed.is_token_refresh:
            return LoginCheck(is_logged_in=False)

        claims = self.codec.verify(refreshed.access_token)
        if claims is None:
            logger.error("Freshly signed access token failed verification")
            return LoginCheck(is_logged_in=False)

        return LoginCheck(
            is_logged_in=True,
            user=claims,
            is_token_refresh=True,
            new_access_token=refreshed.access_token,
            new_session_id=refreshed.session_id,
        )
