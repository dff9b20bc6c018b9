"""Access token signing and verification."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from jose import JWTError, jwt
from pydantic import ValidationError

from gatehouse.config import Settings
from gatehouse.models import utcnow
from gatehouse.schemas.auth import IdentityClaims

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class AuthError(Exception):
    """Authentication error."""

    pass


class TokenCodec:
    """Signs identity claims into short-lived JWTs and checks them back.

    Expiry is evaluated against the injected clock: a token is valid while
    ``now < exp`` and rejected from the second ``exp`` is reached.
    """

    def __init__(self, settings: Settings, clock: Clock = utcnow) -> None:
        self.secret = settings.session_secret
        self.algorithm = settings.jwt_algorithm
        self.default_ttl = timedelta(minutes=settings.access_token_ttl_minutes)
        self.clock = clock

    def sign(self, claims: IdentityClaims, ttl: timedelta | None = None) -> str:
        """Create a signed access token for the given identity."""
        now = self.clock()
        expires = now + (ttl if ttl is not None else self.default_ttl)
        payload = {
            **claims.model_dump(by_alias=True),
            "sub": claims.user_id,
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> dict:
        """Decode a token, raising AuthError when it is not acceptable."""
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError as e:
            raise AuthError(f"Invalid token: {e}") from e

        exp = payload.get("exp")
        if not isinstance(exp, int | float):
            raise AuthError("Invalid token: missing expiry")
        if self.clock().timestamp() >= exp:
            raise AuthError("Token has expired")
        return payload

    def verify(self, token: str | None) -> IdentityClaims | None:
        """Return the token's claims, or None if it is malformed, forged or expired."""
        if not token:
            return None
        try:
            payload = self.decode(token)
            return IdentityClaims.model_validate(payload)
        except (AuthError, ValidationError) as e:
            logger.debug(f"Access token rejected: {e}")
            return None
