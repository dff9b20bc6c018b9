"""One-time passcodes for verifying email ownership."""

import hmac
import logging
import secrets
import uuid
from datetime import timedelta

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from gatehouse.config import Settings
from gatehouse.models import OTPToken, ensure_utc
from gatehouse.services.background import BackgroundTasks
from gatehouse.services.email import EmailService
from gatehouse.services.tokens import Clock

logger = logging.getLogger(__name__)

CODE_MIN = 100_000
CODE_MAX = 999_999


def generate_code() -> str:
    """Six digit code, uniform over 100000-999999."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


class OTPEngine:
    """Issues emailed codes and checks them against their token id."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        email_service: EmailService,
        tasks: BackgroundTasks,
        settings: Settings,
        clock: Clock,
    ) -> None:
        self.session_factory = session_factory
        self.email_service = email_service
        self.tasks = tasks
        self.ttl = timedelta(minutes=settings.otp_expiration_minutes)
        self.single_use = settings.otp_single_use
        self.clock = clock

    async def issue(self, email: str) -> str:
        """Create a token for ``email``, mail its code, and return only the token id."""
        token = OTPToken(
            otp_token_id=uuid.uuid4().hex,
            email=email,
            code=generate_code(),
            created_at=self.clock(),
            expires=self.clock() + self.ttl,
        )
        async with self.session_factory() as db:
            db.add(token)
            await db.commit()

        self.tasks.spawn(
            self.email_service.send_otp_code(token.email, token.code),
            description=f"send otp code to {email}",
        )
        return token.otp_token_id

    async def validate(self, otp_token_id: str | None, code: str | int | None) -> bool:
        """True iff the token exists, is live, and its code matches.

        With single use on, only the first successful caller claims the token.
        """
        if not otp_token_id or code is None or code == "":
            return False

        async with self.session_factory() as db:
            result = await db.execute(
                select(OTPToken).where(OTPToken.otp_token_id == otp_token_id)
            )
            token = result.scalar_one_or_none()
            if token is None:
                return False
            if not hmac.compare_digest(token.code.encode(), str(code).strip().encode()):
                return False
            if self.single_use and token.consumed_at is not None:
                logger.info(f"Rejected replay of consumed OTP token {otp_token_id}")
                return False
            if ensure_utc(token.expires) <= self.clock():
                return False

            claim = await db.execute(
                update(OTPToken)
                .where(OTPToken.otp_token_id == otp_token_id, OTPToken.consumed_at.is_(None))
                .values(consumed_at=self.clock())
            )
            await db.commit()

        if self.single_use and claim.rowcount != 1:
            logger.info(f"Rejected replay of consumed OTP token {otp_token_id}")
            return False
        return True

    async def is_verified(self, otp_token_id: str | None, email: str) -> bool:
        """True if the token belongs to ``email`` and was validated before it expired."""
        if not otp_token_id:
            return False
        async with self.session_factory() as db:
            result = await db.execute(
                select(OTPToken).where(OTPToken.otp_token_id == otp_token_id)
            )
            token = result.scalar_one_or_none()
        if token is None or token.email != email or token.consumed_at is None:
            return False
        return ensure_utc(token.expires) > self.clock()

    async def discard(self, otp_token_id: str) -> None:
        async with self.session_factory() as db:
            await db.execute(delete(OTPToken).where(OTPToken.otp_token_id == otp_token_id))
            await db.commit()

    async def purge_expired(self) -> int:
        """Delete expired tokens and return how many were removed."""
        async with self.session_factory() as db:
            result = await db.execute(delete(OTPToken).where(OTPToken.expires <= self.clock()))
            await db.commit()
            return result.rowcount or 0
