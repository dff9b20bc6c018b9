"""One-time passcode token model for email verification."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from gatehouse.models.base import utcnow


class OTPToken(SQLModel, table=True):
    """Numeric code sent to an email address before account creation."""

    __tablename__ = "otp_tokens"

    otp_token_id: str = Field(primary_key=True, max_length=64)
    email: str = Field(index=True, max_length=255)
    code: str = Field(max_length=6)
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
    expires: datetime = Field(
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        description="Token expiration time",
    )
    consumed_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
