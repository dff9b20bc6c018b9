"""Login session model."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from gatehouse.models.base import utcnow


class AuthSession(SQLModel, table=True):
    """Server-side record anchoring one login."""

    __tablename__ = "auth_sessions"

    session_id: str = Field(primary_key=True, max_length=64)
    user_id: str = Field(index=True, max_length=21)
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
    expires_at: datetime = Field(
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
    device: str | None = Field(default=None, max_length=255)
    location: str | None = Field(default=None, max_length=255)
