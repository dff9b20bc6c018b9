"""Account model."""

from enum import Enum

from sqlmodel import Field, SQLModel

from gatehouse.models.base import TimestampMixin, generate_nanoid


class AccountKind(str, Enum):
    """How an account authenticates. Fixed at creation."""

    PASSWORD = "email"
    GOOGLE = "google"


class Account(TimestampMixin, SQLModel, table=True):
    """Identity record used to sign in."""

    __tablename__ = "accounts"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    email: str = Field(unique=True, index=True, max_length=255)
    username: str = Field(unique=True, index=True, max_length=64)
    account_kind: AccountKind = Field(default=AccountKind.PASSWORD)
    password_hash: str | None = Field(default=None, max_length=255)
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    provider_subject: str | None = Field(
        default=None, max_length=255, description="Subject id from the identity provider"
    )
