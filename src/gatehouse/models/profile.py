"""User profile model."""

from sqlmodel import Field, SQLModel

from gatehouse.models.base import TimestampMixin, generate_nanoid


class Profile(TimestampMixin, SQLModel, table=True):
    """Display-facing user data, one per account."""

    __tablename__ = "profiles"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    user_id: str = Field(unique=True, index=True, max_length=21)
    username: str = Field(index=True, max_length=64)
    display_name: str | None = Field(default=None, max_length=255)
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    email: str = Field(index=True, max_length=255)
    bio: str | None = Field(default=None)
    website: str | None = Field(default=None, max_length=2048)
    profile_image_url: str | None = Field(default=None, max_length=2048)
    time_zone: str | None = Field(default=None, max_length=64)
    is_admin: bool = Field(default=False)
    blocked: bool = Field(default=False)
    number_of_wins: int = Field(default=0)
    number_of_losses: int = Field(default=0)
    number_of_ties: int = Field(default=0)
    level: int = Field(default=0)
    points: int = Field(default=0)

