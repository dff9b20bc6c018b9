"""SQLModel database models."""

from gatehouse.models.account import Account, AccountKind
from gatehouse.models.base import TimestampMixin, ensure_utc, generate_nanoid, utcnow
from gatehouse.models.otp_token import OTPToken
from gatehouse.models.profile import Profile
from gatehouse.models.session import AuthSession

__all__ = [
    "Account",
    "AccountKind",
    "AuthSession",
    "OTPToken",
    "Profile",
    "TimestampMixin",
    "ensure_utc",
    "generate_nanoid",
    "utcnow",
]
