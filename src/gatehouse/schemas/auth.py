"""Schemas for authentication, sessions and one-time passcodes."""

from pydantic import ConfigDict, EmailStr, Field

from gatehouse.models import AccountKind
from gatehouse.schemas.common import CamelModel


class IdentityClaims(CamelModel):
    """Identity carried inside an access token."""

    model_config = ConfigDict(extra="ignore")

    email: str
    user_id: str
    first_name: str | None = None
    last_name: str | None = None
    username: str
    display_name: str | None = None


class SessionTokens(CamelModel):
    """Credential pair handed out on login."""

    access_token: str
    session_id: str


class LoginResult(CamelModel):
    """Outcome of a login attempt."""

    is_logged_in: bool = Field(alias="isLogIn")
    secure_session: SessionTokens | None = None
    error_message: str | None = None


class RefreshResult(CamelModel):
    """Outcome of an access token refresh."""

    is_token_refresh: bool
    access_token: str | None = None
    session_id: str | None = None


class LoginCheck(CamelModel):
    """Outcome of the authentication gate."""

    is_logged_in: bool = Field(alias="isLogIn")
    user: IdentityClaims | None = None
    is_token_refresh: bool = False
    new_access_token: str | None = None
    new_session_id: str | None = None
    error_message: str | None = None


class RegisterRequest(CamelModel):
    """Request body for registration."""

    email: EmailStr
    username: str = Field(min_length=1, max_length=64)
    account_type: AccountKind
    password: str | None = None
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    display_name: str | None = Field(default=None, max_length=255)
    otp_token_id: str | None = None


class LoginRequest(CamelModel):
    """Request body for login."""

    email: EmailStr | None = None
    account_type: AccountKind | None = None
    password: str | None = None
    id_token: str | None = Field(default=None, description="Google ID token for google accounts")
    device: str | None = Field(default=None, max_length=255)
    location: str | None = Field(default=None, max_length=255)


class GoogleLoginRequest(CamelModel):
    """Request body for Google sign-in."""

    id_token: str
    device: str | None = Field(default=None, max_length=255)
    location: str | None = Field(default=None, max_length=255)


class AccountRequest(CamelModel):
    """Request body for starting account creation."""

    email: EmailStr


class AccountRequestResult(CamelModel):
    """Result of starting account creation."""

    succeeded: bool
    otp_token_id: str | None = None


class OTPValidationRequest(CamelModel):
    """Request body for validating an emailed code."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    otp_token_id: str | None = None
    code: str | None = None


class RegisterResponse(CamelModel):
    """Registration result merged with the automatic login."""

    succeeded: bool
    error_message: str | None = None
    is_logged_in: bool | None = Field(default=None, alias="isLogIn")
    secure_session: SessionTokens | None = None


class SessionInfo(CamelModel):
    """Session listing entry."""

    session_id: str
    created_at: str
    expires_at: str
    device: str | None = None
    location: str | None = None
    current: bool = False


class RemoveSessionRequest(CamelModel):
    """Request body for revoking one session."""

    session_id: str


class UpdateEmailRequest(CamelModel):
    """Request body for changing the account email."""

    new_email: EmailStr


class ChangePasswordRequest(CamelModel):
    """Request body for changing the account password."""

    old_password: str
    new_password: str


class UpdateUsernameRequest(CamelModel):
    """Request body for changing the username."""

    username: str = Field(min_length=1, max_length=64)
