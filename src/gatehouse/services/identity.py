"""Identity verification, registration and account maintenance."""

import asyncio
import logging
import re
import secrets
from enum import Enum

import bcrypt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from gatehouse.config import Settings
from gatehouse.models import Account, AccountKind, Profile
from gatehouse.schemas.auth import (
    AccountRequestResult,
    IdentityClaims,
    LoginRequest,
    LoginResult,
    RegisterRequest,
)
from gatehouse.schemas.common import OperationResult
from gatehouse.services.accounts import AccountStore, ProfileStore, build_claims
from gatehouse.services.background import BackgroundTasks
from gatehouse.services.email import EmailService
from gatehouse.services.oauth import IdentityProvider, ProviderIdentity
from gatehouse.services.otp import OTPEngine
from gatehouse.services.profiles import generate_display_name
from gatehouse.services.sessions import SessionManager

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72

INVALID_CREDENTIALS = "Invalid email or password."
EMAIL_TAKEN = "This email is already registered. Please use a different email or try logging in."
USERNAME_TAKEN = "This username is already taken. Please choose a different username."
WRONG_ACCOUNT_KIND = (
    "This email is registered with a different account type. Please use the correct login method."
)
USER_NOT_FOUND = "User not found."
SIGN_IN_FAILED = "Failed to sign in. Please try again."
ACCOUNT_BLOCKED = "This account has been blocked."


class LoginFailure(str, Enum):
    """Why a login was refused. Logged, never shown to the caller."""

    MISSING_FIELDS = "missing_fields"
    NO_ACCOUNT = "no_account"
    WRONG_ACCOUNT_KIND = "wrong_account_kind"
    BAD_PASSWORD = "bad_password"
    PROVIDER_REJECTED = "provider_rejected"
    BLOCKED = "blocked"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def password_problem(password: str | None) -> str | None:
    """Return why a new password is unacceptable, or None if it is fine."""
    if not password:
        return "Please provide a password."
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        return f"Password must be at most {MAX_PASSWORD_BYTES} bytes."
    return None


def username_from_names(first_name: str | None, last_name: str | None, email: str) -> str:
    """Build ``first_last_NNN`` for provisioned accounts, falling back to the email's local part."""
    base = "_".join(part for part in (first_name, last_name) if part) or email.split("@")[0]
    base = re.sub(r"[^a-z0-9_]", "", base.lower().replace(" ", "_"))[:50] or "user"
    return f"{base}_{secrets.randbelow(1000)}"


class IdentityVerifier:
    """Checks credentials per account kind and manages the accounts behind them."""

    def __init__(
        self,
        accounts: AccountStore,
        profiles: ProfileStore,
        sessions: SessionManager,
        otp: OTPEngine,
        email_service: EmailService,
        provider: IdentityProvider,
        tasks: BackgroundTasks,
        settings: Settings,
    ) -> None:
        self.accounts = accounts
        self.profiles = profiles
        self.sessions = sessions
        self.otp = otp
        self.email_service = email_service
        self.provider = provider
        self.tasks = tasks
        self.settings = settings
        self._dummy_hash: bytes | None = None

    # Passwords

    async def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.settings.bcrypt_rounds)
        hashed = await asyncio.to_thread(bcrypt.hashpw, password.encode(), salt)
        return hashed.decode()

    async def check_password(self, password: str | None, password_hash: str | None) -> bool:
        """Constant-time password check. Burns a hash even when there is nothing to compare."""
        candidate = (password or "").encode()
        if len(candidate) > MAX_PASSWORD_BYTES:
            candidate = candidate[:MAX_PASSWORD_BYTES]
            password_hash = None
        if password_hash is None:
            if self._dummy_hash is None:
                self._dummy_hash = await asyncio.to_thread(
                    bcrypt.hashpw, b"dummy-password", bcrypt.gensalt(self.settings.bcrypt_rounds)
                )
            await asyncio.to_thread(bcrypt.checkpw, candidate, self._dummy_hash)
            return False
        try:
            return await asyncio.to_thread(bcrypt.checkpw, candidate, password_hash.encode())
        except ValueError:
            logger.error("Stored password hash is malformed")
            return False

    # Registration

    async def register(self, request: RegisterRequest) -> OperationResult:
        """Create a password account and its profile."""
        email = normalize_email(request.email)
        if not email or not request.username or not request.account_type:
            return OperationResult.fail(
                "Please provide all required information (email, username, and account type)."
            )
        if request.account_type != AccountKind.PASSWORD:
            return OperationResult.fail("Google accounts are created by signing in with Google.")
        problem = password_problem(request.password)
        if problem:
            return OperationResult.fail(problem)

        try:
            if await self.accounts.find_by_email(email):
                return OperationResult.fail(EMAIL_TAKEN)
            if await self.accounts.find_by_username(request.username):
                return OperationResult.fail(USERNAME_TAKEN)
            if self.settings.require_email_verification and not await self.otp.is_verified(
                request.otp_token_id, email
            ):
                return OperationResult.fail("Please verify your email before creating an account.")

            account = Account(
                email=email,
                username=request.username,
                account_kind=AccountKind.PASSWORD,
                password_hash=await self.hash_password(request.password or ""),
                first_name=request.first_name,
                last_name=request.last_name,
            )
            await self._create_account(account, display_name=request.display_name)
            if request.otp_token_id:
                await self.otp.discard(request.otp_token_id)
        except IntegrityError:
            logger.info(f"Registration lost a uniqueness race for {email}")
            return OperationResult.fail(EMAIL_TAKEN)
        except SQLAlchemyError as e:
            logger.error(f"Registration failed for {email}: {e!r}")
            return OperationResult.fail("Failed to create account. Please try again.")

        logger.info(f"Registered account {account.id} ({email})")
        return OperationResult.ok()

    async def _create_account(self, account: Account, display_name: str | None = None) -> Account:
        profile = Profile(
            user_id=account.id,
            username=account.username,
            display_name=display_name or generate_display_name(),
            first_name=account.first_name,
            last_name=account.last_name,
            email=account.email,
            is_admin=bool(self.settings.admin_email)
            and account.email == normalize_email(self.settings.admin_email),
        )
        await self.accounts.create(account, profile)
        self.tasks.spawn(
            self.email_service.send_welcome(account.email, account.username),
            description=f"send welcome email to {account.email}",
        )
        return account

    async def request_account(self, email: str) -> AccountRequestResult:
        """Start account creation by mailing a code, unless the email is taken."""
        email = normalize_email(email)
        try:
            if await self.accounts.find_by_email(email):
                return AccountRequestResult(succeeded=False)
            otp_token_id = await self.otp.issue(email)
        except SQLAlchemyError as e:
            logger.error(f"Could not issue OTP for {email}: {e!r}")
            return AccountRequestResult(succeeded=False)
        return AccountRequestResult(succeeded=True, otp_token_id=otp_token_id)

    async def validate_account_email(self, otp_token_id: str | None, code: str | None) -> OperationResult:
        try:
            valid = await self.otp.validate(otp_token_id, code)
        except SQLAlchemyError as e:
            logger.error(f"OTP validation failed: {e!r}")
            valid = False
        return OperationResult(succeeded=valid)

    # Login

    async def login(self, request: LoginRequest) -> LoginResult:
        """Dispatch a login on the requested account kind."""
        if request.account_type is None:
            return self._refuse(LoginFailure.MISSING_FIELDS, "Please provide both email and account type to log in.")
        if request.account_type == AccountKind.GOOGLE:
            if not request.id_token:
                return self._refuse(LoginFailure.MISSING_FIELDS, "Please provide a Google ID token to log in.")
            return await self.login_with_google(
                request.id_token, device=request.device, location=request.location
            )
        if not request.email:
            return self._refuse(LoginFailure.MISSING_FIELDS, "Please provide both email and account type to log in.")
        return await self.login_with_password(
            request.email, request.password, device=request.device, location=request.location
        )

    async def login_with_password(
        self,
        email: str,
        password: str | None,
        *,
        device: str | None = None,
        location: str | None = None,
    ) -> LoginResult:
        email = normalize_email(email)
        try:
            account = await self.accounts.find_by_email(email)
            if account is None:
                await self.check_password(password, None)
                return self._refuse(LoginFailure.NO_ACCOUNT, INVALID_CREDENTIALS, email)
            if account.account_kind != AccountKind.PASSWORD:
                await self.check_password(password, None)
                return self._refuse(LoginFailure.WRONG_ACCOUNT_KIND, INVALID_CREDENTIALS, email)
            if not await self.check_password(password, account.password_hash):
                return self._refuse(LoginFailure.BAD_PASSWORD, INVALID_CREDENTIALS, email)
            return await self._start_session(account, device=device, location=location)
        except SQLAlchemyError as e:
            logger.error(f"Password login failed for {email}: {e!r}")
            return LoginResult(is_logged_in=False, error_message=SIGN_IN_FAILED)

    async def login_with_google(
        self,
        id_token: str,
        *,
        device: str | None = None,
        location: str | None = None,
    ) -> LoginResult:
        """Sign in with a Google ID token, creating the account on first sight."""
        identity = await self.provider.verify_assertion(id_token)
        if identity is None:
            return self._refuse(LoginFailure.PROVIDER_REJECTED, "Invalid Google token.")

        email = normalize_email(identity.email)
        try:
            account = await self.accounts.find_by_email(email)
            if account is None:
                account = await self._provision(identity, email)
            elif account.account_kind != AccountKind.GOOGLE:
                return self._refuse(LoginFailure.WRONG_ACCOUNT_KIND, WRONG_ACCOUNT_KIND, email)
            return await self._start_session(account, device=device, location=location)
        except SQLAlchemyError as e:
            logger.error(f"Google login failed for {email}: {e!r}")
            return LoginResult(is_logged_in=False, error_message="Failed to process Google login. Please try again.")

    async def _provision(self, identity: ProviderIdentity, email: str) -> Account:
        username = username_from_names(identity.given_name, identity.family_name, email)
        for _ in range(5):
            if await self.accounts.find_by_username(username) is None:
                break
            username = username_from_names(identity.given_name, identity.family_name, email)
        else:
            username = f"user_{secrets.token_hex(6)}"

        account = Account(
            email=email,
            username=username,
            account_kind=AccountKind.GOOGLE,
            first_name=identity.given_name,
            last_name=identity.family_name,
            provider_subject=identity.subject_id,
        )
        await self._create_account(account)
        logger.info(f"Provisioned Google account {account.id} ({email})")
        return account

    async def _start_session(
        self,
        account: Account,
        *,
        device: str | None,
        location: str | None,
    ) -> LoginResult:
        profile = await self.profiles.find_by_user_id(account.id)
        if profile is not None and profile.blocked:
            return self._refuse(LoginFailure.BLOCKED, ACCOUNT_BLOCKED, account.email)
        tokens = await self.sessions.login(
            build_claims(account, profile), device=device, location=location
        )
        return LoginResult(is_logged_in=True, secure_session=tokens)

    @staticmethod
    def _refuse(reason: LoginFailure, message: str, email: str | None = None) -> LoginResult:
        logger.info(f"Login refused ({reason.value}){f' for {email}' if email else ''}")
        return LoginResult(is_logged_in=False, error_message=message)

    async def resolve_identity(self, user_id: str) -> IdentityClaims | None:
        return await self.sessions.resolve_identity(user_id)

    # Account maintenance

    async def delete_account(self, user_id: str) -> OperationResult:
        """Delete the account and profile, then revoke every session it had."""
        try:
            if not await self.accounts.delete(user_id):
                return OperationResult.fail(USER_NOT_FOUND)
            await self.sessions.revoke_all(user_id)
        except SQLAlchemyError as e:
            logger.error(f"Account deletion failed for {user_id}: {e!r}")
            return OperationResult.fail("Failed to delete account. Please try again.")
        logger.info(f"Deleted account {user_id}")
        return OperationResult.ok()

    async def update_email(self, user_id: str, new_email: str) -> OperationResult:
        new_email = normalize_email(new_email)
        try:
            account = await self.accounts.find_by_id(user_id)
            if account is None:
                return OperationResult.fail(USER_NOT_FOUND)
            if account.account_kind != AccountKind.PASSWORD:
                return OperationResult.fail("Google accounts use the email address from Google.")
            if await self.accounts.find_by_email(new_email):
                return OperationResult.fail(
                    "This email is already registered. Please use a different email address."
                )
            await self.accounts.update_fields(user_id, email=new_email)
            await self.profiles.update(user_id, email=new_email)
        except IntegrityError:
            return OperationResult.fail("This email is already registered. Please use a different email address.")
        except SQLAlchemyError as e:
            logger.error(f"Email update failed for {user_id}: {e!r}")
            return OperationResult.fail("Failed to update email. Please try again.")
        return OperationResult.ok()

    async def update_username(self, user_id: str, username: str) -> OperationResult:
        try:
            if await self.accounts.find_by_username(username):
                return OperationResult.fail(USERNAME_TAKEN)
            if await self.accounts.update_fields(user_id, username=username) is None:
                return OperationResult.fail(USER_NOT_FOUND)
            await self.profiles.update(user_id, username=username)
        except IntegrityError:
            return OperationResult.fail(USERNAME_TAKEN)
        except SQLAlchemyError as e:
            logger.error(f"Username update failed for {user_id}: {e!r}")
            return OperationResult.fail("Failed to update username. Please try again.")
        return OperationResult.ok()

    async def change_password(self, user_id: str, old_password: str, new_password: str) -> OperationResult:
        """Change a password after checking the current one."""
        problem = password_problem(new_password)
        if problem:
            return OperationResult.fail(problem)
        try:
            account = await self.accounts.find_by_id(user_id)
            if account is None or account.account_kind != AccountKind.PASSWORD:
                return OperationResult.fail(USER_NOT_FOUND)
            if not await self.check_password(old_password, account.password_hash):
                return OperationResult.fail(
                    "Current password is incorrect. Please check your password and try again."
                )
            await self.accounts.update_fields(user_id, password_hash=await self.hash_password(new_password))
        except SQLAlchemyError as e:
            logger.error(f"Password change failed for {user_id}: {e!r}")
            return OperationResult.fail("Failed to change password. Please try again.")
        return OperationResult.ok()

    async def update_password(self, email: str, new_password: str) -> OperationResult:
        """Set a password without the current one (operator use)."""
        problem = password_problem(new_password)
        if problem:
            return OperationResult.fail(problem)
        try:
            account = await self.accounts.find_by_email(normalize_email(email))
            if account is None or account.account_kind != AccountKind.PASSWORD:
                return OperationResult.fail(USER_NOT_FOUND)
            await self.accounts.update_fields(account.id, password_hash=await self.hash_password(new_password))
        except SQLAlchemyError as e:
            logger.error(f"Password update failed for {email}: {e!r}")
            return OperationResult.fail("Failed to change password. Please try again.")
        return OperationResult.ok()

    async def set_blocked(self, email: str, blocked: bool) -> OperationResult:
        """Block or unblock an account (operator use). Blocking signs it out everywhere."""
        try:
            account = await self.accounts.find_by_email(normalize_email(email))
            if account is None or not await self.profiles.set_blocked(account.id, blocked):
                return OperationResult.fail(USER_NOT_FOUND)
            if blocked:
                await self.sessions.revoke_all(account.id)
        except SQLAlchemyError as e:
            logger.error(f"Changing blocked state failed for {email}: {e!r}")
            return OperationResult.fail("Failed to update account. Please try again.")
        logger.info(f"{'Blocked' if blocked else 'Unblocked'} account {account.id}")
        return OperationResult.ok()
