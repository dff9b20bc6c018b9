"""Authentication endpoints."""

import logging

from fastapi import APIRouter, Response, status
from pydantic import Field

from gatehouse.api.cookies import clear_auth_cookies, set_access_cookie, set_auth_cookies, set_session_cookie
from gatehouse.api.deps import CredentialsDep, CurrentCaller, CurrentUser, ServicesDep
from gatehouse.schemas.auth import (
    AccountRequest,
    AccountRequestResult,
    ChangePasswordRequest,
    GoogleLoginRequest,
    LoginCheck,
    LoginRequest,
    LoginResult,
    OTPValidationRequest,
    RefreshResult,
    RegisterRequest,
    RegisterResponse,
    RemoveSessionRequest,
    SessionInfo,
    UpdateEmailRequest,
    UpdateUsernameRequest,
)
from gatehouse.schemas.common import CamelModel, OperationResult
from gatehouse.services.profiles import generate_display_name

logger = logging.getLogger(__name__)

router = APIRouter()


class DisplayNameResponse(CamelModel):
    succeeded: bool = True
    display_name: str
    message: str = Field(default="Random display name generated successfully")


def _start_browser_session(response: Response, services: ServicesDep, result: LoginResult) -> None:
    if result.is_logged_in and result.secure_session:
        set_auth_cookies(
            response,
            services.settings,
            result.secure_session.access_token,
            result.secure_session.session_id,
        )


# Account creation


@router.post("/requestaccountcreation", response_model=AccountRequestResult)
async def request_account_creation(request: AccountRequest, services: ServicesDep):
    """Email a verification code if the address is not registered yet."""
    return await services.identity.request_account(request.email)


@router.post("/validateuseremail", response_model=OperationResult)
async def validate_user_email(request: OTPValidationRequest, services: ServicesDep):
    return await services.identity.validate_account_email(request.otp_token_id, request.code)


@router.post("/register", response_model=RegisterResponse)
async def register(request: RegisterRequest, response: Response, services: ServicesDep):
    """
    Create an account and sign it in.

    Registration failures are reported with 200 and ``succeeded: false``.
    """
    result = await services.identity.register(request)
    if not result.succeeded:
        return RegisterResponse(succeeded=False, error_message=result.error_message)

    login = await services.identity.login_with_password(request.email, request.password)
    if not login.is_logged_in:
        response.status_code = status.HTTP_401_UNAUTHORIZED
        return RegisterResponse(succeeded=False, is_logged_in=False, error_message=login.error_message)

    _start_browser_session(response, services, login)
    return RegisterResponse(succeeded=True, is_logged_in=True, secure_session=login.secure_session)


# Login and session lifecycle


@router.post("/login", response_model=LoginResult)
async def login(request: LoginRequest, response: Response, services: ServicesDep):
    """Sign in with a password, or with a Google ID token for google accounts."""
    result = await services.identity.login(request)
    _start_browser_session(response, services, result)
    return result


@router.post("/google", response_model=LoginResult)
async def login_with_google(request: GoogleLoginRequest, response: Response, services: ServicesDep):
    result = await services.identity.login_with_google(
        request.id_token, device=request.device, location=request.location
    )
    _start_browser_session(response, services, result)
    return result


@router.get("/check-login", response_model=LoginCheck)
async def check_login(response: Response, services: ServicesDep, credentials: CredentialsDep):
    """
    Report whether the caller is signed in.

    An expired access token is refreshed from the session id when possible,
    and the new credentials are sent back as cookies and headers.
    """
    result = await services.gate.authenticate(credentials.access_token, credentials.session_id)
    if result.is_token_refresh and result.new_access_token:
        set_access_cookie(response, services.settings, result.new_access_token)
        response.headers["X-Access-Token"] = result.new_access_token
        if result.new_session_id and result.new_session_id != credentials.session_id:
            set_session_cookie(response, services.settings, result.new_session_id)
            response.headers["X-Session-Id"] = result.new_session_id
    return result


@router.post("/secure/token/refresh", response_model=RefreshResult)
async def refresh_token(response: Response, services: ServicesDep, credentials: CredentialsDep):
    """Exchange the session id for a new access token."""
    result = await services.sessions.refresh(credentials.session_id)
    if result.is_token_refresh and result.access_token:
        set_access_cookie(response, services.settings, result.access_token)
        if result.session_id and result.session_id != credentials.session_id:
            set_session_cookie(response, services.settings, result.session_id)
    return result


@router.post("/logout", response_model=OperationResult)
async def logout(response: Response, services: ServicesDep, credentials: CredentialsDep):
    """End the current session and clear the auth cookies."""
    result = await services.sessions.logout(credentials.session_id)
    clear_auth_cookies(response, services.settings)
    return result


@router.get("/sessions", response_model=list[SessionInfo])
async def list_sessions(caller: CurrentCaller, services: ServicesDep):
    """List the caller's active sessions, newest first."""
    sessions = await services.sessions.list_sessions(caller.user.user_id)
    return [
        SessionInfo(
            session_id=s.session_id,
            created_at=s.created_at.isoformat(),
            expires_at=s.expires_at.isoformat(),
            device=s.device,
            location=s.location,
            current=s.session_id == caller.session_id,
        )
        for s in sessions
    ]


@router.post("/remove/session", response_model=OperationResult)
async def remove_session(request: RemoveSessionRequest, user: CurrentUser, services: ServicesDep):
    """Revoke one of the caller's own sessions."""
    return await services.sessions.remove_session(user.user_id, request.session_id)


# Account maintenance


@router.post("/delete/account", response_model=OperationResult)
async def delete_account(response: Response, user: CurrentUser, services: ServicesDep):
    """Delete the caller's account and sign out everywhere."""
    result = await services.identity.delete_account(user.user_id)
    if result.succeeded:
        clear_auth_cookies(response, services.settings)
    return result


@router.post("/update-email", response_model=OperationResult)
async def update_email(request: UpdateEmailRequest, user: CurrentUser, services: ServicesDep):
    return await services.identity.update_email(user.user_id, request.new_email)


@router.post("/change-password", response_model=OperationResult)
async def change_password(request: ChangePasswordRequest, user: CurrentUser, services: ServicesDep):
    return await services.identity.change_password(user.user_id, request.old_password, request.new_password)


@router.post("/update-username", response_model=OperationResult)
async def update_username(request: UpdateUsernameRequest, user: CurrentUser, services: ServicesDep):
    return await services.identity.update_username(user.user_id, request.username)


@router.get("/generate-display-name", response_model=DisplayNameResponse)
async def get_random_display_name():
    return DisplayNameResponse(display_name=generate_display_name())
