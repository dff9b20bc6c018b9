"""FastAPI dependencies for dependency injection."""

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request, Response

from gatehouse.api.cookies import (
    ACCESS_TOKEN_COOKIE,
    SESSION_ID_COOKIE,
    set_access_cookie,
    set_session_cookie,
)
from gatehouse.schemas.auth import IdentityClaims
from gatehouse.services.container import Services

logger = logging.getLogger(__name__)

ACCESS_TOKEN_HEADER = "x-access-token"
SESSION_ID_HEADER = "x-session-id"


class NotAuthenticatedError(Exception):
    """Raised by gated routes; rendered as 401 ``{"isLogIn": false}``."""

    pass


def get_services(request: Request) -> Services:
    """Get the service container built at startup."""
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


@dataclass
class Credentials:
    """Credentials presented by the client. Headers win over cookies."""

    access_token: str | None
    session_id: str | None


def get_credentials(request: Request) -> Credentials:
    return Credentials(
        access_token=request.headers.get(ACCESS_TOKEN_HEADER) or request.cookies.get(ACCESS_TOKEN_COOKIE),
        session_id=request.headers.get(SESSION_ID_HEADER) or request.cookies.get(SESSION_ID_COOKIE),
    )


CredentialsDep = Annotated[Credentials, Depends(get_credentials)]


@dataclass
class Caller:
    """An authenticated caller and the session id they are now using."""

    user: IdentityClaims
    session_id: str | None


async def get_caller(
    response: Response,
    services: ServicesDep,
    credentials: CredentialsDep,
) -> Caller:
    """Authenticate the request or raise 401.

    When the access token had to be refreshed, the new token goes back out as a
    cookie and an ``X-Access-Token`` header.
    """
    check = await services.gate.authenticate(credentials.access_token, credentials.session_id)
    if not check.is_logged_in or check.user is None:
        raise NotAuthenticatedError()

    session_id = credentials.session_id
    if check.is_token_refresh and check.new_access_token:
        set_access_cookie(response, services.settings, check.new_access_token)
        response.headers["X-Access-Token"] = check.new_access_token
        if check.new_session_id and check.new_session_id != session_id:
            set_session_cookie(response, services.settings, check.new_session_id)
            response.headers["X-Session-Id"] = check.new_session_id
            session_id = check.new_session_id

    return Caller(user=check.user, session_id=session_id)


async def get_current_user(caller: Annotated[Caller, Depends(get_caller)]) -> IdentityClaims:
    return caller.user


# Type aliases for common dependencies
CurrentCaller = Annotated[Caller, Depends(get_caller)]
CurrentUser = Annotated[IdentityClaims, Depends(get_current_user)]
