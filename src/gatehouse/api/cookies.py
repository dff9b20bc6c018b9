"""Auth cookie helpers."""

from fastapi import Response

from gatehouse.config import Settings

ACCESS_TOKEN_COOKIE = "access_token"
SESSION_ID_COOKIE = "session_id"


def _cookie_options(settings: Settings) -> dict:
    return {
        "path": "/",
        "httponly": True,
        "secure": settings.cookie_secure,
        "samesite": settings.cookie_samesite,
    }


def set_access_cookie(response: Response, settings: Settings, access_token: str) -> None:
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        access_token,
        max_age=settings.access_token_ttl_minutes * 60,
        **_cookie_options(settings),
    )


def set_session_cookie(response: Response, settings: Settings, session_id: str) -> None:
    response.set_cookie(
        SESSION_ID_COOKIE,
        session_id,
        max_age=settings.session_ttl_days * 24 * 60 * 60,
        **_cookie_options(settings),
    )


def set_auth_cookies(response: Response, settings: Settings, access_token: str, session_id: str) -> None:
    """Hand both credentials to the browser."""
    set_access_cookie(response, settings, access_token)
    set_session_cookie(response, settings, session_id)


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_TOKEN_COOKIE, SESSION_ID_COOKIE):
        response.delete_cookie(name, **_cookie_options(settings))
