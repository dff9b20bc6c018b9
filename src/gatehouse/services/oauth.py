"""Delegated identity verification against Google."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from gatehouse.config import Settings

logger = logging.getLogger(__name__)

# Transport-level failures are worth one more try; HTTP errors are answers
RETRYABLE_EXCEPTIONS = (httpx.TransportError,)


@dataclass(frozen=True)
class ProviderIdentity:
    """Identity asserted by an external provider."""

    email: str
    given_name: str | None
    family_name: str | None
    subject_id: str
    picture: str | None = None


class IdentityProvider(Protocol):
    async def verify_assertion(self, token: str) -> ProviderIdentity | None: ...


class GoogleIdentityProvider:
    """Verifies Google ID tokens with the tokeninfo endpoint.

    Any failure (bad token, wrong audience, unverified email, timeout,
    network error) yields None.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        self.client_id = settings.google_client_id
        self.tokeninfo_url = settings.google_tokeninfo_url
        self.timeout = settings.identity_provider_timeout
        self.max_attempts = settings.identity_provider_max_attempts
        self.client = client

    async def verify_assertion(self, token: str) -> ProviderIdentity | None:
        if not token:
            return None
        if not self.client_id:
            logger.error("Google sign-in attempted but GOOGLE_CLIENT_ID is not configured")
            return None

        try:
            data = await self._fetch_tokeninfo(token)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Google token verification failed: {e!r}")
            return None

        if data is None:
            return None
        if data.get("aud") != self.client_id:
            logger.warning("Google token audience mismatch")
            return None
        if str(data.get("email_verified", "")).lower() != "true":
            logger.warning("Google token email is not verified")
            return None
        if not data.get("email") or not data.get("sub"):
            return None

        return ProviderIdentity(
            email=data["email"],
            given_name=data.get("given_name"),
            family_name=data.get("family_name"),
            subject_id=data["sub"],
            picture=data.get("picture"),
        )

    async def _fetch_tokeninfo(self, token: str) -> dict | None:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.2, min=0.2, max=2.0),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            reraise=True,
        ):
            with attempt:
                response = await self.client.get(
                    self.tokeninfo_url,
                    params={"id_token": token},
                    timeout=self.timeout,
                )
        if response.status_code != 200:
            logger.info(f"Google rejected token: {response.status_code}")
            return None
        data = response.json()
        if not isinstance(data, dict):
            logger.warning("Google tokeninfo returned a non-object body")
            return None
        return data
