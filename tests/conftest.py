"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine

from gatehouse.config import Settings
from gatehouse.database import create_engine, init_db
from gatehouse.main import create_app
from gatehouse.models import Account, AccountKind, Profile
from gatehouse.services.container import Services, build_services
from gatehouse.services.email import EmailBackend
from gatehouse.services.oauth import ProviderIdentity

TEST_PASSWORD = "correct-horse-battery"


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class SentEmail:
    to: str
    subject: str
    html: str
    text: str | None


class RecordingEmailBackend(EmailBackend):
    """Keeps sent mail in memory."""

    def __init__(self) -> None:
        self.sent: list[SentEmail] = []

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> bool:
        self.sent.append(SentEmail(to=to, subject=subject, html=html, text=text))
        return True


class FakeIdentityProvider:
    """Accepts only the tokens it was told about."""

    def __init__(self) -> None:
        self.identities: dict[str, ProviderIdentity] = {}
        self.calls: list[str] = []

    def add(self, token: str, email: str, given_name: str = "Ada", family_name: str = "Lovelace") -> None:
        self.identities[token] = ProviderIdentity(
            email=email,
            given_name=given_name,
            family_name=family_name,
            subject_id=f"sub-{token}",
        )

    async def verify_assertion(self, token: str) -> ProviderIdentity | None:
        self.calls.append(token)
        return self.identities.get(token)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        session_secret="test-secret-that-is-definitely-32-chars-long",
        bcrypt_rounds=4,
        google_client_id="test-client-id",
        admin_email="admin@example.com",
        email_backend="console",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def email_backend() -> RecordingEmailBackend:
    return RecordingEmailBackend()


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
async def engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test."""
    engine = create_engine(test_settings.database_url_test, test_settings)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def services(
    test_settings: Settings,
    engine: AsyncEngine,
    clock: FakeClock,
    email_backend: RecordingEmailBackend,
    identity_provider: FakeIdentityProvider,
) -> AsyncGenerator[Services, None]:
    services = build_services(
        test_settings,
        engine=engine,
        clock=clock,
        email_backend=email_backend,
        provider=identity_provider,
    )
    yield services
    await services.aclose()


@pytest.fixture
async def client(services: Services) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client. Auth cookies are Secure, so it speaks https."""
    app = create_app(services)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="https://test",
    ) as ac:
        yield ac


@pytest.fixture
async def account(services: Services) -> Account:
    """A password account with a profile."""
    account = Account(
        email="test@example.com",
        username="tester",
        account_kind=AccountKind.PASSWORD,
        password_hash=await services.identity.hash_password(TEST_PASSWORD),
        first_name="Test",
        last_name="User",
    )
    profile = Profile(
        user_id=account.id,
        username=account.username,
        display_name="SwiftFalcon",
        first_name="Test",
        last_name="User",
        email=account.email,
    )
    await services.accounts.create(account, profile)
    return account


@pytest.fixture
async def google_account(services: Services) -> Account:
    account = Account(
        email="ada@example.com",
        username="ada_lovelace_1",
        account_kind=AccountKind.GOOGLE,
        first_name="Ada",
        last_name="Lovelace",
        provider_subject="sub-existing",
    )
    profile = Profile(
        user_id=account.id,
        username=account.username,
        display_name="NeoRaven",
        email=account.email,
    )
    await services.accounts.create(account, profile)
    return account


@pytest.fixture
async def auth_headers(client: AsyncClient, account: Account) -> dict[str, str]:
    """Headers carrying a fresh access token and session id for ``account``."""
    response = await client.post(
        "/api/auth/login",
        json={"email": account.email, "accountType": "email", "password": TEST_PASSWORD},
    )
    session = response.json()["secureSession"]
    client.cookies.clear()
    return {"x-access-token": session["accessToken"], "x-session-id": session["sessionId"]}
