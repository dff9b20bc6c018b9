"""Wiring for the service graph."""

import logging
from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from gatehouse.config import Settings
from gatehouse.database import close_db, create_engine, create_session_factory
from gatehouse.models import utcnow
from gatehouse.services.accounts import AccountStore, ProfileStore
from gatehouse.services.background import BackgroundTasks
from gatehouse.services.email import EmailBackend, EmailService, get_email_backend
from gatehouse.services.gate import AuthenticationGate
from gatehouse.services.identity import IdentityVerifier
from gatehouse.services.oauth import GoogleIdentityProvider, IdentityProvider
from gatehouse.services.otp import OTPEngine
from gatehouse.services.profiles import ProfileService
from gatehouse.services.session_store import SessionStore
from gatehouse.services.sessions import SessionManager
from gatehouse.services.tokens import Clock, TokenCodec

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every long-lived component, built once per process."""

    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    http_client: httpx.AsyncClient
    tasks: BackgroundTasks
    codec: TokenCodec
    accounts: AccountStore
    profiles: ProfileStore
    session_store: SessionStore
    sessions: SessionManager
    email: EmailService
    otp: OTPEngine
    provider: IdentityProvider
    identity: IdentityVerifier
    profile_service: ProfileService
    gate: AuthenticationGate

    async def aclose(self) -> None:
        """Finish background work and release connections."""
        await self.tasks.drain()
        await self.http_client.aclose()
        await close_db(self.engine)
        logger.info("Services shut down")


def build_services(
    settings: Settings,
    *,
    engine: AsyncEngine | None = None,
    clock: Clock = utcnow,
    email_backend: EmailBackend | None = None,
    provider: IdentityProvider | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Services:
    """Build the service graph.

    Every collaborator can be swapped in, which is how tests supply an
    in-memory database, a fixed clock, and fake mail and identity providers.
    """
    engine = engine or create_engine(app_settings=settings)
    session_factory = create_session_factory(engine)
    http_client = http_client or httpx.AsyncClient()
    tasks = BackgroundTasks()

    codec = TokenCodec(settings, clock=clock)
    accounts = AccountStore(session_factory)
    profiles = ProfileStore(session_factory)
    session_store = SessionStore(session_factory)
    sessions = SessionManager(session_store, codec, accounts, profiles, settings, clock)
    email = EmailService(email_backend or get_email_backend(settings), settings)
    otp = OTPEngine(session_factory, email, tasks, settings, clock)
    provider = provider or GoogleIdentityProvider(settings, http_client)
    identity = IdentityVerifier(accounts, profiles, sessions, otp, email, provider, tasks, settings)

    return Services(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        http_client=http_client,
        tasks=tasks,
        codec=codec,
        accounts=accounts,
        profiles=profiles,
        session_store=session_store,
        sessions=sessions,
        email=email,
        otp=otp,
        provider=provider,
        identity=identity,
        profile_service=ProfileService(profiles),
        gate=AuthenticationGate(codec, sessions),
    )
