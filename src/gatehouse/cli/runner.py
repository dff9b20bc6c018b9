"""Helpers for running async service code from CLI commands."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from gatehouse.config import get_settings
from gatehouse.services.container import Services, build_services

T = TypeVar("T")


def run_with_services(func: Callable[[Services], Awaitable[T]]) -> T:
    """Build the service container, run ``func`` with it, and shut it down."""

    async def _run() -> T:
        services = build_services(get_settings())
        try:
            return await func(services)
        finally:
            await services.aclose()

    return asyncio.run(_run())
