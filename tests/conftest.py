"""Shared pytest configuration."""

import pytest


@pytest.fixture
def anyio_backend() -> str:
    """Display timers are built on asyncio tasks."""
    return "asyncio"
