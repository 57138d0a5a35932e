"""Pytest fixtures for the API integration tests.

The application is served in-process through ``httpx.ASGITransport``.
Lifespan events do not run under that transport, so fixtures install the
store on ``app.state`` directly.
"""

from typing import AsyncGenerator, Dict

import httpx
import pytest

from services.election_api.main import app, get_coordinator
from services.election_api.retry import CasRetryCoordinator
from services.election_api.stores import InMemoryDocumentStore


@pytest.fixture
async def api_client(seeded_store: InMemoryDocumentStore) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client for the election API backed by the seeded in-memory store."""
    app.state.store = seeded_store
    app.dependency_overrides[get_coordinator] = lambda: CasRetryCoordinator(backoff_seconds=0)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver", timeout=10.0) as client:
        yield client

    app.dependency_overrides.clear()
    app.state.store = None


@pytest.fixture
async def unconfigured_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client for an application whose store credentials are missing."""
    app.state.store = None

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver", timeout=10.0) as client:
        yield client


@pytest.fixture
def sample_vote() -> Dict[str, str]:
    """Vote payload for the ABC123 voting ID."""
    return {
        "votingId": "ABC123",
        "party": "Red",
        "realName": "Sam",
        "discordInsta": "@sam"
    }


@pytest.fixture
def sample_candidate() -> Dict[str, str]:
    return {
        "partyName": "Red",
        "candidateName": "Steve",
        "password": "hunter2"
    }
