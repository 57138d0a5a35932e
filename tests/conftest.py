"""Pytest fixtures shared by the unit and integration tests.

Most tests run against the in-memory document store. The GitHub backend
is exercised through an httpx MockTransport emulating the contents API,
and the Redis backend against a live server when one is reachable.
"""

import base64
import json
import os
import uuid
from typing import AsyncGenerator, Dict, List, Optional

import httpx
import pytest
import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

from services.election_api.collections import ElectionCollections
from services.election_api.config import Settings
from services.election_api.retry import CasRetryCoordinator
from services.election_api.stores import (
    GitHubDocumentStore,
    InMemoryDocumentStore,
    RedisDocumentStore,
)
from services.shared.models import CollectionName, VotingCredential


@pytest.fixture
def sample_credentials() -> List[VotingCredential]:
    """Provisioned voting IDs used throughout the tests."""
    return [
        VotingCredential(id="ABC123", player_name="Steve", game_edition="Java"),
        VotingCredential(id="DEF456", player_name="Alex", game_edition="Bedrock"),
        VotingCredential(id="GHI789", player_name="Herobrine", game_edition="Java"),
    ]


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    """Empty in-memory store."""
    return InMemoryDocumentStore()


@pytest.fixture
def seeded_store(
    memory_store: InMemoryDocumentStore,
    sample_credentials: List[VotingCredential]
) -> InMemoryDocumentStore:
    """In-memory store with the sample voting IDs provisioned.

    Only voting-ids is seeded; the other collections start absent.
    """
    memory_store.seed(
        CollectionName.VOTING_IDS.value,
        [credential.to_dict() for credential in sample_credentials]
    )
    return memory_store


@pytest.fixture
def collections(seeded_store: InMemoryDocumentStore) -> ElectionCollections:
    return ElectionCollections(seeded_store)


@pytest.fixture
def recorded_sleeps() -> List[float]:
    """Delays requested by the coordinator, in order."""
    return []


@pytest.fixture
def coordinator(recorded_sleeps: List[float]) -> CasRetryCoordinator:
    """Coordinator whose backoff sleeps are recorded instead of awaited."""
    async def fake_sleep(delay: float) -> None:
        recorded_sleeps.append(delay)

    return CasRetryCoordinator(max_retries=3, backoff_seconds=0.1, sleep=fake_sleep)


class FakeGitHubRepo:
    """In-memory emulation of the GitHub contents API for one repository.

    Files are stored as decoded bytes with a blob SHA that changes on every
    commit. PUT enforces the same SHA rules GitHub does: 409 when the SHA is
    stale and 422 when creating a file that already exists.
    """

    def __init__(self, owner: str = "minecraft2613", name: str = "Election"):
        self.repo_path = f"/repos/{owner}/{name}"
        self.files: Dict[str, tuple] = {}
        self.commits: List[dict] = []
        self.fail_next: Optional[int] = None
        self.requests: List[httpx.Request] = []

    def put_file(self, path: str, items) -> str:
        sha = uuid.uuid4().hex
        self.files[path] = (json.dumps(items).encode("utf-8"), sha)
        return sha

    def decoded(self, path: str):
        return json.loads(self.files[path][0])

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.fail_next is not None:
            status_code, self.fail_next = self.fail_next, None
            return httpx.Response(status_code, json={"message": "Injected failure"})

        path = request.url.path
        if path == self.repo_path:
            return httpx.Response(200, json={"full_name": self.repo_path[len("/repos/"):]})

        prefix = f"{self.repo_path}/contents/"
        if not path.startswith(prefix):
            return httpx.Response(404, json={"message": "Not Found"})
        file_path = path[len(prefix):]

        if request.method == "GET":
            if file_path not in self.files:
                return httpx.Response(404, json={"message": "Not Found"})
            content, sha = self.files[file_path]
            return httpx.Response(200, json={
                "path": file_path,
                "sha": sha,
                "encoding": "base64",
                # GitHub wraps base64 content at 60 columns
                "content": base64.encodebytes(content).decode("ascii"),
            })

        if request.method == "PUT":
            body = json.loads(request.content)
            current = self.files.get(file_path)
            if current is None and "sha" in body:
                return httpx.Response(409, json={"message": "does not match"})
            if current is not None and "sha" not in body:
                return httpx.Response(422, json={"message": "\"sha\" wasn't supplied."})
            if current is not None and body["sha"] != current[1]:
                return httpx.Response(409, json={"message": f"{file_path} does not match"})

            sha = uuid.uuid4().hex
            self.files[file_path] = (base64.b64decode(body["content"]), sha)
            self.commits.append({"path": file_path, "message": body["message"], "branch": body["branch"]})
            return httpx.Response(
                201 if current is None else 200,
                json={"content": {"path": file_path, "sha": sha}, "commit": {"sha": uuid.uuid4().hex}}
            )

        return httpx.Response(405, json={"message": "Method Not Allowed"})


@pytest.fixture
def github_settings() -> Settings:
    return Settings(STORE_BACKEND="github", GITHUB_TOKEN="test-token")


@pytest.fixture
def fake_github() -> FakeGitHubRepo:
    return FakeGitHubRepo()


@pytest.fixture
async def github_store(
    github_settings: Settings,
    fake_github: FakeGitHubRepo
) -> AsyncGenerator[GitHubDocumentStore, None]:
    """GitHub store wired to the fake repository."""
    client = httpx.AsyncClient(
        base_url=github_settings.github_repo_url,
        transport=httpx.MockTransport(fake_github.handler)
    )
    store = GitHubDocumentStore(github_settings, client=client)
    yield store
    await store.close()


@pytest.fixture
async def redis_store() -> AsyncGenerator[RedisDocumentStore, None]:
    """Redis store under a unique key prefix.

    Skips the test when no Redis server is reachable.
    """
    settings = Settings(
        STORE_BACKEND="redis",
        REDIS_HOST=os.getenv("REDIS_HOST", "localhost"),
        REDIS_PORT=int(os.getenv("REDIS_PORT", "6379")),
        REDIS_KEY_PREFIX=f"test:{uuid.uuid4().hex}:",
    )
    client = aioredis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)

    try:
        await client.ping()
    except (RedisConnectionError, OSError):
        await client.aclose()
        pytest.skip("Redis not available")

    store = RedisDocumentStore(settings, client=client)
    yield store

    keys = await client.keys(f"{settings.REDIS_KEY_PREFIX}*")
    if keys:
        await client.delete(*keys)
    await store.close()


# Marker for tests that need external services
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "docker: mark test as requiring a Redis server"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow running"
    )
