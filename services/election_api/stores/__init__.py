"""Versioned document store backends."""
from ..config import Settings
from .base import ABSENT, Document, DocumentStore
from .github import GitHubDocumentStore
from .memory import InMemoryDocumentStore
from .redis_store import RedisDocumentStore

__all__ = [
    'ABSENT',
    'Document',
    'DocumentStore',
    'GitHubDocumentStore',
    'InMemoryDocumentStore',
    'RedisDocumentStore',
    'create_store',
]


def create_store(settings: Settings) -> DocumentStore:
    """Build the backend selected by ``STORE_BACKEND``."""
    if settings.STORE_BACKEND == "github":
        return GitHubDocumentStore(settings)
    if settings.STORE_BACKEND == "redis":
        return RedisDocumentStore(settings)
    return InMemoryDocumentStore()
