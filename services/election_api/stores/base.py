"""Versioned document store protocol with compare-and-swap writes.

Each collection lives in a single JSON document holding a list of items.
Every successful write produces a new opaque version token; a write
succeeds only if the caller's expected version still matches.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol

# Version of a document that has never been written.
ABSENT: Optional[str] = None


@dataclass(frozen=True)
class Document:
    """A collection's items together with the version they were read at."""

    items: List[Any] = field(default_factory=list)
    version: Optional[str] = ABSENT

    @property
    def exists(self) -> bool:
        return self.version is not ABSENT


class DocumentStore(Protocol):
    """Storage backend for versioned JSON collections."""

    async def read(self, name: str) -> Document:
        """
        Read a collection and its current version.

        Args:
            name: Collection name (e.g. "votes")

        Returns:
            Document with the stored items. A collection that has never been
            written is returned as an empty document with version ``ABSENT``.

        Raises:
            StoreTransportError: The backend could not be reached or returned
                an unreadable payload.
        """
        ...

    async def write(
        self,
        name: str,
        items: List[Any],
        expected_version: Optional[str],
        message: str = "",
    ) -> str:
        """
        Replace a collection if its version still matches (Compare-And-Swap).

        Args:
            name: Collection name
            items: Complete new list of items
            expected_version: Version the caller read, or ``ABSENT`` to create
                a collection that must not exist yet
            message: Description of the change, recorded by backends that
                keep a change history

        Returns:
            The new version token.

        Raises:
            VersionConflictError: The stored version differs from
                ``expected_version``. Safe to retry after a fresh read.
            StoreTransportError: Any other failure. Not retryable.
        """
        ...

    async def check_health(self) -> bool:
        """Return True if the backend is reachable."""
        ...

    async def close(self) -> None:
        """Release backend connections."""
        ...
