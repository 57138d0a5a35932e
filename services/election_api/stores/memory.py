"""In-process document store for development and tests."""
import asyncio
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..errors import StoreTransportError, VersionConflictError
from .base import ABSENT, Document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WriteRecord:
    """One committed write, kept as an audit trail."""

    name: str
    expected_version: Optional[str]
    new_version: str
    message: str


class InMemoryDocumentStore:
    """Versioned store backed by a dict.

    Items are copied through JSON on every read and write, so callers never
    share mutable state with the store and non-serializable items fail the
    same way they would against a remote backend. ``latency`` is awaited on
    every call to give concurrent tasks a chance to interleave.
    """

    def __init__(self, latency: float = 0.0):
        self.latency = latency
        self._documents: Dict[str, Tuple[str, str]] = {}
        self.history: List[WriteRecord] = []

    def seed(self, name: str, items: List[Any]) -> str:
        """Store items directly, bypassing the version check."""
        version = uuid.uuid4().hex
        self._documents[name] = (json.dumps(items), version)
        return version

    def items(self, name: str) -> List[Any]:
        """Current items of a collection, read synchronously."""
        if name not in self._documents:
            return []
        return json.loads(self._documents[name][0])

    def writes_to(self, name: str) -> List[WriteRecord]:
        return [record for record in self.history if record.name == name]

    async def read(self, name: str) -> Document:
        await asyncio.sleep(self.latency)
        if name not in self._documents:
            logger.debug(f"Collection {name} not found, returning empty document")
            return Document(items=[], version=ABSENT)

        content, version = self._documents[name]
        return Document(items=json.loads(content), version=version)

    async def write(
        self,
        name: str,
        items: List[Any],
        expected_version: Optional[str],
        message: str = "",
    ) -> str:
        try:
            content = json.dumps(items)
        except (TypeError, ValueError) as e:
            raise StoreTransportError(f"Cannot serialize {name}: {e}") from e

        await asyncio.sleep(self.latency)

        current = self._documents.get(name)
        current_version = current[1] if current else ABSENT
        if current_version != expected_version:
            raise VersionConflictError(name, expected_version)

        new_version = uuid.uuid4().hex
        self._documents[name] = (content, new_version)
        self.history.append(WriteRecord(name, expected_version, new_version, message))
        logger.debug(f"Wrote {name} at version {new_version}: {message}")
        return new_version

    async def check_health(self) -> bool:
        return True

    async def close(self) -> None:
        pass
