"""Typed collections over the versioned document store."""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, TypeVar

from services.shared.models import Candidate, CollectionName, VoteRecord, VotingCredential

from .stores.base import DocumentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AppendOutcome(str, Enum):
    """Result of an append guarded by a uniqueness predicate."""
    APPENDED = "appended"
    ALREADY_EXISTS = "already_exists"


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    """Decoded items of a collection and the version they were read at.

    ``raw`` holds the items exactly as stored. Writes extend ``raw`` so
    existing records are never re-encoded.
    """

    items: List[T]
    version: Optional[str]
    raw: List[Any] = field(default_factory=list)


def _identity(value: Any) -> Any:
    return value


class Collection(Generic[T]):
    """
    A named collection of records of one type.

    Records are decoded on read and encoded on write, so callers work with
    model objects while the store only sees JSON values. Nothing is cached:
    every call reads the current document.
    """

    def __init__(
        self,
        store: DocumentStore,
        name: str,
        key: Callable[[T], Any],
        decode: Callable[[Any], T] = _identity,
        encode: Callable[[T], Any] = _identity,
    ):
        self.store = store
        self.name = name
        self.key = key
        self.decode = decode
        self.encode = encode

    async def load(self) -> Snapshot[T]:
        """Read all records together with the document version."""
        document = await self.store.read(self.name)
        return Snapshot(
            items=[self.decode(item) for item in document.items],
            version=document.version,
            raw=document.items,
        )

    async def get_all(self) -> List[T]:
        return (await self.load()).items

    async def find(self, predicate: Callable[[T], bool]) -> Optional[T]:
        """Return the first record matching the predicate, or None."""
        for item in await self.get_all():
            if predicate(item):
                return item
        return None

    async def find_by_id(self, record_id: Any) -> Optional[T]:
        return await self.find(lambda item: self.key(item) == record_id)

    async def append(
        self,
        item: T,
        snapshot: Optional[Snapshot[T]] = None,
        message: str = "",
    ) -> str:
        """
        Append a record with a conditional write.

        Args:
            item: Record to append
            snapshot: State the caller based its decision on. The write is
                conditioned on its version. When omitted, the collection is
                read first.
            message: Change description passed to the store

        Returns:
            The new document version.

        Raises:
            VersionConflictError: The collection changed since the snapshot.
        """
        return await self.extend([item], snapshot, message)

    async def extend(
        self,
        new_items: List[T],
        snapshot: Optional[Snapshot[T]] = None,
        message: str = "",
    ) -> str:
        """Append several records in one conditional write."""
        if snapshot is None:
            snapshot = await self.load()

        items = list(snapshot.raw)
        items.extend(self.encode(item) for item in new_items)
        return await self.store.write(self.name, items, snapshot.version, message)

    async def append_unique(
        self,
        item: T,
        is_duplicate: Callable[[T], bool],
        message: str = "",
    ) -> AppendOutcome:
        """
        Read, check and conditionally append in one cycle.

        No write is attempted when an existing record satisfies
        ``is_duplicate``.
        """
        snapshot = await self.load()
        if any(is_duplicate(existing) for existing in snapshot.items):
            logger.info(f"Record already exists in {self.name}, skipping append")
            return AppendOutcome.ALREADY_EXISTS

        await self.append(item, snapshot, message)
        return AppendOutcome.APPENDED


class ElectionCollections:
    """The four collections of an election, sharing one store."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.candidates: Collection[Candidate] = Collection(
            store,
            CollectionName.CANDIDATES.value,
            key=lambda candidate: candidate.party_name,
            decode=Candidate.from_dict,
            encode=Candidate.to_dict,
        )
        self.voting_ids: Collection[VotingCredential] = Collection(
            store,
            CollectionName.VOTING_IDS.value,
            key=lambda credential: credential.id,
            decode=VotingCredential.from_dict,
            encode=VotingCredential.to_dict,
        )
        self.used_voting_ids: Collection[str] = Collection(
            store,
            CollectionName.USED_VOTING_IDS.value,
            key=_identity,
        )
        self.votes: Collection[VoteRecord] = Collection(
            store,
            CollectionName.VOTES.value,
            key=lambda vote: vote.voting_id,
            decode=VoteRecord.from_dict,
            encode=VoteRecord.to_dict,
        )

