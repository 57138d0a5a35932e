"""Tests for voting ID provisioning."""

import json
from pathlib import Path
from typing import List

import pytest

from services.election_api.collections import ElectionCollections
from services.election_api.errors import ValidationFailure
from services.election_api.orchestrators import VoteOrchestrator, VoteOutcome
from services.election_api.provisioning import merge_credentials, read_credentials
from services.election_api.retry import CasRetryCoordinator
from services.election_api.stores import InMemoryDocumentStore
from services.shared.models import VotingCredential


class TestReadCredentials:
    """Credential file parsing."""

    def test_json_file(self, tmp_path: Path):
        path = tmp_path / "ids.json"
        path.write_text(json.dumps([
            {"id": "NEW001", "playerName": "Notch", "gameEdition": "Java"},
            {"id": 42, "playerName": "Jeb", "gameEdition": "Bedrock"},
        ]))

        credentials = list(read_credentials(path))

        assert credentials == [
            VotingCredential("NEW001", "Notch", "Java"),
            VotingCredential("42", "Jeb", "Bedrock"),
        ]

    def test_csv_file(self, tmp_path: Path):
        path = tmp_path / "ids.csv"
        path.write_text("id,playerName,gameEdition\nNEW001,Notch,Java\nNEW002,Jeb,Bedrock\n")

        credentials = list(read_credentials(path))

        assert [c.id for c in credentials] == ["NEW001", "NEW002"]
        assert credentials[1].game_edition == "Bedrock"

    def test_row_without_id(self, tmp_path: Path):
        path = tmp_path / "ids.json"
        path.write_text(json.dumps([{"playerName": "Notch"}]))

        with pytest.raises(ValidationFailure):
            list(read_credentials(path))

    def test_not_a_list(self, tmp_path: Path):
        path = tmp_path / "ids.json"
        path.write_text(json.dumps({"id": "NEW001"}))

        with pytest.raises(ValidationFailure):
            list(read_credentials(path))

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "ids.json"
        path.write_text("[{")

        with pytest.raises(ValidationFailure):
            list(read_credentials(path))

    def test_unsupported_suffix(self, tmp_path: Path):
        path = tmp_path / "ids.txt"
        path.write_text("NEW001")

        with pytest.raises(ValidationFailure):
            list(read_credentials(path))


@pytest.mark.asyncio
class TestMergeCredentials:
    """Merging credentials into the voting-ids collection."""

    async def test_new_ids_are_added_in_one_write(
        self,
        collections: ElectionCollections,
        coordinator: CasRetryCoordinator,
        seeded_store: InMemoryDocumentStore
    ):
        new = [VotingCredential("NEW001", "Notch", "Java"), VotingCredential("NEW002", "Jeb", "Java")]

        stats = await merge_credentials(collections, coordinator, new)

        assert stats == {"added": 2, "skipped": 0}
        assert [c["id"] for c in seeded_store.items("voting-ids")][-2:] == ["NEW001", "NEW002"]
        [write] = seeded_store.writes_to("voting-ids")
        assert write.message == "Provision 2 voting IDs"

    async def test_existing_and_repeated_ids_are_skipped(
        self,
        collections: ElectionCollections,
        coordinator: CasRetryCoordinator,
        seeded_store: InMemoryDocumentStore,
        sample_credentials: List[VotingCredential]
    ):
        new = VotingCredential("NEW001", "Notch", "Java")

        stats = await merge_credentials(collections, coordinator, [sample_credentials[0], new, new])

        assert stats == {"added": 1, "skipped": 2}
        assert len(seeded_store.items("voting-ids")) == len(sample_credentials) + 1

    async def test_nothing_new_performs_no_write(
        self,
        collections: ElectionCollections,
        coordinator: CasRetryCoordinator,
        seeded_store: InMemoryDocumentStore,
        sample_credentials: List[VotingCredential]
    ):
        stats = await merge_credentials(collections, coordinator, sample_credentials)

        assert stats == {"added": 0, "skipped": 3}
        assert seeded_store.history == []

    async def test_provisioned_ids_can_vote(
        self,
        memory_store: InMemoryDocumentStore,
        coordinator: CasRetryCoordinator
    ):
        collections = ElectionCollections(memory_store)
        await merge_credentials(collections, coordinator, [VotingCredential("NEW001", "Notch", "Java")])

        outcome = await VoteOrchestrator(collections, coordinator).submit("NEW001", "Red")

        assert outcome is VoteOutcome.RECORDED

    async def test_existing_credentials_are_written_back_unchanged(
        self,
        memory_store: InMemoryDocumentStore,
        coordinator: CasRetryCoordinator
    ):
        existing = [{"id": 42, "playerName": "Alex", "gameEdition": "Java", "team": "A"}]
        memory_store.seed("voting-ids", existing)

        stats = await merge_credentials(
            ElectionCollections(memory_store),
            coordinator,
            [VotingCredential("42", "Alex", "Java"), VotingCredential("NEW1", "Notch", "Java")]
        )

        assert stats == {"added": 1, "skipped": 1}
        assert memory_store.items("voting-ids") == existing + [
            {"id": "NEW1", "playerName": "Notch", "gameEdition": "Java"}
        ]
