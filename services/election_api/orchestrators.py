"""
Vote casting and candidate registration.

Both operations are read-modify-write cycles over versioned collections,
run under the CAS retry coordinator. Vote casting spans two documents
(votes and used voting IDs) that cannot be written atomically together:
the vote is recorded first and the voting ID marked second.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from services.shared.models import Candidate, VoteRecord, VotingCredential

from .collections import AppendOutcome, ElectionCollections
from .errors import (
    DuplicatePartyError,
    InvalidCredentialError,
    PartialCommitError,
    StoreTransportError,
    ValidationFailure,
)
from .retry import CasRetryCoordinator

logger = logging.getLogger(__name__)


class VoteOutcome(str, Enum):
    """Successful outcomes of a vote submission."""
    RECORDED = "recorded"
    ALREADY_VOTED = "already_voted"


@dataclass(frozen=True)
class CredentialStatus:
    """Whether a voting ID is provisioned and whether it has been used."""

    credential: VotingCredential
    used: bool


class VoteOrchestrator:
    """Checks voting IDs and records votes against them."""

    def __init__(self, collections: ElectionCollections, coordinator: CasRetryCoordinator):
        self.collections = collections
        self.coordinator = coordinator

    async def check(self, voting_id: Optional[str]) -> CredentialStatus:
        """
        Look up a voting ID without modifying anything.

        Raises:
            ValidationFailure: No voting ID given.
            InvalidCredentialError: The voting ID is not provisioned.
        """
        if not voting_id:
            raise ValidationFailure("Voting ID is required.")

        credential = await self.collections.voting_ids.find_by_id(voting_id)
        if credential is None:
            raise InvalidCredentialError(voting_id)

        used_ids = await self.collections.used_voting_ids.get_all()
        return CredentialStatus(credential=credential, used=voting_id in used_ids)

    async def submit(
        self,
        voting_id: Optional[str],
        party: Optional[str],
        real_name: Optional[str] = None,
        discord_insta: Optional[str] = None,
    ) -> VoteOutcome:
        """
        Cast a vote, consuming the voting ID.

        Each attempt re-validates the credential, re-reads the used IDs and
        votes, then writes the vote and the used-ID marker. A version
        conflict on either write restarts the whole attempt.

        Returns:
            RECORDED when this call completed the vote for ``party``.
            ALREADY_VOTED when the voting ID had already been consumed, or
            when an unmarked vote for another party was found and only its
            marker was completed.

        Raises:
            ValidationFailure: voting_id or party missing.
            InvalidCredentialError: The voting ID is not provisioned.
            PartialCommitError: The vote was written but marking the ID failed.
            RetriesExhaustedError: Every attempt lost a version race.
        """
        if not voting_id or not party:
            raise ValidationFailure("Missing voting ID or party for vote submission.")

        async def attempt() -> VoteOutcome:
            credential = await self.collections.voting_ids.find_by_id(voting_id)
            if credential is None:
                raise InvalidCredentialError(
                    voting_id, "Invalid Voting ID provided for vote submission."
                )

            used = await self.collections.used_voting_ids.load()
            if voting_id in used.items:
                logger.info(f"Voting ID {voting_id} has already been used")
                return VoteOutcome.ALREADY_VOTED

            votes = await self.collections.votes.load()
            existing = next((vote for vote in votes.items if vote.voting_id == voting_id), None)
            outcome = VoteOutcome.RECORDED
            if existing is not None:
                # Left by an attempt whose marker write did not land.
                logger.warning(
                    f"Vote for {voting_id} already recorded but ID not marked; completing marker"
                )
                if existing.party != party:
                    logger.warning(
                        f"Recorded vote for {voting_id} is for {existing.party}, not {party}"
                    )
                    outcome = VoteOutcome.ALREADY_VOTED
            else:
                record = VoteRecord.for_credential(credential, party, real_name, discord_insta)
                await self.collections.votes.append(
                    record, votes, message=f"Add vote for {party} by {voting_id}"
                )

            try:
                await self.collections.used_voting_ids.append(
                    voting_id, used, message=f"Mark voting ID {voting_id} as used"
                )
            except StoreTransportError as e:
                logger.error(f"Vote for {voting_id} recorded but marking it as used failed: {e}")
                raise PartialCommitError(voting_id) from e

            logger.info(f"Vote completed: voting_id={voting_id}, outcome={outcome.value}")
            return outcome

        return await self.coordinator.run(
            attempt,
            operation="submit vote",
            exhausted_message="Failed to submit vote after multiple retries due to concurrent updates.",
        )


class RegistrationOrchestrator:
    """Registers candidates with unique party names."""

    def __init__(self, collections: ElectionCollections, coordinator: CasRetryCoordinator):
        self.collections = collections
        self.coordinator = coordinator

    async def register(self, submitted: Dict[str, Any]) -> Candidate:
        """
        Append a candidate unless its party name is taken.

        Args:
            submitted: Candidate fields as submitted. ``partyName``,
                ``candidateName`` and ``password`` are required; other
                fields are stored as given.

        Raises:
            ValidationFailure: A required field is missing.
            DuplicatePartyError: The party name exists, ignoring case.
            RetriesExhaustedError: Every attempt lost a version race.
        """
        candidate = Candidate.from_dict(submitted)
        if not candidate.party_name or not candidate.candidate_name or not candidate.password:
            raise ValidationFailure(
                "Missing required candidate fields (partyName, candidateName, password)."
            )

        async def attempt() -> Candidate:
            outcome = await self.collections.candidates.append_unique(
                candidate,
                candidate.same_party,
                message=f"Add new candidate: {candidate.candidate_name}",
            )
            if outcome is AppendOutcome.ALREADY_EXISTS:
                raise DuplicatePartyError(candidate.party_name)
            logger.info(f"Candidate registered: party={candidate.party_name}")
            return candidate

        return await self.coordinator.run(
            attempt,
            operation="register candidate",
            exhausted_message="Failed to register candidate after multiple retries due to concurrent updates.",
        )
