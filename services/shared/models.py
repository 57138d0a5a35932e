"""
Shared data models and utilities for the election document API.

This module contains:
- Candidate, VotingCredential, VoteRecord: records stored in the collections
- Collection names
- Timestamp helpers
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict
from enum import Enum


class CollectionName(str, Enum):
    """Names of the versioned JSON collections."""
    CANDIDATES = "candidates"
    VOTES = "votes"
    VOTING_IDS = "voting-ids"
    USED_VOTING_IDS = "used-voting-ids"


@dataclass
class Candidate:
    """
    A registered party and its candidate.

    Attributes:
        party_name: Party name, unique across the collection ignoring case
        candidate_name: Display name of the candidate
        password: Credential chosen at registration
        extra: Any other submitted fields, stored verbatim
    """
    party_name: str
    candidate_name: str
    password: str
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stored JSON shape."""
        data = {
            "partyName": self.party_name,
            "candidateName": self.candidate_name,
            "password": self.password,
        }
        data.update(self.extra)
        return data

    def to_public_dict(self) -> Dict[str, Any]:
        """Stored shape without the password, for public listings."""
        data = self.to_dict()
        data.pop("password", None)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Candidate':
        """Create Candidate from a stored or submitted dictionary."""
        extra = {
            key: value for key, value in data.items()
            if key not in ("partyName", "candidateName", "password")
        }
        return cls(
            party_name=data.get("partyName") or "",
            candidate_name=data.get("candidateName") or "",
            password=data.get("password") or "",
            extra=extra,
        )

    def same_party(self, other: 'Candidate') -> bool:
        """Party names collide when they differ only by case."""
        return self.party_name.lower() == other.party_name.lower()


@dataclass(frozen=True)
class VotingCredential:
    """
    A pre-provisioned voting ID authorizing exactly one vote.

    Attributes:
        id: Unique voting ID
        player_name: In-game name of the voter
        game_edition: Game edition the voter plays
    """
    id: str
    player_name: str
    game_edition: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "playerName": self.player_name,
            "gameEdition": self.game_edition,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VotingCredential':
        return cls(
            id=str(data.get("id", "")),
            player_name=data.get("playerName", ""),
            game_edition=data.get("gameEdition", ""),
        )


@dataclass(frozen=True)
class VoteRecord:
    """
    A cast vote. At most one exists per voting ID.

    Attributes:
        voting_id: Credential consumed by this vote
        party: Party voted for
        minecraft_name: Player name copied from the credential
        game_edition: Game edition copied from the credential
        real_name: Optional contact field
        discord_insta: Optional contact field
        timestamp: Server-assigned ISO format UTC timestamp
    """
    voting_id: str
    party: str
    minecraft_name: str
    game_edition: str
    real_name: str = ""
    discord_insta: str = ""
    timestamp: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stored JSON shape."""
        return {
            "votingId": self.voting_id,
            "party": self.party,
            "minecraftName": self.minecraft_name,
            "gameEdition": self.game_edition,
            "realName": self.real_name,
            "discordInsta": self.discord_insta,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VoteRecord':
        return cls(
            voting_id=data.get("votingId", ""),
            party=data.get("party", ""),
            minecraft_name=data.get("minecraftName", ""),
            game_edition=data.get("gameEdition", ""),
            real_name=data.get("realName") or "",
            discord_insta=data.get("discordInsta") or "",
            timestamp=data.get("timestamp", ""),
        )

    @classmethod
    def for_credential(
        cls,
        credential: VotingCredential,
        party: str,
        real_name: str = "",
        discord_insta: str = "",
    ) -> 'VoteRecord':
        """Build a vote from a credential, stamped with the current time."""
        return cls(
            voting_id=credential.id,
            party=party,
            minecraft_name=credential.player_name,
            game_edition=credential.game_edition,
            real_name=real_name or "",
            discord_insta=discord_insta or "",
            timestamp=get_current_timestamp(),
        )


def get_current_timestamp() -> str:
    """
    Get current UTC timestamp in ISO format.

    Returns:
        str: ISO format timestamp with Z suffix
    """
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.isoformat(timespec="milliseconds") + 'Z'
