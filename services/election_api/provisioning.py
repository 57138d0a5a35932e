"""Out-of-band provisioning of voting IDs.

Voting IDs are reference data: the API never creates them. This module
merges new credentials into the voting-ids collection under the same
conditional-write discipline the API uses, so it is safe to run while the
API is serving traffic.
"""
import csv
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List

from services.shared.models import VotingCredential

from .collections import ElectionCollections
from .errors import ValidationFailure
from .retry import CasRetryCoordinator

logger = logging.getLogger(__name__)


def read_credentials(path: Path) -> Iterator[VotingCredential]:
    """
    Read credentials from a JSON or CSV file.

    JSON files hold a list of ``{"id", "playerName", "gameEdition"}``
    objects; CSV files need a header row with the same column names.

    Raises:
        ValidationFailure: Unsupported file type or malformed content.
    """
    if path.suffix == ".json":
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValidationFailure(f"Error parsing JSON file {path}: {e}") from e
        if not isinstance(data, list):
            raise ValidationFailure(f"Expected a JSON array of credentials in {path}")
        rows: Iterable[Dict] = data
    elif path.suffix == ".csv":
        with open(path, "r", encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
    else:
        raise ValidationFailure(f"Unsupported credential file type: {path.suffix}")

    for row in rows:
        if not isinstance(row, dict) or not row.get("id"):
            raise ValidationFailure(f"Credential without an id in {path}: {row!r}")
        yield VotingCredential.from_dict(row)


async def merge_credentials(
    collections: ElectionCollections,
    coordinator: CasRetryCoordinator,
    credentials: List[VotingCredential],
) -> Dict[str, int]:
    """
    Add credentials whose id is not provisioned yet, in one conditional write.

    Returns:
        dict: Counts of ``added`` and ``skipped`` credentials
    """
    unique: Dict[str, VotingCredential] = {}
    for credential in credentials:
        unique.setdefault(credential.id, credential)

    async def attempt() -> Dict[str, int]:
        snapshot = await collections.voting_ids.load()
        existing = {credential.id for credential in snapshot.items}
        new = [credential for cid, credential in unique.items() if cid not in existing]
        stats = {"added": len(new), "skipped": len(credentials) - len(new)}
        if not new:
            return stats

        await collections.voting_ids.extend(
            new, snapshot, message=f"Provision {len(new)} voting IDs"
        )
        return stats

    stats = await coordinator.run(attempt, operation="provision voting IDs")
    logger.info(f"Provisioned {stats['added']} voting IDs, skipped {stats['skipped']}")
    return stats
