"""Error taxonomy for the Election API.

Every error carries the HTTP status it is surfaced with, so the API layer
maps them to ``{"success": false, "message": ...}`` responses without
inspecting message text.
"""
from typing import Optional


class ElectionError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailure(ElectionError):
    """Missing or malformed input. Terminal and user-correctable."""

    status_code = 400


class BusinessRuleViolation(ElectionError):
    """A request that is well formed but not allowed. Never retried."""

    status_code = 409


class InvalidCredentialError(BusinessRuleViolation):
    """The voting ID is not among the provisioned credentials."""

    status_code = 401

    def __init__(self, voting_id: str, message: str = "Invalid Voting ID."):
        super().__init__(message)
        self.voting_id = voting_id


class DuplicatePartyError(BusinessRuleViolation):
    """A candidate with the same party name (ignoring case) exists."""

    def __init__(self, party_name: str):
        super().__init__("A party with this name already exists.")
        self.party_name = party_name


class StoreError(ElectionError):
    """Base class for document store failures."""


class VersionConflictError(StoreError):
    """The stored version no longer matches the expected one.

    This is the only retryable failure. The caller must re-read the
    document before trying again.
    """

    status_code = 409

    def __init__(self, collection: str, expected_version: Optional[str]):
        super().__init__(
            f"Version conflict on {collection}: "
            f"expected {expected_version or 'absent document'}"
        )
        self.collection = collection
        self.expected_version = expected_version


class StoreTransportError(StoreError):
    """Network, authentication or payload failure talking to the store."""


class RetriesExhaustedError(ElectionError):
    """Every attempt lost a version race."""

    def __init__(self, operation: str, attempts: int, message: Optional[str] = None):
        super().__init__(
            message
            or f"Failed to {operation} after multiple retries due to concurrent updates."
        )
        self.operation = operation
        self.attempts = attempts


class PartialCommitError(StoreError):
    """The vote was recorded but its voting ID could not be marked as used.

    No compensating write is attempted; the gap is left for a later
    submission with the same voting ID to close.
    """

    def __init__(self, voting_id: str):
        super().__init__(
            f"Vote for voting ID {voting_id} was recorded but the ID could not "
            f"be marked as used."
        )
        self.voting_id = voting_id
