"""
Shared models for the election document API.

This package contains common code used by the API and the provisioning
scripts:
- Stored record models (Candidate, VotingCredential, VoteRecord)
- Collection names
- Timestamp helpers
"""

from .models import (
    Candidate,
    CollectionName,
    VoteRecord,
    VotingCredential,
    get_current_timestamp,
)

__all__ = [
    'Candidate',
    'CollectionName',
    'VoteRecord',
    'VotingCredential',
    'get_current_timestamp',
]

__version__ = '1.0.0'
