"""Pydantic models for request/response validation."""
from datetime import datetime, timezone
from typing import Literal, Optional
from pydantic import BaseModel, Field


class VotingIdRequest(BaseModel):
    """Voting ID check request model."""

    votingId: Optional[str] = Field(default=None, description="Voting ID to check")

    class Config:
        json_schema_extra = {
            "example": {
                "votingId": "ABC123"
            }
        }


class VoteRequest(BaseModel):
    """Vote submission request model."""

    votingId: Optional[str] = Field(default=None, description="Voting ID consumed by this vote")
    party: Optional[str] = Field(default=None, description="Party voted for")
    realName: Optional[str] = Field(default=None, description="Optional real name of the voter")
    discordInsta: Optional[str] = Field(default=None, description="Optional Discord or Instagram handle")

    class Config:
        json_schema_extra = {
            "example": {
                "votingId": "ABC123",
                "party": "Red",
                "realName": "Alex",
                "discordInsta": "@alex"
            }
        }


class CandidateRequest(BaseModel):
    """Candidate registration request model. Unknown fields are stored as given."""

    partyName: Optional[str] = Field(default=None, description="Party name, unique ignoring case")
    candidateName: Optional[str] = Field(default=None, description="Candidate display name")
    password: Optional[str] = Field(default=None, description="Candidate password")

    class Config:
        extra = "allow"
        json_schema_extra = {
            "example": {
                "partyName": "Red",
                "candidateName": "Steve",
                "password": "secret"
            }
        }


class MessageResponse(BaseModel):
    """Outcome of a write operation, or any error."""

    success: bool = Field(..., description="Whether the request succeeded")
    message: str = Field(..., description="Human readable outcome")


class VotingIdStatusResponse(BaseModel):
    """Voting ID check response model."""

    success: bool = True
    valid: bool = Field(..., description="Voting ID is provisioned")
    used: bool = Field(..., description="Voting ID has already voted")
    message: str
    playerName: str
    gameEdition: str

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "valid": True,
                "used": False,
                "message": "Voting ID accepted.",
                "playerName": "Steve",
                "gameEdition": "Java"
            }
        }


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    services: dict = Field(..., description="Status of individual services")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Health check timestamp"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "services": {
                    "github": "connected"
                },
                "timestamp": "2025-01-15T10:30:00Z"
            }
        }
