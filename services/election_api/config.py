"""Configuration management for the Election API service."""
from typing import Literal, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service configuration
    SERVICE_NAME: str = "election-api"
    API_PREFIX: str = "/api"
    DEBUG: bool = False

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Document store backend
    STORE_BACKEND: Literal["github", "redis", "memory"] = "github"

    # GitHub contents API
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_REPO_OWNER: str = "minecraft2613"
    GITHUB_REPO_NAME: str = "Election"
    GITHUB_BRANCH: str = "main"
    GITHUB_USER_AGENT: str = "Election-API/1.0"
    GITHUB_TIMEOUT_SECONDS: float = 10.0

    # Collection document paths
    CANDIDATES_PATH: str = "candidates.json"
    VOTES_PATH: str = "votes.json"
    VOTING_IDS_PATH: str = "voting_ids.json"
    USED_VOTING_IDS_PATH: str = "used_voting_ids.json"

    # Redis configuration
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    REDIS_KEY_PREFIX: str = "election:"

    # Optimistic concurrency
    MAX_RETRIES: int = 3
    RETRY_BACKOFF_SECONDS: float = 0.1

    # Rate limiting
    RATE_LIMIT: str = "600/minute"

    # CORS settings
    CORS_ORIGINS: list = ["https://minecraft2613.github.io"]
    CORS_ALLOW_METHODS: list = ["GET", "POST", "OPTIONS"]
    CORS_ALLOW_HEADERS: list = ["Content-Type", "Authorization"]
    CORS_MAX_AGE: int = 86400

    # Static bearer credential for API callers (disabled when unset)
    API_BEARER_TOKEN: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def collection_paths(self) -> dict:
        """Map collection names to their document paths."""
        return {
            "candidates": self.CANDIDATES_PATH,
            "votes": self.VOTES_PATH,
            "voting-ids": self.VOTING_IDS_PATH,
            "used-voting-ids": self.USED_VOTING_IDS_PATH,
        }

    @property
    def github_repo_url(self) -> str:
        """Generate the contents API base URL for the configured repository."""
        return (
            f"{self.GITHUB_API_URL}/repos/"
            f"{self.GITHUB_REPO_OWNER}/{self.GITHUB_REPO_NAME}/contents"
        )

    @property
    def redis_url(self) -> str:
        """Generate Redis connection URL."""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def store_configured(self) -> bool:
        """Whether the selected backend has the server-side credentials it needs."""
        if self.STORE_BACKEND == "github":
            return bool(self.GITHUB_TOKEN)
        return True


settings = Settings()
