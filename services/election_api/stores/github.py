"""Document store backed by the GitHub contents API.

Each collection is a JSON file in a repository branch. The blob SHA of the
file is its version token: GitHub rejects a PUT whose ``sha`` no longer
matches the file, which gives per-document compare-and-swap. Every write
is a commit, so the repository history doubles as an audit log.
"""
import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import Settings
from ..errors import StoreTransportError, VersionConflictError
from .base import ABSENT, Document

logger = logging.getLogger(__name__)


class GitHubDocumentStore:
    """Async GitHub contents API client with CAS writes."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.branch = settings.GITHUB_BRANCH
        self.paths: Dict[str, str] = settings.collection_paths
        self.client = client or httpx.AsyncClient(
            base_url=settings.github_repo_url,
            headers=self._headers(),
            timeout=settings.GITHUB_TIMEOUT_SECONDS,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": self.settings.GITHUB_USER_AGENT,
        }
        if self.settings.GITHUB_TOKEN:
            headers["Authorization"] = f"Bearer {self.settings.GITHUB_TOKEN}"
        return headers

    def path_for(self, name: str) -> str:
        return self.paths.get(name, f"{name}.json")

    async def read(self, name: str) -> Document:
        """
        Fetch a collection file and decode its JSON content.

        Args:
            name: Collection name

        Returns:
            Document whose version is the file's blob SHA, or an empty
            document with version ``ABSENT`` if the file does not exist.
        """
        path = self.path_for(name)
        try:
            response = await self.client.get(path, params={"ref": self.branch})
        except httpx.HTTPError as e:
            logger.error(f"Network error fetching {path}: {e}")
            raise StoreTransportError(f"Failed to fetch {path} from GitHub: {e}") from e

        if response.status_code == 404:
            logger.warning(f"File not found on GitHub: {path}. Returning empty content.")
            return Document(items=[], version=ABSENT)

        if response.is_error:
            logger.error(
                f"GitHub API error fetching {path}: {response.status_code} - {response.text}"
            )
            raise StoreTransportError(
                f"Failed to fetch {path} from GitHub: {response.status_code}"
            )

        try:
            data = response.json()
            items = json.loads(base64.b64decode(data["content"]).decode("utf-8"))
        except (ValueError, KeyError, TypeError, binascii.Error) as e:
            logger.error(f"Error parsing content for {path}: {e}")
            raise StoreTransportError(f"Failed to parse file content for {path}: {e}") from e

        if not isinstance(items, list):
            raise StoreTransportError(f"Content of {path} is not a JSON array")

        return Document(items=items, version=data.get("sha"))

    async def write(
        self,
        name: str,
        items: List[Any],
        expected_version: Optional[str],
        message: str = "",
    ) -> str:
        """
        Commit a new version of a collection file.

        The file is written as pretty-printed JSON. Passing ``ABSENT`` as the
        expected version creates the file; GitHub refuses the create if the
        file appeared in the meantime.

        Returns:
            The blob SHA of the new file content.
        """
        path = self.path_for(name)
        content = json.dumps(items, indent=2, ensure_ascii=False).encode("utf-8")
        body: Dict[str, Any] = {
            "message": message or f"Update {path}",
            "content": base64.b64encode(content).decode("ascii"),
            "branch": self.branch,
        }
        if expected_version is not ABSENT:
            body["sha"] = expected_version

        try:
            response = await self.client.put(path, json=body)
        except httpx.HTTPError as e:
            logger.error(f"Network error updating {path}: {e}")
            raise StoreTransportError(f"Failed to update {path} on GitHub: {e}") from e

        # 409: sha no longer matches. 422 on a create: the file now exists and
        # a sha is required.
        if response.status_code == 409 or (
            response.status_code == 422 and expected_version is ABSENT
        ):
            logger.warning(f"SHA mismatch updating {path}: file has been updated by another process")
            raise VersionConflictError(name, expected_version)

        if response.is_error:
            logger.error(
                f"GitHub API error updating {path}: {response.status_code} - {response.text}"
            )
            raise StoreTransportError(
                f"Failed to update {path} on GitHub: {response.status_code}"
            )

        try:
            return response.json()["content"]["sha"]
        except (ValueError, KeyError, TypeError) as e:
            raise StoreTransportError(f"Unexpected GitHub response updating {path}: {e}") from e

    async def check_health(self) -> bool:
        """
        Check that the repository is reachable with the configured token.

        Returns:
            bool: True if healthy, False otherwise
        """
        url = (
            f"{self.settings.GITHUB_API_URL}/repos/"
            f"{self.settings.GITHUB_REPO_OWNER}/{self.settings.GITHUB_REPO_NAME}"
        )
        try:
            response = await self.client.get(url)
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"GitHub health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close the HTTP client."""
        try:
            await self.client.aclose()
            logger.info("GitHub client closed successfully")
        except Exception as e:
            logger.error(f"Error closing GitHub client: {e}")
