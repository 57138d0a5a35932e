"""Document store backed by Redis hashes.

Each collection is a hash with two fields: ``content`` (the JSON list) and
``version`` (an opaque token regenerated on every write). Compare-and-swap
uses WATCH/MULTI/EXEC, so a concurrent write between the version check
and EXEC aborts the transaction.
"""
import json
import logging
import uuid
from typing import Any, List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from ..config import Settings
from ..errors import StoreTransportError, VersionConflictError
from .base import ABSENT, Document

logger = logging.getLogger(__name__)


class RedisDocumentStore:
    """Versioned collections stored in Redis."""

    def __init__(self, settings: Settings, client: Optional[redis.Redis] = None):
        self.key_prefix = settings.REDIS_KEY_PREFIX
        self.client = client or redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True
        )

    def key_for(self, name: str) -> str:
        return f"{self.key_prefix}{name}"

    async def read(self, name: str) -> Document:
        key = self.key_for(name)
        try:
            stored = await self.client.hgetall(key)
        except RedisError as e:
            logger.error(f"Redis error reading {key}: {e}")
            raise StoreTransportError(f"Failed to read {name} from Redis: {e}") from e

        if not stored:
            return Document(items=[], version=ABSENT)

        try:
            items = json.loads(stored["content"])
        except (KeyError, ValueError) as e:
            raise StoreTransportError(f"Failed to parse content for {name}: {e}") from e

        return Document(items=items, version=stored.get("version"))

    async def write(
        self,
        name: str,
        items: List[Any],
        expected_version: Optional[str],
        message: str = "",
    ) -> str:
        key = self.key_for(name)
        content = json.dumps(items, indent=2, ensure_ascii=False)
        new_version = uuid.uuid4().hex

        try:
            async with self.client.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                current_version = await pipe.hget(key, "version")
                if current_version != expected_version:
                    await pipe.unwatch()
                    raise VersionConflictError(name, expected_version)

                pipe.multi()
                pipe.hset(key, mapping={"content": content, "version": new_version})
                await pipe.execute()
        except WatchError as e:
            logger.warning(f"Concurrent write detected on {key}")
            raise VersionConflictError(name, expected_version) from e
        except RedisError as e:
            logger.error(f"Redis error writing {key}: {e}")
            raise StoreTransportError(f"Failed to write {name} to Redis: {e}") from e

        logger.debug(f"Wrote {key} at version {new_version}: {message}")
        return new_version

    async def check_health(self) -> bool:
        try:
            await self.client.ping()
            return True
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        try:
            await self.client.aclose()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")
