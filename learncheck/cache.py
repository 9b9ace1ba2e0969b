# learncheck/cache.py
import hashlib
import json
import logging
from typing import Any, List, Optional, Protocol

import redis.asyncio as redis

logger = logging.getLogger(__name__)

KEY_DELIMITER = ":"
ANONYMOUS_USER = "anonymous"
CONTENT_FINGERPRINT_LENGTH = 32


class CacheBackend(Protocol):
    """What the quiz manager and the routes need from a cache."""

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool: ...

    async def delete(self, key: str) -> bool: ...

    async def exists(self, key: str) -> bool: ...

    async def append(self, key: str, value: Any) -> int: ...

    async def get_list(self, key: str) -> List[Any]: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisCache:
    """
    JSON key-value cache on top of redis.asyncio.

    Every Redis failure is logged and reported as a miss (or False), so an
    unavailable cache only costs a regeneration, never a failed request.
    """

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        self.redis = client if client is not None else redis.from_url(redis_url, decode_responses=True)
        logger.info("RedisCache initialized with Redis URL: %s", redis_url)

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self.redis.get(key)
        except redis.RedisError as e:
            logger.error("Cache GET error for %s: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Dropping undecodable cache entry %s", key)
            await self.delete(key)
            return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        try:
            await self.redis.setex(key, ttl, json.dumps(value, ensure_ascii=False))
            return True
        except redis.RedisError as e:
            logger.error("Cache SET error for %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            await self.redis.delete(key)
            return True
        except redis.RedisError as e:
            logger.error("Cache DEL error for %s: %s", key, e)
            return False

    async def exists(self, key: str) -> bool:
        try:
            return await self.redis.exists(key) == 1
        except redis.RedisError as e:
            logger.error("Cache EXISTS error for %s: %s", key, e)
            return False

    async def append(self, key: str, value: Any) -> int:
        """Push a JSON value onto the list at key; returns the new length (0 on failure)."""
        try:
            return await self.redis.rpush(key, json.dumps(value, ensure_ascii=False))
        except redis.RedisError as e:
            logger.error("Cache RPUSH error for %s: %s", key, e)
            return 0

    async def get_list(self, key: str) -> List[Any]:
        try:
            items = await self.redis.lrange(key, 0, -1)
        except redis.RedisError as e:
            logger.error("Cache LRANGE error for %s: %s", key, e)
            return []
        out = []
        for item in items:
            try:
                out.append(json.loads(item))
            except json.JSONDecodeError:
                logger.warning("Skipping undecodable list item in %s", key)
        return out

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except redis.RedisError as e:
            logger.warning("Redis ping failed: %s", e)
            return False

    async def close(self) -> None:
        try:
            await self.redis.aclose()
            logger.info("Redis client disconnected gracefully")
        except redis.RedisError as e:
            logger.error("Error disconnecting Redis client: %s", e)


def content_fingerprint(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:CONTENT_FINGERPRINT_LENGTH]


def build_questions_key(
    content: str,
    difficulty: str,
    count: int,
    attempt_number: int,
    user_id: Optional[str] = None,
) -> str:
    """
    Cache key for one generation request.

    questions:{fingerprint}:{difficulty}:{count}:{attempt}:{user}
    The attempt number is part of the key so a retry always misses the set
    cached for an earlier attempt.
    """
    parts = [
        "questions",
        content_fingerprint(content),
        difficulty,
        str(count),
        str(attempt_number),
        user_id or ANONYMOUS_USER,
    ]
    return KEY_DELIMITER.join(parts)


def build_tutorial_key(tutorial_id: str) -> str:
    return f"tutorial{KEY_DELIMITER}{tutorial_id}"


def build_tutorials_list_key(category: Optional[str], difficulty: Optional[str], search: Optional[str]) -> str:
    filters = json.dumps({"category": category, "difficulty": difficulty, "search": search}, sort_keys=True)
    return f"tutorials{KEY_DELIMITER}{filters}"


def build_preferences_key(user_id: str) -> str:
    return f"user_preferences{KEY_DELIMITER}{user_id}"


def build_history_key(user_id: str, tutorial_id: str) -> str:
    return KEY_DELIMITER.join(["submissions", user_id, tutorial_id])
