"""Best-effort snapshots of in-progress quiz state.

Snapshots live in Redis with a TTL so they outlive a reload or a sign-in
redirect but not the user's session. Every storage or serialization failure is
logged and swallowed: losing a snapshot never breaks quiz taking.
"""

import json
import logging
from typing import Any, Optional

import redis

from quizapp.core.cache import get_redis_client
from quizapp.core.config import settings

logger = logging.getLogger(__name__)


class SessionPersistence:
    def __init__(self, client=None, ttl: Optional[int] = None):
        self._client = client
        self.ttl = ttl if ttl is not None else settings.quiz_state_ttl

    @property
    def client(self):
        if self._client is None:
            self._client = get_redis_client()
        return self._client

    @staticmethod
    def storage_key(quiz_type_prefix: str, slug: str) -> str:
        return f"{quiz_type_prefix}_quiz_state_{slug}"

    @staticmethod
    def session_key(session_id: str) -> str:
        return f"quiz_session_{session_id}"

    def save(self, key: str, snapshot: Any) -> bool:
        try:
            self.client.setex(key, self.ttl, json.dumps(snapshot))
        except (TypeError, ValueError) as e:
            logger.warning(f"Quiz state for {key} is not serializable: {e}")
            return False
        except redis.RedisError as e:
            logger.warning(f"Failed to save quiz state {key}: {e}")
            return False
        return True

    def load(self, key: str) -> Optional[dict]:
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Failed to load quiz state {key}: {e}")
            return None

        if raw is None:
            return None

        try:
            snapshot = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Discarding corrupt quiz state {key}: {e}")
            return None

        if not isinstance(snapshot, dict):
            logger.warning(f"Discarding quiz state {key}: expected an object")
            return None
        return snapshot

    def clear(self, key: str) -> bool:
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.warning(f"Failed to clear quiz state {key}: {e}")
            return False
        return True
