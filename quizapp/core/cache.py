import redis

from quizapp.core.config import settings

_redis_client = None


def get_redis_client():
    global _redis_client
    if _redis_client is None:
        # Synchronous client; quiz state snapshots are small JSON blobs
        _redis_client = redis.Redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client
