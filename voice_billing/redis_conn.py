# voice_billing/redis_conn.py
import logging

from redis import from_url

from voice_billing import config

logger = logging.getLogger(__name__)

_conn = None


def get_redis_url():
    return config.REDIS_URL


def get_redis_conn_or_raise():
    """
    Shared Redis client (decoded responses). Raises if Redis is unreachable.
    """
    global _conn
    if _conn is None:
        url = get_redis_url()
        if not url:
            raise RuntimeError("REDIS_URL not configured")
        conn = from_url(url, decode_responses=True)
        conn.ping()
        _conn = conn
        logger.info("Redis connected")
    return _conn
