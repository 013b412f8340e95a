"""
Redis fallback handler for when Redis is read-only or unreachable
"""

import time
import logging

from redis.exceptions import ReadOnlyError, ConnectionError

logger = logging.getLogger(__name__)


def handle_redis_readonly_error(func, *args, default=None, max_retries=3, retry_delay=5, **kwargs):
    """
    Call func, retrying read-only errors with backoff.

    Returns `default` when Redis stays read-only or the connection fails.
    """
    for attempt in range(max_retries):
        try:
            return func(*args, **kwargs)
        except ReadOnlyError:
            logger.warning("Redis is read-only (attempt %s/%s)", attempt + 1, max_retries)
            if attempt < max_retries - 1:
                time.sleep(retry_delay)
                retry_delay *= 2
            else:
                logger.error("Redis still read-only, skipping voice cache write")
                return default
        except ConnectionError as e:
            logger.warning("Redis connection error: %s", e)
            return default
    return default
