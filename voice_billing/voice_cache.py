"""
Offline voice command cache

Keeps voice commands (and optionally prepared invoice data) that could not
be processed because the user was offline, so they can be replayed later.

Rules:
- One Redis hash per user
- Best-effort: Redis trouble degrades to "nothing cached", never raises
"""

import json
import time
import uuid
import logging
from typing import Dict, List, Any, Optional

from voice_billing import config
from voice_billing.redis_fallback import handle_redis_readonly_error

logger = logging.getLogger(__name__)


class VoiceCommandCache:

    def __init__(self, redis_client, prefix: Optional[str] = None, retry_delay: float = 5):
        self.redis = redis_client
        self.prefix = prefix or config.VOICE_CACHE_PREFIX
        self.retry_delay = retry_delay

    def _key(self, user_id: str) -> str:
        return f"{self.prefix}:{user_id}"

    def _safe(self, func, *args, default=None):
        return handle_redis_readonly_error(func, *args, default=default, retry_delay=self.retry_delay)

    # -------------------------
    # Public API
    # -------------------------

    def save_command(self, user_id: str, transcript: str, invoice_data: Optional[Dict[str, Any]] = None):
        """
        Store a command. Returns its id, or None if Redis is unavailable.
        """
        command = {
            "id": uuid.uuid4().hex,
            "transcript": transcript,
            "timestamp": int(time.time() * 1000),
            "processed": False,
            "invoice_data": invoice_data,
        }

        stored = self._safe(self.redis.hset, self._key(user_id), command["id"], json.dumps(command, default=str))
        if stored is None:
            return None

        logger.info("Cached offline voice command %s for %s", command["id"], user_id)
        return command["id"]

    def get_commands(self, user_id: str) -> List[Dict[str, Any]]:
        raw = self._safe(self.redis.hgetall, self._key(user_id), default={}) or {}

        commands = []
        for value in raw.values():
            try:
                commands.append(json.loads(value))
            except (TypeError, ValueError):
                logger.warning("Dropping unreadable cached command for %s", user_id)

        return sorted(commands, key=lambda c: c.get("timestamp", 0))

    def get_pending_commands(self, user_id: str) -> List[Dict[str, Any]]:
        return [c for c in self.get_commands(user_id) if not c.get("processed")]

    def mark_as_processed(self, user_id: str, command_id: str) -> bool:
        for command in self.get_commands(user_id):
            if command.get("id") == command_id:
                command["processed"] = True
                result = self._safe(self.redis.hset, self._key(user_id), command_id, json.dumps(command, default=str))
                return result is not None
        return False

    def clear_processed(self, user_id: str) -> int:
        processed = [c["id"] for c in self.get_commands(user_id) if c.get("processed")]
        if not processed:
            return 0
        return self._safe(self.redis.hdel, self._key(user_id), *processed, default=0) or 0

    def clear_all(self, user_id: str):
        self._safe(self.redis.delete, self._key(user_id))

    def get_command_count(self, user_id: str) -> Dict[str, int]:
        commands = self.get_commands(user_id)
        return {
            "total": len(commands),
            "pending": len([c for c in commands if not c.get("processed")]),
        }
