"""
Runtime configuration for voice billing

All values come from the environment (.env supported).
"""

import os
from datetime import datetime, date

import pytz
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD").upper()
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", "5000"))

# Resolver: a template must score strictly above this to be reused
MATCH_THRESHOLD = float(os.getenv("MATCH_THRESHOLD", "0.6"))

VOICE_CACHE_PREFIX = os.getenv("VOICE_CACHE_PREFIX", "voice-invoice-cache")


def now() -> datetime:
    """Timezone-aware current time in DEFAULT_TIMEZONE."""
    return datetime.now(pytz.timezone(DEFAULT_TIMEZONE))


def today() -> date:
    return now().date()
