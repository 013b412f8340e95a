# app.py - Voice Billing API
"""
Voice billing service
- voice command parsing into invoice drafts
- service template matching / learning
- chatbot invoice actions
"""

import logging

from flask import Flask

from voice_billing import config
from voice_billing.billing_store import PostgresBillingStore
from voice_billing.db import init_db, get_user_currency
from voice_billing.redis_conn import get_redis_conn_or_raise
from voice_billing.routes import add_voice_billing_routes
from voice_billing.template_store import PostgresTemplateStore
from voice_billing.voice_cache import VoiceCommandCache

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("voice_billing.app")

# Ensure DB schema exists (safe to call)
try:
    init_db()
except Exception as e:
    log.error("init_db() failed: %s", e)

# Offline voice cache is optional
try:
    voice_cache = VoiceCommandCache(get_redis_conn_or_raise())
except Exception as e:
    log.warning("Voice cache disabled, Redis unavailable: %s", e)
    voice_cache = None

app = Flask(__name__)

add_voice_billing_routes(
    app,
    template_store=PostgresTemplateStore(),
    billing_store=PostgresBillingStore(),
    cache=voice_cache,
    currency_lookup=get_user_currency,
)


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=config.PORT)
