"""
Voice Invoice Session (State Machine)

- One session per user conversation / device
- Interim speech results only update the transcript
- Final results are parsed and merged into the draft
- No invoice persistence here (see invoice_actions)
"""

import logging
from typing import Dict, Any, Optional

from voice_billing.voice_draft import VoiceInvoiceDraft
from voice_billing.voice_parser import parse_voice_command

logger = logging.getLogger(__name__)

# -------------------------
# Constants
# -------------------------

IDLE = "IDLE"
LISTENING = "LISTENING"
PROCESSING = "PROCESSING"

STATES = {IDLE, LISTENING, PROCESSING}


class VoiceSession:
    """
    Tracks the listening state, live transcript and merged draft.
    """

    def __init__(
        self,
        user_id: str,
        default_currency: Optional[str] = None,
        cache=None,
        today_fn=None,
    ):
        self.user_id = user_id
        self.default_currency = default_currency
        self.cache = cache
        self._today_fn = today_fn

        self.state = IDLE
        self.transcript = ""
        self.interim = ""
        self.draft = VoiceInvoiceDraft()

    # -------------------------
    # Public API
    # -------------------------

    def start(self) -> Dict[str, Any]:
        if self.state != IDLE:
            return _error("already_listening", self.state)

        self.state = LISTENING
        self.transcript = ""
        self.interim = ""
        return self._status("listening")

    def on_result(self, text: str, is_final: bool, offline: bool = False) -> Dict[str, Any]:
        """
        Feed a speech recognition result.

        Interim results never touch the draft.
        """
        if self.state != LISTENING:
            return _error("not_listening", self.state)

        if not is_final:
            self.interim = text or ""
            return self._status("interim")

        self.interim = ""
        self.transcript = f"{self.transcript} {text}".strip() if text else self.transcript

        if offline and self.cache is not None:
            command_id = self.cache.save_command(self.user_id, text)
            return {**self._status("cached"), "command_id": command_id}

        self.state = PROCESSING
        try:
            self.draft = parse_voice_command(
                text,
                self.draft,
                default_currency=self.default_currency,
                today=self._today_fn() if self._today_fn else None,
            )
        finally:
            self.state = IDLE

        logger.debug("voice draft for %s: %r", self.user_id, self.draft)
        return self._status("parsed")

    def stop(self) -> Dict[str, Any]:
        """
        Cancel listening. Interim text is dropped, the draft is kept.
        """
        if self.state == IDLE:
            return self._status("idle")

        self.state = IDLE
        self.interim = ""
        return self._status("stopped")

    def clear(self) -> Dict[str, Any]:
        self.state = IDLE
        self.transcript = ""
        self.interim = ""
        self.draft = VoiceInvoiceDraft()
        return self._status("cleared")

    def complete(self) -> Dict[str, Any]:
        """
        Invoice was created from the draft; start over.
        """
        self.clear()
        return self._status("completed")

    # -------------------------
    # Internal helpers
    # -------------------------

    def _status(self, status: str) -> Dict[str, Any]:
        return {
            "status": status,
            "state": self.state,
            "transcript": f"{self.transcript} {self.interim}".strip(),
            "draft": self.draft.to_dict(),
        }


def _error(reason: str, state: str) -> Dict[str, Any]:
    return {
        "status": "error",
        "reason": reason,
        "state": state,
    }
