"""
Voice Billing
Turns spoken invoice requests into invoices:
- voice command parsing into invoice drafts
- service template matching that learns from usage
- chatbot invoice actions
"""

from .service_matching import find_or_create_service
from .voice_parser import parse_voice_command
from .voice_draft import VoiceInvoiceDraft
