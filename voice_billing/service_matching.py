"""
Service Matching (find-or-create service templates)

Input:
- user id
- {description, amount?, service?} from a voice command or chatbot action

Output:
- {template, confidence, created, is_exact_match}

This module:
- Scores saved templates with fuzzy text matching + learning signals
- Bumps usage_count on the template it reuses
- Creates a new template when nothing scores above the threshold
- NEVER raises on storage errors (returns a zero-confidence result)
"""

import re
import logging
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Tuple

from voice_billing import config
from voice_billing.service_templates import CATEGORIES, DEFAULT_CATEGORY

logger = logging.getLogger(__name__)


# -------------------------
# Constants
# -------------------------

EXACT_SCORE = 1.0
NAME_CONTAINS_SCORE = 0.9
KEYWORDS_CONTAINS_SCORE = 0.8
DESCRIPTION_CONTAINS_SCORE = 0.7

WORD_WEIGHT_NAME = 1.0
WORD_WEIGHT_KEYWORD = 0.8
WORD_WEIGHT_DESCRIPTION = 0.7
WORD_SCORE_CAP = 0.6

# learning adjustments
LEARNING_MIN_SCORE = 0.3
PREFERRED_BOOST = 0.3
HEAVY_USAGE_COUNT = 10
HEAVY_USAGE_BOOST = 0.15
USAGE_COUNT = 5
USAGE_BOOST = 0.1
RECENT_MIN_SCORE = 0.4
RECENT_DAYS = 7
RECENT_BOOST = 0.05

SERVICE_NAME_PATTERNS = [
    re.compile(r"^(.*?)\s+service\b", re.IGNORECASE),
    re.compile(r"^(.*?)\s+work\b", re.IGNORECASE),
    re.compile(r"^(.*?)\s+job\b", re.IGNORECASE),
    re.compile(r"^(.*?)\s+consultation\b", re.IGNORECASE),
    re.compile(r"^(.*?)\s+repair\b", re.IGNORECASE),
]

NAME_STOPWORDS = {"the", "for", "and", "with", "from"}

KEYWORD_STOPWORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "is", "are", "was", "were", "be", "been", "have",
    "has", "had", "do", "does", "did", "will", "would", "could", "should",
}

# name fragment -> phrases people actually say
VOICE_SYNONYMS = [
    ("callout", ["call out", "standard fee", "basic charge"]),
    ("standard", ["usual", "regular", "normal"]),
    ("consulting", ["consultation", "advice", "consultancy"]),
]

CATEGORY_KEYWORDS = {
    "plumbing": ["plumb", "pipe", "drain", "faucet", "toilet", "sink", "water"],
    "electrical": ["electric", "wire", "outlet", "switch", "light", "circuit"],
    "hvac": ["heating", "cooling", "hvac", "furnace", "ac", "air conditioning"],
    "consulting": ["consult", "advice", "strategy", "planning", "analysis"],
    "repair": ["repair", "fix", "broken", "maintenance"],
    "installation": ["install", "setup", "mount", "assembly"],
    "cleaning": ["clean", "wash", "sanitize", "maintenance"],
    "landscaping": ["lawn", "garden", "landscape", "grass", "tree", "plant"],
}


# -------------------------
# Public API
# -------------------------

def find_or_create_service(
    store,
    user_id: str,
    service_data: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Find the best matching service template for a user, or create one.

    Args:
        store: template storage (find_all_by_user / increment_usage / create)
        user_id (str): template owner
        service_data (dict): {description, amount?, service?}
        now (datetime, optional): reference time for recency scoring

    Returns:
        dict: {template, confidence, created, is_exact_match}
    """

    service_data = service_data or {}
    description = str(service_data.get("description") or "").strip()
    service = str(service_data.get("service") or "").strip()
    amount = service_data.get("amount")

    search_term = service or description
    if not search_term:
        return _no_match()

    now = now or config.now()

    try:
        templates = store.find_all_by_user(user_id)

        best, best_score, best_base = _pick_best(search_term, templates, now)

        if best is not None and best_score > config.MATCH_THRESHOLD:
            store.increment_usage(best.id)
            logger.info(
                "Matched service template %s (%r) for user %s with score %.2f",
                best.id, best.name, user_id, best_score,
            )
            return {
                "template": best,
                "confidence": best_score,
                "created": False,
                "is_exact_match": best_base >= NAME_CONTAINS_SCORE,
            }

        template = store.create(build_template_fields(user_id, description, amount, service))
        logger.info("Created service template %r for user %s", template.name, user_id)

        return {
            "template": template,
            "confidence": 1.0,
            "created": True,
            "is_exact_match": False,
        }

    except Exception:
        logger.exception("find_or_create_service failed for user %s", user_id)
        return _no_match()


def calculate_match_score(search_term: str, template, now: Optional[datetime] = None) -> Tuple[float, float]:
    """
    Score a template against a search term.

    Returns:
        (score, base_score): base_score is before learning adjustments
    """
    search = (search_term or "").lower().strip()
    name = (template.name or "").lower().strip()
    description = (template.description or "").lower().strip()
    keywords = (template.keywords or "").lower().strip()

    if not search:
        return 0.0, 0.0

    if name == search:
        return EXACT_SCORE, EXACT_SCORE

    score = 0.0

    if name and (search in name or name in search):
        score = max(score, NAME_CONTAINS_SCORE)

    if description and (search in description or description in search):
        score = max(score, DESCRIPTION_CONTAINS_SCORE)

    if keywords and (search in keywords or keywords in search):
        score = max(score, KEYWORDS_CONTAINS_SCORE)

    score = max(score, _word_score(search, name, description, keywords) * WORD_SCORE_CAP)
    base = score

    score = learning_adjustment(
        score,
        is_preferred=template.is_preferred,
        usage_count=template.usage_count,
        updated_at=template.updated_at,
        now=now or config.now(),
    )
    return score, base


def learning_adjustment(
    score: float,
    is_preferred: bool,
    usage_count: int,
    updated_at: Optional[datetime],
    now: datetime,
) -> float:
    """
    Boost a base score with the user's own signals. Pure function.
    """
    if score <= LEARNING_MIN_SCORE:
        return score

    if is_preferred:
        score = min(1.0, score + PREFERRED_BOOST)

    usage_count = usage_count or 0
    if usage_count > HEAVY_USAGE_COUNT:
        score = min(1.0, score + HEAVY_USAGE_BOOST)
    elif usage_count > USAGE_COUNT:
        score = min(1.0, score + USAGE_BOOST)

    days = _days_since(updated_at, now)
    if days is not None and days < RECENT_DAYS and score > RECENT_MIN_SCORE:
        score = min(1.0, score + RECENT_BOOST)

    return score


def build_template_fields(
    user_id: str,
    description: str,
    amount=None,
    service: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Fields for a brand new template learned from voice input.
    """
    description = description or service or ""
    name = service or extract_service_name(description)

    return {
        "user_id": user_id,
        "name": name,
        "description": description,
        "unit_price": amount or 0,
        "quantity": 1,
        "keywords": generate_keywords(name, description),
        "category": infer_category(name, description),
    }


def extract_service_name(description: str) -> str:
    """
    Concise service name from a free-text description.
    """
    description = (description or "").strip()

    for pattern in SERVICE_NAME_PATTERNS:
        match = pattern.search(description)
        if match and match.group(1).strip():
            return match.group(1).strip()

    meaningful = [
        w for w in description.lower().split()
        if len(w) > 2 and w not in NAME_STOPWORDS
    ]

    return " ".join(meaningful[:3]) or description[:30]


def generate_keywords(name: str, description: str) -> str:
    """
    Comma-separated search keywords, including voice-friendly phrases.
    """
    name_lower = (name or "").lower()
    words = name_lower.split() + (description or "").lower().split()

    keywords = [w for w in dict.fromkeys(words) if len(w) > 2 and w not in KEYWORD_STOPWORDS]

    for fragment, phrases in VOICE_SYNONYMS:
        if fragment in name_lower:
            keywords.extend(p for p in phrases if p not in keywords)

    return ", ".join(keywords)


def infer_category(name: str, description: str) -> str:
    text = f"{name or ''} {description or ''}".lower()

    for category in CATEGORIES:
        for keyword in CATEGORY_KEYWORDS[category]:
            if _contains_keyword(text, keyword):
                return category

    return DEFAULT_CATEGORY


# -------------------------
# Internal helpers
# -------------------------

def _no_match() -> Dict[str, Any]:
    return {
        "template": None,
        "confidence": 0,
        "created": False,
        "is_exact_match": False,
    }


def _pick_best(search_term: str, templates: List, now: datetime):
    """
    First template with the strictly highest score wins.
    """
    best = None
    best_score = 0.0
    best_base = 0.0

    for template in templates:
        score, base = calculate_match_score(search_term, template, now)
        if score > best_score:
            best, best_score, best_base = template, score, base

    return best, best_score, best_base


def _word_score(search: str, name: str, description: str, keywords: str) -> float:
    search_words = search.split()
    if not search_words:
        return 0.0

    name_words = name.split()
    desc_words = description.split()
    keyword_words = [w for w in re.split(r"[,\s]+", keywords) if w]

    matches = 0.0
    for word in search_words:
        if len(word) < 2:
            continue

        if _partial_hit(word, name_words):
            matches += WORD_WEIGHT_NAME
        elif _partial_hit(word, desc_words):
            matches += WORD_WEIGHT_DESCRIPTION
        elif _partial_hit(word, keyword_words):
            matches += WORD_WEIGHT_KEYWORD

    return matches / len(search_words)


def _partial_hit(word: str, candidates: List[str]) -> bool:
    return any(word in c or c in word for c in candidates)


def _contains_keyword(text: str, keyword: str) -> bool:
    # two-letter keywords ("ac") only count as whole words
    if len(keyword) <= 2:
        return re.search(rf"\b{re.escape(keyword)}\b", text) is not None
    return keyword in text


def _days_since(updated_at: Optional[datetime], now: datetime) -> Optional[int]:
    if updated_at is None:
        return None

    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    return (now - updated_at).days
