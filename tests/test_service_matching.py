from datetime import timedelta

import pytest

from voice_billing.service_matching import (
    calculate_match_score,
    extract_service_name,
    find_or_create_service,
    generate_keywords,
    infer_category,
    learning_adjustment,
)

from conftest import FakeTemplateStore, FailingTemplateStore, make_template


# -------------------------
# Scoring
# -------------------------

def test_exact_name_match_is_full_score(now):
    template = make_template("Standard Callout", "Standard callout fee")
    assert calculate_match_score("  standard CALLOUT ", template, now) == (1.0, 1.0)


def test_name_containment_scores_point_nine(now):
    template = make_template("Pipe Repair", "Fix pipes")
    score, base = calculate_match_score("pipe", template, now)
    assert score == pytest.approx(0.9)
    assert base == pytest.approx(0.9)


def test_description_containment_scores_point_seven(now):
    template = make_template("Drain Clean", "unclog kitchen drain")
    score, _ = calculate_match_score("kitchen drain", template, now)
    assert score == pytest.approx(0.7)


def test_keyword_containment_scores_point_eight(now):
    template = make_template(
        "Callout", "Standard fee",
        keywords="call out, standard fee, basic charge",
    )
    score, _ = calculate_match_score("basic charge", template, now)
    assert score == pytest.approx(0.8)


def test_word_matching_is_capped_below_threshold(now):
    template = make_template("Gutter Cleaning", "Clean roof gutters")
    score, base = calculate_match_score("gutter repair", template, now)
    # one of two words hits the name: 0.5 * 0.6
    assert base == pytest.approx(0.3)
    assert score == pytest.approx(0.3)


def test_empty_description_does_not_match_everything(now):
    template = make_template("Window Tinting", "")
    score, _ = calculate_match_score("lawn mowing", template, now)
    assert score == 0


# -------------------------
# Learning adjustments
# -------------------------

def test_learning_adjustment_stacks_and_caps(now):
    score = learning_adjustment(0.5, True, 11, now - timedelta(days=1), now)
    assert score == pytest.approx(1.0)
    assert score <= 1.0


def test_learning_adjustment_ignores_weak_scores(now):
    assert learning_adjustment(0.3, True, 50, now, now) == 0.3


def test_moderate_usage_boost(now):
    assert learning_adjustment(0.35, False, 6, None, now) == pytest.approx(0.45)


def test_recency_needs_score_above_point_four(now):
    assert learning_adjustment(0.35, False, 0, now - timedelta(days=2), now) == pytest.approx(0.35)
    assert learning_adjustment(0.5, False, 0, now - timedelta(days=2), now) == pytest.approx(0.55)


def test_stale_templates_get_no_recency_boost(now):
    assert learning_adjustment(0.5, False, 0, now - timedelta(days=8), now) == pytest.approx(0.5)


def test_preferred_template_outscores_equal_plain_template(now):
    plain = make_template("Pipe Repair", "pipes")
    preferred = make_template("Pipe Repair", "pipes", is_preferred=True)

    plain_score, _ = calculate_match_score("pipe", plain, now)
    preferred_score, _ = calculate_match_score("pipe", preferred, now)

    assert preferred_score > plain_score


# -------------------------
# find_or_create_service
# -------------------------

def test_blank_search_term_has_no_side_effects(template_store):
    result = find_or_create_service(template_store, "user1", {"description": "   ", "service": ""})

    assert result == {"template": None, "confidence": 0, "created": False, "is_exact_match": False}
    assert template_store.calls == []


def test_exact_service_match_increments_usage(now):
    callout = make_template("Standard Callout", "Standard callout fee", unit_price=90)
    store = FakeTemplateStore([callout])

    result = find_or_create_service(store, "user1", {"description": "", "service": "Standard Callout"}, now=now)

    assert result["created"] is False
    assert result["is_exact_match"] is True
    assert result["confidence"] == 1.0
    assert result["template"] is callout
    assert callout.usage_count == 1


def test_new_template_created_when_nothing_matches(template_store, now):
    result = find_or_create_service(
        template_store, "user1", {"description": "fix leaking faucet", "amount": 120}, now=now,
    )

    template = result["template"]
    assert result["created"] is True
    assert result["confidence"] == 1.0
    assert result["is_exact_match"] is False
    assert template.name == "fix leaking faucet"
    assert template.category == "plumbing"
    assert template.unit_price == 120
    assert template.quantity == 1
    assert template.usage_count == 0


def test_weak_match_creates_new_template(now):
    store = FakeTemplateStore([make_template("Lawn Mowing", "Cut grass")])

    result = find_or_create_service(store, "user1", {"description": "pipe repair", "amount": 80}, now=now)

    assert result["created"] is True
    assert len(store.templates) == 2
    assert ("increment_usage", 1) not in store.calls


def test_repeated_resolution_returns_same_template(template_store, now):
    first = find_or_create_service(template_store, "user1", {"description": "gutter cleaning"}, now=now)
    second = find_or_create_service(template_store, "user1", {"description": "gutter cleaning"}, now=now)
    third = find_or_create_service(template_store, "user1", {"description": "gutter cleaning"}, now=now)

    assert first["created"] is True
    assert second["created"] is False
    assert second["template"].id == third["template"].id == first["template"].id
    assert third["template"].usage_count == 2


def test_other_users_templates_are_ignored(now):
    store = FakeTemplateStore([make_template("Standard Callout", "fee", user_id="someone-else")])

    result = find_or_create_service(store, "user1", {"service": "Standard Callout"}, now=now)

    assert result["created"] is True


def test_boosted_match_is_not_reported_as_exact(now):
    store = FakeTemplateStore([
        make_template("Drain Clean", "unclog kitchen drain", is_preferred=True),
    ])

    result = find_or_create_service(store, "user1", {"description": "kitchen drain"}, now=now)

    assert result["created"] is False
    assert result["confidence"] == pytest.approx(1.0)
    assert result["is_exact_match"] is False


def test_first_seen_template_wins_ties(now):
    a = make_template("Pipe Repair", "pipes", id=1)
    b = make_template("Pipe Repair Plus", "pipes", id=2)
    store = FakeTemplateStore([a, b])

    result = find_or_create_service(store, "user1", {"description": "pipe"}, now=now)

    assert result["template"] is a


def test_service_name_preferred_over_description(now):
    store = FakeTemplateStore([make_template("Standard Callout", "fee")])

    result = find_or_create_service(
        store, "user1", {"description": "came out to look at a leak", "service": "standard callout"}, now=now,
    )

    assert result["created"] is False


@pytest.mark.parametrize("fail_on", ["find_all_by_user", "increment_usage", "create"])
def test_storage_errors_become_zero_confidence(fail_on):
    store = FailingTemplateStore(fail_on=fail_on)
    term = "Standard Callout" if fail_on != "create" else "something brand new"

    result = find_or_create_service(store, "user1", {"description": term})

    assert result == {"template": None, "confidence": 0, "created": False, "is_exact_match": False}


# -------------------------
# Template derivation
# -------------------------

@pytest.mark.parametrize("description, expected", [
    ("Emergency plumbing service for Mrs Jones", "Emergency plumbing"),
    ("pipe repair", "pipe"),
    ("fix leaking faucet", "fix leaking faucet"),
    ("replace the old kitchen sink", "replace old kitchen"),
    ("the AC", "the AC"),
])
def test_extract_service_name(description, expected):
    assert extract_service_name(description) == expected


def test_generate_keywords_adds_voice_synonyms():
    keywords = generate_keywords("Standard Callout", "Standard callout fee for the job")

    assert keywords == (
        "standard, callout, fee, job, call out, standard fee, basic charge, usual, regular, normal"
    )


def test_generate_keywords_for_consulting():
    keywords = generate_keywords("IT consulting", "an hour of consulting")

    assert "consultation" in keywords
    assert "advice" in keywords
    assert " an," not in f" {keywords},"


@pytest.mark.parametrize("name, description, expected", [
    ("Replace light switch", "", "electrical"),
    ("Garden tidy", "", "landscaping"),
    ("AC service", "", "hvac"),
    ("Replace filter", "", "general"),
    ("Annual tune up", "", "general"),
    ("Fix fence", "broken panel", "repair"),
    ("Quarterly review", "strategy session", "consulting"),
])
def test_infer_category(name, description, expected):
    assert infer_category(name, description) == expected
