from datetime import timedelta

from voice_billing.voice_cache import VoiceCommandCache
from voice_billing.voice_session import VoiceSession, IDLE, LISTENING

from conftest import TODAY


def _session(**kwargs):
    return VoiceSession("user1", default_currency="AUD", today_fn=lambda: TODAY, **kwargs)


def test_interim_results_do_not_touch_draft():
    session = _session()
    session.start()

    result = session.on_result("create an invoice for John", is_final=False)

    assert result["status"] == "interim"
    assert result["transcript"] == "create an invoice for John"
    assert session.draft.is_empty()
    assert session.state == LISTENING


def test_final_result_is_parsed_and_returns_to_idle():
    session = _session()
    session.start()

    result = session.on_result("bill to John Smith, $80 due tomorrow", is_final=True)

    assert result["status"] == "parsed"
    assert session.state == IDLE
    assert result["draft"]["customer"] == "John Smith"
    assert result["draft"]["amount"] == 80
    assert result["draft"]["currency"] == "AUD"
    assert session.draft.due_date == TODAY + timedelta(days=1)


def test_segments_accumulate_across_listens():
    session = _session()
    session.start()
    session.on_result("bill to John Smith", is_final=True)
    session.start()
    session.on_result("$150 for fence repair", is_final=True)

    assert session.draft.customer == "John Smith"
    assert session.draft.amount == 150
    assert session.draft.description == "fence repair"


def test_stop_discards_interim_but_keeps_draft():
    session = _session()
    session.start()
    session.on_result("bill to Ann", is_final=True)
    session.start()
    session.on_result("for gard", is_final=False)

    result = session.stop()

    assert result["status"] == "stopped"
    assert session.state == IDLE
    assert session.interim == ""
    assert session.draft.customer == "Ann"


def test_results_while_idle_are_rejected():
    session = _session()
    result = session.on_result("bill to Ann", is_final=True)

    assert result == {"status": "error", "reason": "not_listening", "state": IDLE}


def test_double_start_is_rejected():
    session = _session()
    session.start()
    assert session.start()["reason"] == "already_listening"


def test_offline_final_result_is_cached_not_parsed(fake_redis):
    cache = VoiceCommandCache(fake_redis)
    session = _session(cache=cache)
    session.start()

    result = session.on_result("bill to Ann, $20", is_final=True, offline=True)

    assert result["status"] == "cached"
    assert result["command_id"]
    assert session.draft.is_empty()
    assert cache.get_command_count("user1") == {"total": 1, "pending": 1}


def test_complete_resets_session():
    session = _session()
    session.start()
    session.on_result("bill to Ann, $20", is_final=True)

    result = session.complete()

    assert result["status"] == "completed"
    assert session.draft.is_empty()
    assert session.transcript == ""
