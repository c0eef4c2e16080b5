"""
Unit tests for the review session controller.
"""

import pytest

from carddown.algorithm import Quality, SM2Algorithm, SM5Algorithm
from carddown.models import GlobalState
from carddown.session import ReviewSession, make_completion
from carddown.store import CardStore, GlobalStateStore


class Recorder:
    """Completion callback that remembers its calls."""

    def __init__(self):
        self.calls = []

    def __call__(self, entries, global_state):
        self.calls.append((list(entries), global_state))


class FakeClock:
    def __init__(self):
        self.value = 0.0

    def __call__(self):
        return self.value


@pytest.fixture
def recorder():
    return Recorder()


def test_grade_updates_entry_and_global_state(make_entry, recorder):
    entries = [make_entry("a"), make_entry("b")]
    global_state = GlobalState()
    session = ReviewSession(entries, SM2Algorithm(), global_state, recorder)

    updated = session.grade(Quality.PERFECT)

    assert updated is entries[0]
    assert updated.revise_count == 1
    assert updated.last_revised is not None
    assert updated.state.interval == 1
    assert global_state.mean_q == 5.0
    assert global_state.total_cards_revised == 1
    assert session.current is entries[1]
    assert session.remaining == 1


def test_leech_marked_at_threshold(make_entry, recorder):
    entry = make_entry("a")
    entry.state.failed_count = 2
    session = ReviewSession([entry], SM2Algorithm(), GlobalState(), recorder, leech_threshold=3)

    session.grade(Quality.INCORRECT_AND_FORGOTTEN)

    assert entry.leech is True
    assert session.stats.new_leeches == [entry.id]


def test_sm5_failures_reach_leech_threshold(make_entry, recorder):
    entry = make_entry("a")
    ease_factor = entry.state.ease_factor
    session = ReviewSession([entry] * 20, SM5Algorithm(), GlobalState(), recorder, leech_threshold=15)

    for _ in range(15):
        session.grade(Quality.INCORRECT_AND_FORGOTTEN)

    assert entry.state.failed_count == 15
    assert entry.state.ease_factor == ease_factor
    assert entry.leech is True
    assert session.stats.new_leeches == [entry.id]


def test_sm2_failure_counted_once(make_entry, recorder):
    entry = make_entry("a")
    session = ReviewSession([entry], SM2Algorithm(), GlobalState(), recorder)

    session.grade(Quality.INCORRECT_BUT_REMEMBERED)

    assert entry.state.failed_count == 1


def test_leech_not_marked_below_threshold(make_entry, recorder):
    entry = make_entry("a")
    session = ReviewSession([entry], SM2Algorithm(), GlobalState(), recorder, leech_threshold=3)

    session.grade(Quality.INCORRECT_AND_FORGOTTEN)

    assert entry.leech is False


def test_finish_calls_back_once_with_reviewed_entries(make_entry, recorder):
    entries = [make_entry("a"), make_entry("b"), make_entry("c")]
    global_state = GlobalState()
    session = ReviewSession(entries, SM5Algorithm(), global_state, recorder)
    session.grade(Quality.PERFECT)

    session.finish()
    session.finish()

    assert len(recorder.calls) == 1
    reviewed, passed_state = recorder.calls[0]
    assert reviewed == [entries[0]]
    assert passed_state is global_state
    assert session.done


def test_finish_runs_when_loop_raises(make_entry, recorder):
    session = ReviewSession([make_entry("a")], SM2Algorithm(), GlobalState(), recorder)

    with pytest.raises(KeyboardInterrupt):
        try:
            raise KeyboardInterrupt
        finally:
            session.finish()

    assert len(recorder.calls) == 1


def test_grade_past_end_raises(make_entry, recorder):
    session = ReviewSession([make_entry("a")], SM2Algorithm(), GlobalState(), recorder)
    session.grade(Quality.PERFECT)

    assert session.done
    with pytest.raises(IndexError):
        session.grade(Quality.PERFECT)


def test_expires_after_max_duration(make_entry, recorder):
    clock = FakeClock()
    session = ReviewSession(
        [make_entry("a"), make_entry("b")],
        SM2Algorithm(),
        GlobalState(),
        recorder,
        max_duration=60,
        clock=clock,
    )
    assert not session.done

    clock.value = 61
    assert session.expired
    assert session.done
    assert session.finish().duration_seconds == 61


def test_stats_accuracy(make_entry, recorder):
    session = ReviewSession(
        [make_entry("a"), make_entry("b")], SM2Algorithm(), GlobalState(), recorder
    )
    session.grade(Quality.PERFECT)
    session.grade(Quality.INCORRECT_BUT_REMEMBERED)

    assert session.stats.reviewed == 2
    assert session.stats.failed == 1
    assert session.stats.accuracy_percent == 50.0


class TestCompletion:
    @pytest.fixture
    def stores(self, tmp_path):
        return CardStore(tmp_path / "cards.json"), GlobalStateStore(tmp_path / "state.json")

    def test_persists_results(self, stores, make_card):
        card_store, global_store = stores
        card_store.reconcile([make_card("a")], full=True)
        entry = next(iter(card_store.load().values()))
        global_state = GlobalState()

        session = ReviewSession(
            [entry], SM2Algorithm(), global_state, make_completion(card_store, global_store)
        )
        session.grade(Quality.PERFECT)
        session.finish()

        saved = card_store.load()[entry.id]
        assert saved.revise_count == 1
        assert saved.state.interval == 1
        assert global_store.load().total_cards_revised == 1

    def test_cram_mode_writes_nothing(self, stores, make_card):
        card_store, global_store = stores
        card_store.reconcile([make_card("a")], full=True)
        before = card_store.path.read_bytes()
        entry = next(iter(card_store.load().values()))

        session = ReviewSession(
            [entry],
            SM2Algorithm(),
            GlobalState(),
            make_completion(card_store, global_store, cram=True),
        )
        session.grade(Quality.PERFECT)
        session.finish()

        assert card_store.path.read_bytes() == before
        assert not global_store.path.exists()
