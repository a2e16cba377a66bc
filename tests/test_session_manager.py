from datetime import timedelta

import pytest
from structlog.testing import capture_logs

from studycore import sessions, srs
from studycore.srs import Outcome
from studycore.srs.exceptions import (
    CardNotFoundError,
    EmptyQueueError,
    InvalidCheckpointError,
    InvalidGradeError,
    NoActiveSessionError,
    OutOfSequenceError,
)

from tests.conftest import OWNER, TRACK


def _grade_current(session, outcome=Outcome.EASY, as_of=None):
    return sessions.record_grade(OWNER, TRACK, session.current_card_id, outcome, as_of=as_of)


def test_start_session_queues_due_cards_in_insertion_order(make_cards, as_of):
    cards = make_cards(4)

    session = sessions.start_session(OWNER, TRACK, as_of=as_of)

    assert session.queue_snapshot == tuple(card.id for card in cards)
    assert session.current_index == 0
    assert session.completed_ids == frozenset()
    assert session.current_card_id == cards[0].id


def test_start_session_skips_cards_not_yet_due(make_cards, as_of):
    cards = make_cards(3)
    sessions.review_card(OWNER, TRACK, cards[1].id, Outcome.EASY, as_of=as_of)

    session = sessions.start_session(OWNER, TRACK, as_of=as_of)

    assert session.queue_snapshot == (cards[0].id, cards[2].id)


def test_start_session_filters_by_subject(make_cards, as_of):
    make_cards(2, subject="diritto amministrativo")
    civil = make_cards(2, subject="diritto civile")

    session = sessions.start_session(OWNER, TRACK, as_of=as_of, subject="diritto civile")

    assert session.queue_snapshot == tuple(card.id for card in civil)


def test_empty_queue_creates_no_session(as_of):
    with capture_logs() as logs:
        with pytest.raises(EmptyQueueError):
            sessions.start_session(OWNER, TRACK, as_of=as_of)

    assert sessions.store.get_session(OWNER, TRACK) is None
    assert [entry["log_level"] for entry in logs if entry["event"] == "No cards due"] == ["info"]


def test_grading_every_card_completes_the_session(make_cards, as_of):
    cards = make_cards(3)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)

    results = []
    for _ in cards:
        result = _grade_current(session, as_of=as_of)
        results.append(result)
        session = result.session

    assert [result.complete for result in results] == [False, False, True]
    assert results[-1].session is None
    assert sessions.store.get_session(OWNER, TRACK) is None
    with pytest.raises(NoActiveSessionError):
        sessions.resume_session(OWNER, TRACK)

    for card in cards:
        stored = srs.get_card(card.id)
        assert stored.total_attempts == 1
        assert stored.interval_days == 1


def test_resume_returns_saved_progress_after_restart(store, make_cards, as_of):
    make_cards(5)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)
    first = _grade_current(session, as_of=as_of).session
    second = _grade_current(first, Outcome.FORGOT, as_of=as_of).session

    # Drop every pooled connection, as a new process would start without them
    srs.dispose_engine()
    srs.configure_engine(store)

    resumed = sessions.resume_session(OWNER, TRACK)

    assert resumed == second
    assert resumed.current_index == 2
    assert resumed.completed_ids == frozenset(session.queue_snapshot[:2])
    assert resumed.queue_snapshot == session.queue_snapshot
    assert resumed.remaining == 3


def test_resume_without_session_fails():
    with pytest.raises(NoActiveSessionError):
        sessions.resume_session(OWNER, TRACK)


def test_new_start_overwrites_previous_session(make_cards, as_of):
    make_cards(5)
    first = sessions.start_session(OWNER, TRACK, as_of=as_of)
    _grade_current(first, as_of=as_of)

    second = sessions.start_session(OWNER, TRACK, as_of=as_of)

    # The graded card is due tomorrow, so it drops out of the new queue
    assert second.queue_snapshot == first.queue_snapshot[1:]
    assert second.current_index == 0
    assert second.completed_ids == frozenset()
    assert sessions.resume_session(OWNER, TRACK) == second


def test_out_of_sequence_grade_changes_nothing(make_cards, as_of):
    make_cards(3)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)
    skipped = session.queue_snapshot[2]

    with pytest.raises(OutOfSequenceError) as excinfo:
        sessions.record_grade(OWNER, TRACK, skipped, Outcome.EASY, as_of=as_of)

    assert excinfo.value.expected_card_id == session.queue_snapshot[0]
    assert sessions.resume_session(OWNER, TRACK) == session
    assert srs.get_card(skipped).total_attempts == 0
    assert srs.get_review_events(OWNER, TRACK) == []


def test_unknown_card_is_out_of_sequence(make_cards, as_of):
    make_cards(2)
    sessions.start_session(OWNER, TRACK, as_of=as_of)

    with pytest.raises(OutOfSequenceError):
        sessions.record_grade(OWNER, TRACK, "no-such-card", Outcome.EASY, as_of=as_of)


def test_invalid_grade_changes_nothing(make_cards, as_of):
    make_cards(2)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)

    with pytest.raises(InvalidGradeError):
        sessions.record_grade(OWNER, TRACK, session.current_card_id, "medium", as_of=as_of)

    assert sessions.resume_session(OWNER, TRACK) == session
    assert srs.get_card(session.current_card_id).total_attempts == 0


def test_record_grade_without_session_fails(make_cards, as_of):
    cards = make_cards(1)

    with pytest.raises(NoActiveSessionError):
        sessions.record_grade(OWNER, TRACK, cards[0].id, Outcome.EASY, as_of=as_of)


def test_regrading_a_completed_card_applies_a_fresh_review(make_cards, as_of):
    make_cards(3)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)
    first_id = session.queue_snapshot[0]
    session = _grade_current(session, as_of=as_of).session
    session = _grade_current(session, as_of=as_of).session

    result = sessions.record_grade(OWNER, TRACK, first_id, Outcome.FORGOT, as_of=as_of)

    assert result.complete is False
    assert result.session.current_index == 2
    assert result.card.total_attempts == 2
    assert result.card.correct_attempts == 1
    assert result.card.repetition_count == 0
    assert result.card.ease_factor == pytest.approx(2.4)


def test_grades_are_logged_with_session_position(make_cards, as_of):
    make_cards(2)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)
    session = _grade_current(session, Outcome.FORGOT, as_of=as_of).session
    _grade_current(session, Outcome.EASY, as_of=as_of + timedelta(minutes=1))

    events = srs.get_review_events(OWNER, TRACK)

    assert [event["outcome"] for event in events] == ["forgot", "easy"]
    assert [event["session_position"] for event in events] == [0, 1]
    assert events[0]["ease_before"] == pytest.approx(2.5)
    assert events[0]["ease_after"] == pytest.approx(2.3)
    assert events[0]["timestamp"] == as_of


def test_discard_is_idempotent(make_cards, as_of):
    make_cards(2)
    sessions.start_session(OWNER, TRACK, as_of=as_of)

    sessions.discard_session(OWNER, TRACK)
    sessions.discard_session(OWNER, TRACK)

    with pytest.raises(NoActiveSessionError):
        sessions.resume_session(OWNER, TRACK)


def test_discard_keeps_grades_already_applied(make_cards, as_of):
    make_cards(2)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)
    graded = _grade_current(session, as_of=as_of).card

    sessions.discard_session(OWNER, TRACK)

    assert srs.get_card(graded.id) == graded


def test_checkpoint_saves_client_progress(make_cards, as_of):
    make_cards(4)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)
    done = session.queue_snapshot[:2]

    saved = sessions.checkpoint_session(OWNER, TRACK, 2, done, as_of=as_of + timedelta(minutes=5))

    resumed = sessions.resume_session(OWNER, TRACK)
    assert resumed == saved
    assert resumed.current_index == 2
    assert resumed.completed_ids == frozenset(done)
    assert resumed.saved_at == as_of + timedelta(minutes=5)


def test_checkpoint_at_end_of_queue_completes_session(make_cards, as_of):
    make_cards(2)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)

    result = sessions.checkpoint_session(OWNER, TRACK, 2, session.queue_snapshot, as_of=as_of)

    assert result is None
    with pytest.raises(NoActiveSessionError):
        sessions.resume_session(OWNER, TRACK)


@pytest.mark.parametrize("index, completed", [
    (-1, []),
    (5, []),
    (1, ["not-in-queue"]),
])
def test_checkpoint_rejects_progress_outside_the_queue(make_cards, as_of, index, completed):
    make_cards(2)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)

    with pytest.raises(InvalidCheckpointError):
        sessions.checkpoint_session(OWNER, TRACK, index, completed, as_of=as_of)

    assert sessions.resume_session(OWNER, TRACK) == session


def test_checkpoint_without_session_fails():
    with pytest.raises(NoActiveSessionError):
        sessions.checkpoint_session(OWNER, TRACK, 0, [])


def test_review_card_outside_a_session(make_cards, as_of):
    cards = make_cards(2)

    card = sessions.review_card(OWNER, TRACK, cards[1].id, "EASY", as_of=as_of)

    assert card.interval_days == 1
    assert srs.get_card(cards[1].id) == card
    assert srs.get_review_events(OWNER, TRACK)[0]["session_position"] is None


def test_review_card_is_scoped_to_owner_and_track(make_cards, as_of):
    cards = make_cards(1, owner_id="someone-else")

    with pytest.raises(CardNotFoundError):
        sessions.review_card(OWNER, TRACK, cards[0].id, Outcome.EASY, as_of=as_of)
    with pytest.raises(CardNotFoundError):
        sessions.review_card(OWNER, TRACK, "missing", Outcome.EASY, as_of=as_of)


def test_sessions_are_independent_per_track(make_cards, as_of):
    make_cards(2)
    make_cards(3, track_id="track-2")

    first = sessions.start_session(OWNER, TRACK, as_of=as_of)
    second = sessions.start_session(OWNER, "track-2", as_of=as_of)
    _grade_current(first, as_of=as_of)

    assert sessions.resume_session(OWNER, "track-2") == second
    assert len(second.queue_snapshot) == 3
