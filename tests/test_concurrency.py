from concurrent.futures import ThreadPoolExecutor

import pytest

from studycore import sessions, srs
from studycore.sessions import key_lock, locks
from studycore.srs import Outcome
from studycore.srs.database import bump_track_epoch, check_track_epoch, session_scope
from studycore.srs.exceptions import ConcurrentModificationError

from tests.conftest import OWNER, TRACK


def test_stale_writer_loses_compare_and_swap(make_cards, as_of):
    make_cards(3)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)
    card_id = session.current_card_id

    winner = sessions.store.save_session(session.advance(card_id, as_of), session.version)

    with pytest.raises(ConcurrentModificationError):
        sessions.store.save_session(session.advance(card_id, as_of), session.version)
    assert sessions.resume_session(OWNER, TRACK) == winner


def test_restart_invalidates_older_session_copies(make_cards, as_of):
    make_cards(2)
    old = sessions.start_session(OWNER, TRACK, as_of=as_of)
    new = sessions.start_session(OWNER, TRACK, as_of=as_of)

    assert new.version == old.version + 1
    with pytest.raises(ConcurrentModificationError):
        sessions.store.delete_session(OWNER, TRACK, expected_version=old.version)
    assert sessions.resume_session(OWNER, TRACK) == new


def test_grade_racing_a_reset_is_rolled_back(make_cards, as_of):
    make_cards(2)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)
    # A reset committed elsewhere without touching this session row
    bump_track_epoch(OWNER, TRACK)

    with pytest.raises(ConcurrentModificationError):
        sessions.record_grade(OWNER, TRACK, session.current_card_id, Outcome.EASY, as_of=as_of)

    assert srs.get_card(session.current_card_id).total_attempts == 0
    assert srs.get_review_events(OWNER, TRACK) == []
    assert sessions.resume_session(OWNER, TRACK) == session


def test_epoch_check_accepts_tracks_never_reset():
    with session_scope() as db:
        assert check_track_epoch(OWNER, "never-created", 0, db=db) is True
        assert check_track_epoch(OWNER, "never-created", 1, db=db) is False


def test_key_lock_times_out_for_same_key():
    with key_lock(OWNER, TRACK):
        with pytest.raises(ConcurrentModificationError):
            with key_lock(OWNER, TRACK, timeout=0.01):
                pass


def test_key_lock_does_not_block_other_keys():
    with key_lock(OWNER, TRACK):
        with key_lock(OWNER, "track-2", timeout=0.01):
            pass


def test_concurrent_starts_serialize(make_cards, as_of):
    make_cards(3)

    with ThreadPoolExecutor(max_workers=4) as pool:
        started = list(pool.map(lambda _: sessions.start_session(OWNER, TRACK, as_of=as_of), range(8)))

    assert sorted(session.version for session in started) == list(range(1, 9))
    assert sessions.resume_session(OWNER, TRACK).version == 8


def test_concurrent_grades_of_the_current_card_count_once_forward(make_cards, as_of):
    make_cards(3)
    session = sessions.start_session(OWNER, TRACK, as_of=as_of)
    card_id = session.current_card_id

    def grade(_):
        return sessions.record_grade(OWNER, TRACK, card_id, Outcome.EASY, as_of=as_of)

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(grade, range(2)))

    # The second grade arrives after the first moved on, so it is a re-grade
    assert sessions.resume_session(OWNER, TRACK).current_index == 1
    assert srs.get_card(card_id).total_attempts == 2
    assert sorted(result.card.total_attempts for result in results) == [1, 2]


def test_key_lock_registry_drops_idle_keys():
    with key_lock(OWNER, "track-idle"):
        assert (OWNER, "track-idle") in locks._key_locks

    assert (OWNER, "track-idle") not in locks._key_locks


def test_key_lock_registry_drops_keys_after_timeout():
    with key_lock(OWNER, "track-busy"):
        with pytest.raises(ConcurrentModificationError):
            with key_lock(OWNER, "track-busy", timeout=0.01):
                pass
        assert locks._key_users[(OWNER, "track-busy")] == 1

    assert (OWNER, "track-busy") not in locks._key_users
