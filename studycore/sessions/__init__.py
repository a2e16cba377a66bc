"""
Sessions - resumable study sessions on top of the SRS scheduler

Quick start:
    from studycore import sessions

    session = sessions.start_session("learner-1", "track-1")
    result = sessions.record_grade("learner-1", "track-1", session.current_card_id, "easy")

    # Later, possibly in another process
    session = sessions.resume_session("learner-1", "track-1")
"""

from studycore.sessions.state import StudySession, GradeResult, ResetResult
from studycore.sessions import store
from studycore.sessions.locks import key_lock
from studycore.sessions.retry import retry_store, retry_on_conflict
from studycore.sessions.manager import (
    start_session,
    resume_session,
    record_grade,
    review_card,
    discard_session,
    checkpoint_session,
    reset_track,
)


__all__ = [
    # Lifecycle
    "start_session",
    "resume_session",
    "record_grade",
    "review_card",
    "discard_session",
    "checkpoint_session",
    "reset_track",

    # Types
    "StudySession",
    "GradeResult",
    "ResetResult",

    # Infrastructure
    "store",
    "key_lock",
    "retry_store",
    "retry_on_conflict",
]
