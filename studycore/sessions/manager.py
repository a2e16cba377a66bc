"""
Session Manager - resumable study sessions

Lifecycle per (owner, track):

    NoSession --start--> Active --last grade--> Completed (row deleted)
                         Active --discard/reset--> NoSession (row deleted)
                         Active --resume--> Active

Main workflow:
1. start_session() snapshots the due queue
2. record_grade() grades the current card and advances the index
3. checkpoint_session() saves client progress when the learner leaves
4. resume_session() picks the session up again later

Every mutating call holds the key's writer lock and runs in one
transaction, so a failed call leaves the session and the cards unchanged.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from studycore.logging_config import get_logger
from studycore.schemas import SessionCheckpoint
from studycore.sessions import store
from studycore.sessions.locks import key_lock
from studycore.sessions.state import GradeResult, ResetResult, StudySession
from studycore.srs import database, scheduler
from studycore.srs.card_state import Card
from studycore.srs.constants import Outcome
from studycore.srs.exceptions import (
    CardNotFoundError,
    ConcurrentModificationError,
    EmptyQueueError,
    InvalidCheckpointError,
    NoActiveSessionError,
    OutOfSequenceError,
)

logger = get_logger("studycore.sessions")


def _now(as_of: Optional[datetime]) -> datetime:
    return datetime.now(timezone.utc) if as_of is None else as_of


def _load_track_card(db: Session, owner_id: str, track_id: str, card_id: str) -> Card:
    card = database.get_card(card_id, db=db)
    if card is None or card.owner_id != owner_id or card.track_id != track_id:
        raise CardNotFoundError(owner_id, track_id, card_id)
    return card


def _verify_epoch(db: Session, owner_id: str, track_id: str, epoch: int) -> None:
    if not database.check_track_epoch(owner_id, track_id, epoch, db=db):
        raise ConcurrentModificationError(owner_id, track_id, "Track was reset concurrently")


def start_session(
    owner_id: str,
    track_id: str,
    as_of: Optional[datetime] = None,
    subject: Optional[str] = None
) -> StudySession:
    """
    Start a session over every card due as of the given time.

    Starting always wins: an existing session for the pair is overwritten
    and its progress discarded.

    Args:
        owner_id: Learner identifier
        track_id: Exam track identifier
        as_of: Evaluation time (defaults to now)
        subject: Only queue cards with this subject tag

    Returns:
        The new session (index 0, nothing completed)

    Raises:
        EmptyQueueError: If no card is due (no session is created)
    """
    as_of = _now(as_of)

    with key_lock(owner_id, track_id):
        with database.session_scope() as db:
            due_cards = database.get_cards_due(owner_id, track_id, as_of, subject=subject, db=db)
            if not due_cards:
                logger.info("No cards due", owner_id=owner_id, track_id=track_id, subject=subject)
                raise EmptyQueueError(owner_id, track_id)

            study_session = store.create_session(
                StudySession(
                    owner_id=owner_id,
                    track_id=track_id,
                    queue_snapshot=tuple(card.id for card in due_cards),
                    current_index=0,
                    completed_ids=frozenset(),
                    started_at=as_of,
                    saved_at=as_of,
                    epoch=database.get_track_epoch(owner_id, track_id, db=db),
                ),
                db=db
            )

    logger.info(
        "Session started",
        owner_id=owner_id,
        track_id=track_id,
        queue_size=len(study_session.queue_snapshot),
    )
    return study_session


def resume_session(owner_id: str, track_id: str) -> StudySession:
    """
    Return the persisted, unfinished session of the pair unchanged.

    Raises:
        NoActiveSessionError: If there is nothing to resume
    """
    study_session = store.get_session(owner_id, track_id)
    if study_session is None or study_session.is_complete:
        raise NoActiveSessionError(owner_id, track_id)
    return study_session


def record_grade(
    owner_id: str,
    track_id: str,
    card_id: str,
    outcome,
    as_of: Optional[datetime] = None
) -> GradeResult:
    """
    Grade a card inside the active session and advance the session.

    The card must be the current one, or one already completed in this
    session (a backtrack). Backtracked grades are applied to the card as a
    fresh review but do not move the index.

    Args:
        owner_id: Learner identifier
        track_id: Exam track identifier
        card_id: Card being graded
        outcome: Outcome.EASY / Outcome.FORGOT
        as_of: Review time (defaults to now)

    Returns:
        GradeResult with the updated card, the session (None once complete)
        and the completion flag

    Raises:
        InvalidGradeError: Malformed outcome (nothing is touched)
        NoActiveSessionError: No session for the pair
        OutOfSequenceError: Card is neither current nor completed
        CardNotFoundError: Queued card no longer exists
        ConcurrentModificationError: Session or track changed underneath
    """
    outcome = Outcome.parse(outcome)
    as_of = _now(as_of)

    with key_lock(owner_id, track_id):
        with database.session_scope() as db:
            study_session = store.get_session(owner_id, track_id, db=db)
            if study_session is None or study_session.is_complete:
                raise NoActiveSessionError(owner_id, track_id)
            if not study_session.accepts(card_id):
                raise OutOfSequenceError(owner_id, track_id, card_id, study_session.current_card_id)

            card = _load_track_card(db, owner_id, track_id, card_id)
            updated_card = scheduler.grade(card, outcome, now=as_of)
            database.save_card(updated_card, db=db)
            database.log_review_event(
                scheduler.build_review_event(
                    card,
                    updated_card,
                    outcome,
                    session_position=study_session.queue_snapshot.index(card_id)
                ),
                db=db
            )

            advanced = study_session.advance(card_id, as_of)
            if advanced.is_complete:
                store.delete_session(owner_id, track_id, expected_version=study_session.version, db=db)
                result_session = None
            else:
                result_session = store.save_session(advanced, study_session.version, db=db)

            _verify_epoch(db, owner_id, track_id, study_session.epoch)

    logger.info(
        "Grade recorded",
        owner_id=owner_id,
        track_id=track_id,
        card_id=card_id,
        outcome=outcome.value,
        position=advanced.current_index,
        queue_size=len(advanced.queue_snapshot),
    )
    if result_session is None:
        logger.info("Session completed", owner_id=owner_id, track_id=track_id)

    return GradeResult(card=updated_card, session=result_session, complete=result_session is None)


def review_card(
    owner_id: str,
    track_id: str,
    card_id: str,
    outcome,
    as_of: Optional[datetime] = None
) -> Card:
    """
    Grade a single card outside any session.

    Raises:
        InvalidGradeError: Malformed outcome
        CardNotFoundError: Card does not exist for the owner and track
        ConcurrentModificationError: Track was reset during the review
    """
    outcome = Outcome.parse(outcome)
    as_of = _now(as_of)

    with key_lock(owner_id, track_id):
        with database.session_scope() as db:
            epoch = database.get_track_epoch(owner_id, track_id, db=db)
            card = _load_track_card(db, owner_id, track_id, card_id)
            updated_card = scheduler.grade(card, outcome, now=as_of)
            database.save_card(updated_card, db=db)
            database.log_review_event(scheduler.build_review_event(card, updated_card, outcome), db=db)
            _verify_epoch(db, owner_id, track_id, epoch)

    logger.info("Card reviewed", owner_id=owner_id, track_id=track_id, card_id=card_id, outcome=outcome.value)
    return updated_card


def discard_session(owner_id: str, track_id: str) -> None:
    """
    Delete the pair's session, if any. Idempotent.
    """
    with key_lock(owner_id, track_id):
        deleted = store.delete_session(owner_id, track_id)

    logger.info("Session discarded", owner_id=owner_id, track_id=track_id, existed=deleted)


def checkpoint_session(
    owner_id: str,
    track_id: str,
    current_index: int,
    completed_ids: Iterable[str],
    as_of: Optional[datetime] = None
) -> Optional[StudySession]:
    """
    Save client-side progress so the learner can resume later.

    A checkpoint at the end of the queue completes the session.

    Returns:
        The saved session, or None if the checkpoint completed it

    Raises:
        InvalidCheckpointError: Index or ids do not fit the queue
        NoActiveSessionError: No session was started for the pair
    """
    try:
        checkpoint = SessionCheckpoint(current_index=current_index, completed_ids=list(completed_ids))
    except ValidationError as exc:
        raise InvalidCheckpointError(owner_id, track_id, str(exc)) from exc
    as_of = _now(as_of)

    with key_lock(owner_id, track_id):
        with database.session_scope() as db:
            study_session = store.get_session(owner_id, track_id, db=db)
            if study_session is None:
                raise NoActiveSessionError(owner_id, track_id)

            queue = study_session.queue_snapshot
            completed = frozenset(checkpoint.completed_ids)
            if checkpoint.current_index > len(queue):
                raise InvalidCheckpointError(
                    owner_id, track_id, f"Index {checkpoint.current_index} beyond queue of {len(queue)}"
                )
            if not completed <= set(queue):
                raise InvalidCheckpointError(owner_id, track_id, "Completed ids outside the queue")

            updated = replace(
                study_session,
                current_index=checkpoint.current_index,
                completed_ids=completed,
                saved_at=as_of,
            )
            if updated.is_complete:
                store.delete_session(owner_id, track_id, expected_version=study_session.version, db=db)
                result_session = None
            else:
                result_session = store.save_session(updated, study_session.version, db=db)

    logger.info(
        "Session checkpointed",
        owner_id=owner_id,
        track_id=track_id,
        position=checkpoint.current_index,
        complete=result_session is None,
    )
    return result_session


def reset_track(
    owner_id: str,
    track_id: str,
    as_of: Optional[datetime] = None
) -> ResetResult:
    """
    Reset every card of the track to default SRS state and drop its session.

    Cards, session and epoch change in one transaction: either all cards are
    reset or none are. Content is preserved; lifetime counters are zeroed.

    Returns:
        ResetResult with the number of cards reset and the new epoch
    """
    as_of = _now(as_of)

    with key_lock(owner_id, track_id):
        with database.session_scope() as db:
            reset_count = database.reset_track_cards(owner_id, track_id, now=as_of, db=db)
            discarded = store.delete_session(owner_id, track_id, db=db)
            epoch = database.bump_track_epoch(owner_id, track_id, db=db)

    logger.info(
        "Track reset",
        owner_id=owner_id,
        track_id=track_id,
        reset_count=reset_count,
        epoch=epoch,
        discarded_session=discarded,
    )
    return ResetResult(reset_count=reset_count, epoch=epoch, discarded_session=discarded)
