"""
Session Store - persistence for resumable study sessions

One row per (owner, track), kept in the database so a session survives
process restarts. After creation, every write is a compare-and-swap on the
row's version: a writer working from a stale read loses with
ConcurrentModificationError instead of silently overwriting.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studycore.sessions.state import StudySession
from studycore.srs.database import scoped
from studycore.srs.exceptions import ConcurrentModificationError
from studycore.srs.models import StudySession as StudySessionModel
from studycore.srs.scheduler import as_utc, to_utc


def _to_session(row: StudySessionModel) -> StudySession:
    return StudySession(
        owner_id=row.owner_id,
        track_id=row.track_id,
        queue_snapshot=tuple(row.queue_snapshot or ()),
        current_index=row.current_index,
        completed_ids=frozenset(row.completed_ids or ()),
        started_at=as_utc(row.started_at),
        saved_at=as_utc(row.saved_at),
        version=row.version,
        epoch=row.epoch,
    )


def _key_filter(query, owner_id: str, track_id: str):
    return query.filter(
        StudySessionModel.owner_id == owner_id,
        StudySessionModel.track_id == track_id
    )


def get_session(
    owner_id: str,
    track_id: str,
    db: Optional[Session] = None
) -> Optional[StudySession]:
    """
    Load the persisted session of an (owner, track) pair.

    Returns:
        StudySession if one exists, None otherwise
    """
    with scoped(db) as session:
        row = _key_filter(session.query(StudySessionModel), owner_id, track_id).first()
        return _to_session(row) if row is not None else None


def create_session(study_session: StudySession, db: Optional[Session] = None) -> StudySession:
    """
    Persist a freshly started session, overwriting any previous one.

    Overwriting bumps the version, so writers still holding the old session
    fail their next compare-and-swap.

    Returns:
        The stored session with its new version
    """
    with scoped(db) as session:
        row = _key_filter(session.query(StudySessionModel), study_session.owner_id, study_session.track_id).first()
        if row is None:
            row = StudySessionModel(
                owner_id=study_session.owner_id,
                track_id=study_session.track_id,
                version=1
            )
            session.add(row)
        else:
            row.version = row.version + 1

        row.queue_snapshot = list(study_session.queue_snapshot)
        row.current_index = study_session.current_index
        row.completed_ids = sorted(study_session.completed_ids)
        row.started_at = to_utc(study_session.started_at)
        row.saved_at = to_utc(study_session.saved_at)
        row.epoch = study_session.epoch

        try:
            session.flush()
        except IntegrityError as exc:
            raise ConcurrentModificationError(
                study_session.owner_id,
                study_session.track_id,
                "Session was created concurrently"
            ) from exc

        return _to_session(row)


def save_session(
    study_session: StudySession,
    expected_version: int,
    db: Optional[Session] = None
) -> StudySession:
    """
    Save session progress if nobody wrote since expected_version was read.

    Raises:
        ConcurrentModificationError: If the row changed or disappeared
    """
    new_version = expected_version + 1
    with scoped(db) as session:
        updated = _key_filter(
            session.query(StudySessionModel), study_session.owner_id, study_session.track_id
        ).filter(
            StudySessionModel.version == expected_version
        ).update(
            {
                StudySessionModel.current_index: study_session.current_index,
                StudySessionModel.completed_ids: sorted(study_session.completed_ids),
                StudySessionModel.saved_at: to_utc(study_session.saved_at),
                StudySessionModel.version: new_version,
            },
            synchronize_session=False
        )

    if not updated:
        raise ConcurrentModificationError(
            study_session.owner_id,
            study_session.track_id,
            f"Session changed since version {expected_version}"
        )

    return replace(study_session, version=new_version)


def delete_session(
    owner_id: str,
    track_id: str,
    expected_version: Optional[int] = None,
    db: Optional[Session] = None
) -> bool:
    """
    Delete the session row.

    Without expected_version the delete is unconditional and idempotent.
    With it, the delete is a compare-and-swap.

    Returns:
        True if a row was deleted

    Raises:
        ConcurrentModificationError: If expected_version no longer matches
    """
    with scoped(db) as session:
        query = _key_filter(session.query(StudySessionModel), owner_id, track_id)
        if expected_version is not None:
            query = query.filter(StudySessionModel.version == expected_version)
        deleted = query.delete(synchronize_session=False)

    if expected_version is not None and not deleted:
        raise ConcurrentModificationError(
            owner_id,
            track_id,
            f"Session changed since version {expected_version}"
        )
    return bool(deleted)
