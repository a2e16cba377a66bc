"""
SQLAlchemy ORM Models for the study engine

Defines Flashcard, StudySession, TrackEpoch and ReviewEvent models.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Flashcard(Base):
    """
    A learner's flashcard with its SM-2 scheduling state.
    """
    __tablename__ = 'flashcards'

    id = Column(String(36), primary_key=True)

    # Scope: one owner, one exam track
    owner_id = Column(String(255), nullable=False)
    track_id = Column(String(255), nullable=False)
    position = Column(Integer, nullable=False, default=0)  # Insertion order within the track

    # Content (opaque to the scheduler)
    front = Column(Text, nullable=False)
    back = Column(Text, nullable=False)
    subject = Column(String(255), nullable=True)

    # SM-2 state
    ease_factor = Column(Float, nullable=False, default=2.5)
    interval_days = Column(Integer, nullable=False, default=0)
    repetition_count = Column(Integer, nullable=False, default=0)

    # Lifetime counters
    total_attempts = Column(Integer, nullable=False, default=0)
    correct_attempts = Column(Integer, nullable=False, default=0)

    # Review tracking
    last_reviewed_at = Column(DateTime(timezone=True), nullable=True)
    next_review_at = Column(DateTime(timezone=True), nullable=False)
    mastered = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('ix_flashcards_owner_track_position', 'owner_id', 'track_id', 'position'),
    )

    def __repr__(self):
        return f"<Flashcard({self.id}, {self.owner_id}, {self.track_id})>"


class StudySession(Base):
    """
    The single resumable study session of an (owner, track) pair.

    The row is deleted when the session completes or is discarded.
    """
    __tablename__ = 'study_sessions'

    owner_id = Column(String(255), primary_key=True, nullable=False)
    track_id = Column(String(255), primary_key=True, nullable=False)

    queue_snapshot = Column(JSON, nullable=False)  # Ordered card ids, fixed at start
    current_index = Column(Integer, nullable=False, default=0)
    completed_ids = Column(JSON, nullable=False)

    started_at = Column(DateTime(timezone=True), nullable=False)
    saved_at = Column(DateTime(timezone=True), nullable=False)

    # Optimistic concurrency
    version = Column(Integer, nullable=False, default=1)
    epoch = Column(Integer, nullable=False, default=0)  # Track epoch at session start

    def __repr__(self):
        return f"<StudySession({self.owner_id}, {self.track_id}, {self.current_index}/{len(self.queue_snapshot or [])})>"


class TrackEpoch(Base):
    """
    Reset counter per (owner, track); bumped by every track reset.
    """
    __tablename__ = 'track_epochs'

    owner_id = Column(String(255), primary_key=True, nullable=False)
    track_id = Column(String(255), primary_key=True, nullable=False)
    epoch = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<TrackEpoch({self.owner_id}, {self.track_id}, epoch={self.epoch})>"


class ReviewEvent(Base):
    """
    Append-only log entry for a single grade.
    """
    __tablename__ = 'review_events'

    id = Column(Integer, primary_key=True, autoincrement=True)

    owner_id = Column(String(255), nullable=False)
    track_id = Column(String(255), nullable=False)
    card_id = Column(String(36), nullable=False)

    timestamp = Column(DateTime(timezone=True), nullable=False)
    outcome = Column(String(16), nullable=False)  # "easy" or "forgot"

    # State before review
    ease_before = Column(Float, nullable=False)
    interval_before = Column(Integer, nullable=False)
    repetitions_before = Column(Integer, nullable=False)

    # State after review
    ease_after = Column(Float, nullable=False)
    interval_after = Column(Integer, nullable=False)
    repetitions_after = Column(Integer, nullable=False)

    # Session context (None for reviews outside a session)
    session_position = Column(Integer, nullable=True)

    __table_args__ = (
        Index('ix_review_events_owner_track', 'owner_id', 'track_id'),
    )

    def __repr__(self):
        return f"<ReviewEvent(id={self.id}, {self.card_id}, outcome={self.outcome})>"
