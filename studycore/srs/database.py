"""
Database - Card Store I/O Operations

Handles all database operations for flashcards, review events and track
epochs. Uses SQLAlchemy ORM with a Postgres backend (SQLite for tests).

Every public function accepts an optional ``db`` session. When given, the
work joins the caller's transaction; otherwise a short transaction is opened
and committed here.

This module handles ONLY database I/O.
Algorithm logic is handled by the scheduler module.
"""

from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime, timezone, tzinfo
from typing import Iterable, Iterator, Optional

from sqlalchemy import create_engine, func, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from studycore import config
from studycore.logging_config import get_logger
from studycore.schemas import CardContent
from studycore.srs.card_state import Card, initialize_new_card
from studycore.srs.constants import (
    INITIAL_EASE_FACTOR,
    INITIAL_INTERVAL_DAYS,
    INITIAL_REPETITIONS,
)
from studycore.srs.exceptions import StoreUnavailableError
from studycore.srs.models import (
    Base,
    Flashcard as FlashcardModel,
    ReviewEvent as ReviewEventModel,
    TrackEpoch as TrackEpochModel,
)
from studycore.srs.scheduler import as_utc, is_due, to_utc

logger = get_logger("studycore.store")

# Driver/pool failures that mean "try again later"
STORE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)

# Engine shared across requests
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


# ---- Connection Management ----

def _engine_options(url: str) -> dict:
    timeout = config.get_store_timeout()
    if url.startswith("sqlite"):
        return {"connect_args": {"timeout": timeout, "check_same_thread": False}}

    options = {
        "pool_size": 5,           # Keep 5 connections open
        "max_overflow": 10,       # Allow up to 10 extra connections
        "pool_pre_ping": True,    # Verify connections before use
        "pool_timeout": timeout,  # Give up waiting for a connection
    }
    if url.startswith("postgresql"):
        options["connect_args"] = {"options": f"-c statement_timeout={int(timeout * 1000)}"}
    return options


def configure_engine(url: Optional[str] = None, **engine_kwargs) -> Engine:
    """
    Bind the store to a database, replacing any previous engine.

    Args:
        url: SQLAlchemy URL (defaults to DATABASE_URL)
        **engine_kwargs: Extra create_engine() options

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine, _session_factory

    dispose_engine()
    if url is None:
        url = config.get_database_url()

    options = _engine_options(url)
    options.update(engine_kwargs)
    _engine = create_engine(url, echo=False, **options)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    return _engine


def get_engine() -> Engine:
    """Get the shared engine, creating it from DATABASE_URL on first use."""
    if _engine is None:
        configure_engine()
    return _engine


def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def get_session() -> Session:
    """
    Get a SQLAlchemy session for database operations.

    Returns:
        SQLAlchemy Session instance
    """
    get_engine()
    return _session_factory()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Run a unit of work in one transaction.

    Commits on success and rolls back on any error. Driver and pool failures
    are re-raised as StoreUnavailableError.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except STORE_ERRORS as exc:
        session.rollback()
        logger.error("Store operation failed", error=str(exc), error_type=type(exc).__name__)
        raise StoreUnavailableError(str(exc), cause=exc) from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def scoped(db: Optional[Session]) -> Iterator[Session]:
    if db is not None:
        yield db
        return
    with session_scope() as session:
        yield session


def init_db():
    """
    Initialize database schema if tables don't exist.

    Safe to call multiple times - only creates missing tables.
    """
    engine = get_engine()

    existing_tables = set(inspect(engine).get_table_names())
    if not set(Base.metadata.tables).issubset(existing_tables):
        Base.metadata.create_all(engine)


def reset_db():
    """
    DANGEROUS: Delete all data and recreate tables.

    Only use this for testing or when you want to start fresh.
    All cards, sessions and review history will be lost!
    """
    engine = get_engine()
    Base.metadata.drop_all(engine)
    logger.warning("All tables dropped")

    init_db()


# ---- Row mapping ----

def _to_card(row: FlashcardModel) -> Card:
    return Card(
        id=row.id,
        owner_id=row.owner_id,
        track_id=row.track_id,
        front=row.front,
        back=row.back,
        subject=row.subject,
        ease_factor=row.ease_factor,
        interval_days=row.interval_days,
        repetition_count=row.repetition_count,
        total_attempts=row.total_attempts,
        correct_attempts=row.correct_attempts,
        last_reviewed_at=as_utc(row.last_reviewed_at) if row.last_reviewed_at else None,
        next_review_at=as_utc(row.next_review_at),
        mastered=bool(row.mastered),
        position=row.position,
    )


def _copy_card(row: FlashcardModel, card: Card) -> None:
    row.owner_id = card.owner_id
    row.track_id = card.track_id
    row.position = card.position
    row.front = card.front
    row.back = card.back
    row.subject = card.subject
    row.ease_factor = card.ease_factor
    row.interval_days = card.interval_days
    row.repetition_count = card.repetition_count
    row.total_attempts = card.total_attempts
    row.correct_attempts = card.correct_attempts
    row.last_reviewed_at = to_utc(card.last_reviewed_at) if card.last_reviewed_at else None
    row.next_review_at = to_utc(card.next_review_at)
    row.mastered = card.mastered


def _track_filter(query, model, owner_id: str, track_id: str):
    return query.filter(model.owner_id == owner_id, model.track_id == track_id)


# ---- Cards ----

def create_cards(
    owner_id: str,
    track_id: str,
    contents: Iterable,
    now: Optional[datetime] = None,
    db: Optional[Session] = None
) -> list[Card]:
    """
    Insert freshly generated cards with default SRS fields.

    Args:
        owner_id: Learner identifier
        track_id: Exam track identifier
        contents: CardContent models or dicts with front/back/subject
        now: Creation time (cards are due from this moment)
        db: Optional session to join

    Returns:
        Created cards, in insertion order
    """
    if now is None:
        now = datetime.now(timezone.utc)

    validated = [
        content if isinstance(content, CardContent) else CardContent.model_validate(content)
        for content in contents
    ]
    if not validated:
        return []

    with scoped(db) as session:
        last_position = _track_filter(
            session.query(func.max(FlashcardModel.position)), FlashcardModel, owner_id, track_id
        ).scalar()
        start = 0 if last_position is None else last_position + 1

        cards = []
        for offset, content in enumerate(validated):
            card = initialize_new_card(
                owner_id,
                track_id,
                content.front,
                content.back,
                subject=content.subject,
                now=now,
                position=start + offset
            )
            row = FlashcardModel(id=card.id, created_at=to_utc(now))
            _copy_card(row, card)
            session.add(row)
            cards.append(card)

        _ensure_track_epoch(session, owner_id, track_id)

    return cards


def get_card(card_id: str, db: Optional[Session] = None) -> Optional[Card]:
    """
    Load a card by id.

    Returns:
        Card if found, None otherwise
    """
    with scoped(db) as session:
        row = session.get(FlashcardModel, card_id)
        return _to_card(row) if row is not None else None


def get_track_cards(
    owner_id: str,
    track_id: str,
    subject: Optional[str] = None,
    db: Optional[Session] = None
) -> list[Card]:
    """
    Get every card of an owner's track in insertion order.
    """
    with scoped(db) as session:
        query = _track_filter(session.query(FlashcardModel), FlashcardModel, owner_id, track_id)
        if subject is not None:
            query = query.filter(FlashcardModel.subject == subject)
        rows = query.order_by(FlashcardModel.position, FlashcardModel.id).all()
        return [_to_card(row) for row in rows]


def get_cards_due(
    owner_id: str,
    track_id: str,
    as_of: Optional[datetime] = None,
    subject: Optional[str] = None,
    tz: Optional[tzinfo] = None,
    db: Optional[Session] = None
) -> list[Card]:
    """
    Get the cards of a track that are due as of the given time.

    The due predicate is applied in memory because it compares calendar days
    in the evaluation timezone.

    Returns:
        Due cards in insertion order
    """
    if as_of is None:
        as_of = datetime.now(timezone.utc)

    cards = get_track_cards(owner_id, track_id, subject=subject, db=db)
    return [card for card in cards if is_due(card, as_of, tz)]


def save_card(card: Card, db: Optional[Session] = None) -> None:
    """
    Save a card (insert or update by id).

    Args:
        card: Card to save
        db: Optional session to join
    """
    with scoped(db) as session:
        row = session.get(FlashcardModel, card.id)
        if row is None:
            row = FlashcardModel(id=card.id, created_at=datetime.now(timezone.utc))
            session.add(row)
        _copy_card(row, card)
        session.flush()


def reset_track_cards(
    owner_id: str,
    track_id: str,
    now: Optional[datetime] = None,
    db: Optional[Session] = None
) -> int:
    """
    Put every card of a track back to default SRS fields in one statement.

    Content is untouched; lifetime counters are zeroed.

    Returns:
        Number of cards reset
    """
    if now is None:
        now = datetime.now(timezone.utc)

    with scoped(db) as session:
        return _track_filter(
            session.query(FlashcardModel), FlashcardModel, owner_id, track_id
        ).update(
            {
                FlashcardModel.ease_factor: INITIAL_EASE_FACTOR,
                FlashcardModel.interval_days: INITIAL_INTERVAL_DAYS,
                FlashcardModel.repetition_count: INITIAL_REPETITIONS,
                FlashcardModel.total_attempts: 0,
                FlashcardModel.correct_attempts: 0,
                FlashcardModel.last_reviewed_at: None,
                FlashcardModel.next_review_at: to_utc(now),
                FlashcardModel.mastered: False,
            },
            synchronize_session=False
        )


# ---- Review events ----

def log_review_event(event: dict, db: Optional[Session] = None) -> None:
    """
    Append one review event.

    Args:
        event: Dict as built by scheduler.build_review_event()
        db: Optional session to join
    """
    with scoped(db) as session:
        session.add(ReviewEventModel(**dict(event, timestamp=to_utc(event["timestamp"]))))


def get_review_events(
    owner_id: str,
    track_id: str,
    db: Optional[Session] = None
) -> list[dict]:
    """
    Get the review log of a track (oldest first).
    """
    with scoped(db) as session:
        events = _track_filter(
            session.query(ReviewEventModel), ReviewEventModel, owner_id, track_id
        ).order_by(ReviewEventModel.timestamp, ReviewEventModel.id).all()

        return [
            {
                "id": event.id,
                "owner_id": event.owner_id,
                "track_id": event.track_id,
                "card_id": event.card_id,
                "timestamp": as_utc(event.timestamp),
                "outcome": event.outcome,
                "ease_before": event.ease_before,
                "interval_before": event.interval_before,
                "repetitions_before": event.repetitions_before,
                "ease_after": event.ease_after,
                "interval_after": event.interval_after,
                "repetitions_after": event.repetitions_after,
                "session_position": event.session_position,
            }
            for event in events
        ]


# ---- Track epochs ----

def _ensure_track_epoch(session: Session, owner_id: str, track_id: str) -> None:
    if session.get(TrackEpochModel, (owner_id, track_id)) is None:
        session.add(TrackEpochModel(owner_id=owner_id, track_id=track_id, epoch=0))


def get_track_epoch(owner_id: str, track_id: str, db: Optional[Session] = None) -> int:
    """Current reset epoch of a track (0 if it was never reset)."""
    with scoped(db) as session:
        epoch = _track_filter(
            session.query(TrackEpochModel.epoch), TrackEpochModel, owner_id, track_id
        ).scalar()
        return epoch or 0


def bump_track_epoch(owner_id: str, track_id: str, db: Optional[Session] = None) -> int:
    """
    Increment a track's epoch atomically.

    Returns:
        The new epoch
    """
    with scoped(db) as session:
        updated = _track_filter(
            session.query(TrackEpochModel), TrackEpochModel, owner_id, track_id
        ).update(
            {TrackEpochModel.epoch: TrackEpochModel.epoch + 1},
            synchronize_session=False
        )
        if not updated:
            session.add(TrackEpochModel(owner_id=owner_id, track_id=track_id, epoch=1))
            session.flush()
            return 1

        return _track_filter(
            session.query(TrackEpochModel.epoch), TrackEpochModel, owner_id, track_id
        ).scalar()


def check_track_epoch(
    owner_id: str,
    track_id: str,
    expected: int,
    db: Optional[Session] = None
) -> bool:
    """
    Verify, inside the caller's transaction, that no reset happened since
    the epoch was read.

    The no-op UPDATE takes the row lock, so a reset committing concurrently
    is either fully before (mismatch) or fully after this transaction.
    """
    with scoped(db) as session:
        matched = _track_filter(
            session.query(TrackEpochModel), TrackEpochModel, owner_id, track_id
        ).filter(
            TrackEpochModel.epoch == expected
        ).update(
            {TrackEpochModel.epoch: TrackEpochModel.epoch},
            synchronize_session=False
        )
        if matched:
            return True
        if expected == 0:
            # Tracks that were never reset may have no epoch row yet
            return _track_filter(
                session.query(TrackEpochModel), TrackEpochModel, owner_id, track_id
            ).count() == 0
        return False
