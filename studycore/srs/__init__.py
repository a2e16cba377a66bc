"""
SRS - SM-2 Spaced Repetition Scheduler

Main API for flashcard scheduling in the exam-preparation product.

This package implements a binary-grade SM-2 algorithm with:
- Ease factor decay on a lapse, growth on success (floor 1.3)
- 1 day, 6 days, then geometric interval growth
- Mastery after three consecutive EASY grades
- Day-granular due checks in the evaluation timezone

Quick start:
    from studycore import srs

    # Initialize database
    srs.init_db()

    # Grade a card (algorithm only, no DB calls)
    card = srs.grade(card, srs.Outcome.EASY)

    # Get due cards
    due_cards = srs.get_cards_due("learner-1", "track-1")
"""

# Core scheduler API (algorithm logic)
from studycore.srs.scheduler import grade, is_due, next_interval, build_review_event

# Presentation classes
from studycore.srs.classification import CardClass, classify

# Database API
from studycore.srs.database import (
    configure_engine,
    dispose_engine,
    session_scope,
    init_db,
    reset_db,
    create_cards,
    get_card,
    get_track_cards,
    get_cards_due,
    save_card,
    reset_track_cards,
    log_review_event,
    get_review_events,
    get_track_epoch,
)

# Constants and parameters
from studycore.srs.constants import (
    Outcome,
    INITIAL_EASE_FACTOR,
    MIN_EASE_FACTOR,
    EASE_STEP_EASY,
    EASE_STEP_FORGOT,
    FIRST_INTERVAL_DAYS,
    SECOND_INTERVAL_DAYS,
    LAPSE_INTERVAL_DAYS,
    MASTERY_STREAK,
)

# Card state
from studycore.srs.card_state import Card, initialize_new_card, reset_card

# Errors
from studycore.srs.exceptions import (
    StudyCoreError,
    SchedulerError,
    InvalidGradeError,
    SessionError,
    EmptyQueueError,
    NoActiveSessionError,
    OutOfSequenceError,
    ConcurrentModificationError,
    CardNotFoundError,
    InvalidCheckpointError,
    StoreUnavailableError,
)


__all__ = [
    # Core algorithm
    "grade",
    "is_due",
    "next_interval",
    "build_review_event",
    "CardClass",
    "classify",

    # Database operations
    "configure_engine",
    "dispose_engine",
    "session_scope",
    "init_db",
    "reset_db",
    "create_cards",
    "get_card",
    "get_track_cards",
    "get_cards_due",
    "save_card",
    "reset_track_cards",
    "log_review_event",
    "get_review_events",
    "get_track_epoch",

    # Enums
    "Outcome",

    # Card state
    "Card",
    "initialize_new_card",
    "reset_card",

    # Parameters
    "INITIAL_EASE_FACTOR",
    "MIN_EASE_FACTOR",
    "EASE_STEP_EASY",
    "EASE_STEP_FORGOT",
    "FIRST_INTERVAL_DAYS",
    "SECOND_INTERVAL_DAYS",
    "LAPSE_INTERVAL_DAYS",
    "MASTERY_STREAK",

    # Errors
    "StudyCoreError",
    "SchedulerError",
    "InvalidGradeError",
    "SessionError",
    "EmptyQueueError",
    "NoActiveSessionError",
    "OutOfSequenceError",
    "ConcurrentModificationError",
    "CardNotFoundError",
    "InvalidCheckpointError",
    "StoreUnavailableError",
]
