"""
Card State - SM-2 scheduling state for a single flashcard

Defines the in-memory card record the scheduler works on. Content fields are
carried along untouched; only the SRS fields are ever changed by grading.

Key concepts:
- Ease factor: multiplier controlling how fast intervals grow
- Interval: days until the next review after the last grading
- Repetitions: consecutive successful reviews since the last lapse
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional
import uuid

from studycore.srs.constants import (
    INITIAL_EASE_FACTOR,
    INITIAL_INTERVAL_DAYS,
    INITIAL_REPETITIONS,
)


@dataclass(frozen=True)
class Card:
    """
    A flashcard owned by one learner on one exam track.
    """
    id: str
    owner_id: str
    track_id: str

    # Content (opaque to the scheduler)
    front: str
    back: str
    subject: Optional[str]

    # SM-2 state
    ease_factor: float
    interval_days: int
    repetition_count: int

    # Lifetime counters
    total_attempts: int
    correct_attempts: int

    # Review tracking
    last_reviewed_at: Optional[datetime]
    next_review_at: datetime
    mastered: bool

    # Insertion order within the track (queue order)
    position: int = 0


def initialize_new_card(
    owner_id: str,
    track_id: str,
    front: str,
    back: str,
    subject: Optional[str] = None,
    card_id: Optional[str] = None,
    now: Optional[datetime] = None,
    position: int = 0
) -> Card:
    """
    Initialize a card with default SRS fields (due immediately).

    Args:
        owner_id: Learner identifier
        track_id: Exam track identifier
        front: Question side
        back: Answer side
        subject: Optional subject tag
        card_id: Identifier to use (a UUID is generated if omitted)
        now: Creation time (defaults to now, UTC)
        position: Insertion order within the track

    Returns:
        New Card with ease 2.5, interval 0, no repetitions, due now
    """
    if now is None:
        now = datetime.now(timezone.utc)

    return Card(
        id=card_id or str(uuid.uuid4()),
        owner_id=owner_id,
        track_id=track_id,
        front=front,
        back=back,
        subject=subject,
        ease_factor=INITIAL_EASE_FACTOR,
        interval_days=INITIAL_INTERVAL_DAYS,
        repetition_count=INITIAL_REPETITIONS,
        total_attempts=0,
        correct_attempts=0,
        last_reviewed_at=None,
        next_review_at=now,
        mastered=False,
        position=position,
    )


def reset_card(card: Card, now: Optional[datetime] = None) -> Card:
    """
    Return a copy of the card with all SRS fields and counters back at defaults.

    Content and position are preserved.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    return replace(
        card,
        ease_factor=INITIAL_EASE_FACTOR,
        interval_days=INITIAL_INTERVAL_DAYS,
        repetition_count=INITIAL_REPETITIONS,
        total_attempts=0,
        correct_attempts=0,
        last_reviewed_at=None,
        next_review_at=now,
        mastered=False,
    )
