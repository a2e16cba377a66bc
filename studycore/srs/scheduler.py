"""
Scheduler - SM-2 Algorithm Logic

Pure SM-2 scheduling and state updates (no database calls).

Main workflow:
1. Load card (caller's responsibility)
2. Apply the grade with grade()
3. Save the returned card and, optionally, the event data

The product only distinguishes "remembered well" (EASY) from "did not
remember" (FORGOT), which map onto SM-2's quality >= 3 and quality < 3
branches.

This module handles ONLY the algorithm logic.
Database I/O is handled by the database module.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
import math

from studycore import config
from studycore.srs.card_state import Card
from studycore.srs.constants import (
    Outcome,
    MIN_EASE_FACTOR,
    EASE_STEP_EASY,
    EASE_STEP_FORGOT,
    EASE_DECIMALS,
    FIRST_INTERVAL_DAYS,
    SECOND_INTERVAL_DAYS,
    LAPSE_INTERVAL_DAYS,
    MASTERY_STREAK,
)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (storage drivers may drop tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_utc(value: datetime) -> datetime:
    """Convert a timestamp to UTC (naive values are taken as UTC)."""
    return as_utc(value).astimezone(timezone.utc)


def grade(
    card: Card,
    outcome,
    now: Optional[datetime] = None
) -> Card:
    """
    Apply a grade to a card and return the updated copy.

    The input card is not modified. Every call counts as a fresh review;
    repeated grades are never deduplicated here.

    Args:
        card: Card to grade
        outcome: Outcome.EASY / Outcome.FORGOT (or "easy" / "forgot")
        now: Review timestamp (defaults to now, UTC)

    Returns:
        Updated Card

    Raises:
        InvalidGradeError: If outcome is not a supported grade
    """
    outcome = Outcome.parse(outcome)
    if now is None:
        now = datetime.now(timezone.utc)
    now = as_utc(now)

    if outcome == Outcome.FORGOT:
        repetition_count = 0
        ease_factor = _clamp_ease(card.ease_factor - EASE_STEP_FORGOT)
        interval_days = LAPSE_INTERVAL_DAYS
        mastered = False
        correct_attempts = card.correct_attempts
    else:
        repetition_count = card.repetition_count + 1
        ease_factor = _clamp_ease(card.ease_factor + EASE_STEP_EASY)
        interval_days = next_interval(card.interval_days, ease_factor, repetition_count)
        mastered = repetition_count >= MASTERY_STREAK
        correct_attempts = card.correct_attempts + 1

    return replace(
        card,
        ease_factor=ease_factor,
        interval_days=interval_days,
        repetition_count=repetition_count,
        total_attempts=card.total_attempts + 1,
        correct_attempts=correct_attempts,
        last_reviewed_at=now,
        next_review_at=now + timedelta(days=interval_days),
        mastered=mastered,
    )


def next_interval(previous_interval_days: int, ease_factor: float, repetition_count: int) -> int:
    """
    SM-2 interval after a successful review.

    1 day, then 6 days, then the previous interval scaled by the ease factor
    (rounded half up).
    """
    if repetition_count <= 1:
        return FIRST_INTERVAL_DAYS
    if repetition_count == 2:
        return SECOND_INTERVAL_DAYS
    return int(math.floor(previous_interval_days * ease_factor + 0.5))


def _clamp_ease(ease_factor: float) -> float:
    # Round before flooring so repeated steps never drift below 1.3
    return max(MIN_EASE_FACTOR, round(ease_factor, EASE_DECIMALS))


def is_due(
    card: Card,
    as_of: datetime,
    tz: Optional[tzinfo] = None
) -> bool:
    """
    Determine if a card is eligible for review.

    Logic:
    - Never studied (total_attempts == 0) -> due
    - Otherwise due when next_review_at falls on or before as_of's calendar
      day in the evaluation timezone (time of day is ignored)

    Args:
        card: Card to check
        as_of: Evaluation time
        tz: Timezone used to derive calendar days (defaults to EVAL_TIMEZONE)

    Returns:
        True if the card is due
    """
    if card.total_attempts == 0:
        return True

    if tz is None:
        tz = config.get_evaluation_timezone()

    due_date = as_utc(card.next_review_at).astimezone(tz).date()
    current_date = as_utc(as_of).astimezone(tz).date()
    return due_date <= current_date


def build_review_event(
    before: Card,
    after: Card,
    outcome: Outcome,
    session_position: Optional[int] = None
) -> dict:
    """
    Build the review-log entry for a grade (ready to persist).
    """
    return {
        'card_id': after.id,
        'owner_id': after.owner_id,
        'track_id': after.track_id,
        'timestamp': after.last_reviewed_at,
        'outcome': Outcome.parse(outcome).value,
        'ease_before': before.ease_factor,
        'interval_before': before.interval_days,
        'repetitions_before': before.repetition_count,
        'ease_after': after.ease_factor,
        'interval_after': after.interval_days,
        'repetitions_after': after.repetition_count,
        'session_position': session_position,
    }
