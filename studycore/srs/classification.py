"""
Presentation classes derived from a card's SRS fields.

Used by list-view badges and track summaries. Never persisted.
"""

from __future__ import annotations
from enum import Enum

from studycore.srs.card_state import Card


class CardClass(str, Enum):
    """Mutually exclusive study status of a card."""
    UNSTUDIED = "unstudied"
    MASTERED = "mastered"
    NEEDS_REVIEW = "needs_review"


def classify(card: Card) -> CardClass:
    """
    Classify a card as unstudied, mastered or needing review.

    A card that was never graded is unstudied even if a stale mastered flag
    is present, so the three classes always partition the card set.
    """
    if card.total_attempts == 0:
        return CardClass.UNSTUDIED
    if card.mastered:
        return CardClass.MASTERED
    return CardClass.NEEDS_REVIEW
