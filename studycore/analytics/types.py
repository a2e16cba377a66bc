"""
Types for track analytics.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TrackSummary:
    """
    Counters for one (owner, track), recomputed from the cards on every call.
    """
    owner_id: str
    track_id: str
    as_of: datetime
    total: int
    unstudied: int
    mastered: int
    needs_review: int
    due_now: int
    due_today: int
    due_tomorrow: int
    accuracy: float
