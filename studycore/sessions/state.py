"""
Typed session models shared by the session store and manager.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from studycore.srs.card_state import Card


@dataclass(frozen=True)
class StudySession:
    """
    One resumable pass through a learner's due queue on one track.

    The queue is fixed when the session starts and never re-sorted.
    """
    owner_id: str
    track_id: str
    queue_snapshot: tuple[str, ...]
    current_index: int
    completed_ids: frozenset[str]
    started_at: datetime
    saved_at: datetime
    version: int = 0
    epoch: int = 0

    @property
    def is_complete(self) -> bool:
        return self.current_index >= len(self.queue_snapshot)

    @property
    def current_card_id(self) -> Optional[str]:
        """Card at the current position, or None once the queue is exhausted."""
        if self.is_complete:
            return None
        return self.queue_snapshot[self.current_index]

    @property
    def remaining(self) -> int:
        return len(self.queue_snapshot) - self.current_index

    def accepts(self, card_id: str) -> bool:
        """
        True if card_id may be graded now: the current card or one already done.
        """
        return card_id == self.current_card_id or card_id in self.completed_ids

    def advance(self, card_id: str, saved_at: datetime) -> "StudySession":
        """
        Record a grade for card_id.

        Forward grades move the index; re-grading a completed card only
        refreshes the checkpoint time.
        """
        forward = card_id == self.current_card_id
        return replace(
            self,
            current_index=self.current_index + 1 if forward else self.current_index,
            completed_ids=self.completed_ids | {card_id},
            saved_at=saved_at,
        )


@dataclass(frozen=True)
class GradeResult:
    """
    Outcome of recording a grade inside a session.
    """
    card: Card
    session: Optional[StudySession]  # None once the session completed
    complete: bool


@dataclass(frozen=True)
class ResetResult:
    """
    Outcome of resetting a track.
    """
    reset_count: int
    epoch: int
    discarded_session: bool = False
