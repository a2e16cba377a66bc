"""
Service layer to assemble per-track analytics.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import pandas as pd

from studycore import config
from studycore.analytics.metrics import (
    build_day_index,
    compute_accuracy,
    compute_daily_activity,
    compute_due_counts,
    count_by_class,
)
from studycore.analytics.queries import load_cards_df, load_review_events_df
from studycore.analytics.types import TrackSummary
from studycore.srs.classification import CardClass
from studycore.srs.scheduler import as_utc


def build_track_summary(
    owner_id: str,
    track_id: str,
    as_of: Optional[datetime] = None
) -> TrackSummary:
    """
    Recompute every counter of a track from its cards.
    """
    as_of = datetime.now(timezone.utc) if as_of is None else as_of
    tz = config.get_evaluation_timezone()
    today = as_utc(as_of).astimezone(tz).date()

    cards_df = load_cards_df(owner_id, track_id, tz=tz)
    by_class = count_by_class(cards_df)
    due_now, due_today, due_tomorrow = compute_due_counts(cards_df, today)

    return TrackSummary(
        owner_id=owner_id,
        track_id=track_id,
        as_of=as_of,
        total=len(cards_df),
        unstudied=by_class[CardClass.UNSTUDIED],
        mastered=by_class[CardClass.MASTERED],
        needs_review=by_class[CardClass.NEEDS_REVIEW],
        due_now=due_now,
        due_today=due_today,
        due_tomorrow=due_tomorrow,
        accuracy=compute_accuracy(cards_df),
    )


def review_activity(owner_id: str, track_id: str) -> pd.DataFrame:
    """
    Daily review counts of a track, indexed by day in the evaluation timezone.

    Columns: reviews, correct.
    """
    events_df = load_review_events_df(owner_id, track_id)
    return compute_daily_activity(events_df, build_day_index(events_df))
