"""
Data-loading helpers for analytics.
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Optional

import pandas as pd

from studycore import config
from studycore.srs import database
from studycore.srs.classification import classify
from studycore.srs.scheduler import as_utc

CARD_COLUMNS = [
    "card_id",
    "subject",
    "card_class",
    "total_attempts",
    "correct_attempts",
    "next_review_day",
]
EVENT_COLUMNS = ["card_id", "outcome", "timestamp", "session_position", "day"]


def load_cards_df(
    owner_id: str,
    track_id: str,
    tz: Optional[tzinfo] = None
) -> pd.DataFrame:
    """
    Load the current state of a track's cards into a dataframe.

    next_review_day is the calendar date of the next review in the
    evaluation timezone.
    """
    tz = tz or config.get_evaluation_timezone()
    cards = database.get_track_cards(owner_id, track_id)
    if not cards:
        return pd.DataFrame(columns=CARD_COLUMNS)

    return pd.DataFrame(
        [
            {
                "card_id": card.id,
                "subject": card.subject,
                "card_class": classify(card).value,
                "total_attempts": card.total_attempts,
                "correct_attempts": card.correct_attempts,
                "next_review_day": as_utc(card.next_review_at).astimezone(tz).date(),
            }
            for card in cards
        ],
        columns=CARD_COLUMNS,
    )


def load_review_events_df(
    owner_id: str,
    track_id: str,
    tz: Optional[tzinfo] = None
) -> pd.DataFrame:
    """
    Load the review log of a track into a dataframe, oldest first.
    """
    tz = tz or config.get_evaluation_timezone()
    rows = database.get_review_events(owner_id, track_id)
    if not rows:
        return pd.DataFrame(columns=EVENT_COLUMNS)

    df = pd.DataFrame(rows)
    df = df[["card_id", "outcome", "timestamp", "session_position"]].copy()
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
    df = df.dropna(subset=["card_id", "timestamp"])
    df["day"] = df["timestamp"].dt.tz_convert(tz).dt.tz_localize(None).dt.normalize()
    df = df.sort_values("timestamp").reset_index(drop=True)
    return df
