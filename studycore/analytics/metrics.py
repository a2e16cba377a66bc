"""
Metric computations for track analytics.
"""

from __future__ import annotations

from datetime import date, timedelta

import pandas as pd

from studycore.srs.classification import CardClass
from studycore.srs.constants import Outcome


def count_by_class(cards_df: pd.DataFrame) -> dict[CardClass, int]:
    """
    Number of cards per presentation class (every class present, possibly 0).
    """
    counts = {card_class: 0 for card_class in CardClass}
    if cards_df.empty:
        return counts

    for value, count in cards_df["card_class"].value_counts().items():
        counts[CardClass(value)] = int(count)
    return counts


def compute_due_counts(cards_df: pd.DataFrame, today: date) -> tuple[int, int, int]:
    """
    Due counters relative to today.

    Returns:
        (due_now, due_today, due_tomorrow). due_now is the size of a queue
        started now; the other two count studied cards only.
    """
    if cards_df.empty:
        return 0, 0, 0

    studied = cards_df["total_attempts"] > 0
    review_day = cards_df["next_review_day"]
    on_or_before_today = review_day.apply(lambda day: day <= today).astype(bool)
    on_tomorrow = review_day.apply(lambda day: day == today + timedelta(days=1)).astype(bool)

    due_now = int((~studied | on_or_before_today).sum())
    due_today = int((studied & on_or_before_today).sum())
    due_tomorrow = int((studied & on_tomorrow).sum())
    return due_now, due_today, due_tomorrow


def compute_accuracy(cards_df: pd.DataFrame) -> float:
    """
    Lifetime correct / total attempts across the track (0.0 with no attempts).
    """
    if cards_df.empty:
        return 0.0
    total = int(cards_df["total_attempts"].sum())
    if total == 0:
        return 0.0
    return int(cards_df["correct_attempts"].sum()) / total


def build_day_index(events_df: pd.DataFrame) -> pd.DatetimeIndex:
    """
    Build a dense day index spanning the event range.
    """
    if events_df.empty:
        return pd.DatetimeIndex([], name="day")
    start = events_df["day"].min()
    end = events_df["day"].max()
    return pd.date_range(start=start, end=end, freq="D", name="day")


def compute_daily_activity(events_df: pd.DataFrame, day_index: pd.DatetimeIndex) -> pd.DataFrame:
    """
    Reviews and correct (EASY) reviews per day, zero-filled between active days.
    """
    if events_df.empty or len(day_index) == 0:
        return pd.DataFrame(
            {"reviews": pd.Series(dtype="int64"), "correct": pd.Series(dtype="int64")},
            index=day_index,
        )

    scoped = events_df.assign(is_correct=(events_df["outcome"] == Outcome.EASY.value).astype("int64"))
    daily = scoped.groupby("day").agg(
        reviews=("card_id", "size"),
        correct=("is_correct", "sum"),
    )
    return daily.reindex(day_index, fill_value=0).astype("int64")
