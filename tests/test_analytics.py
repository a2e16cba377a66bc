from datetime import timedelta

import pandas as pd
import pytest

from studycore import analytics, sessions
from studycore.srs import Outcome

from tests.conftest import OWNER, TRACK


@pytest.fixture
def studied_track(make_cards, as_of):
    """
    Four cards: one mastered, two due tomorrow, one never studied.
    """
    cards = make_cards(4, now=as_of - timedelta(days=30))
    sessions.review_card(OWNER, TRACK, cards[0].id, Outcome.EASY, as_of=as_of)
    sessions.review_card(OWNER, TRACK, cards[1].id, Outcome.FORGOT, as_of=as_of)
    for day in (-10, -9, -3):
        sessions.review_card(OWNER, TRACK, cards[2].id, Outcome.EASY, as_of=as_of + timedelta(days=day))
    return cards


def test_summary_counts_classes(studied_track, as_of):
    summary = analytics.build_track_summary(OWNER, TRACK, as_of=as_of)

    assert summary.total == 4
    assert summary.unstudied == 1
    assert summary.mastered == 1
    assert summary.needs_review == 2
    assert summary.unstudied + summary.mastered + summary.needs_review == summary.total
    assert summary.accuracy == pytest.approx(0.8)


def test_summary_due_forecast(studied_track, as_of):
    today = analytics.build_track_summary(OWNER, TRACK, as_of=as_of)
    assert (today.due_now, today.due_today, today.due_tomorrow) == (1, 0, 2)

    tomorrow = analytics.build_track_summary(OWNER, TRACK, as_of=as_of + timedelta(days=1))
    assert (tomorrow.due_now, tomorrow.due_today, tomorrow.due_tomorrow) == (3, 2, 0)


def test_summary_matches_session_queue(studied_track, as_of):
    summary = analytics.build_track_summary(OWNER, TRACK, as_of=as_of + timedelta(days=1))
    session = sessions.start_session(OWNER, TRACK, as_of=as_of + timedelta(days=1))

    assert summary.due_now == len(session.queue_snapshot)


def test_summary_of_empty_track(as_of):
    summary = analytics.build_track_summary(OWNER, "empty", as_of=as_of)

    assert (summary.total, summary.due_now, summary.due_today, summary.due_tomorrow) == (0, 0, 0, 0)
    assert summary.accuracy == 0.0


def test_review_activity_per_day(studied_track, as_of):
    activity = analytics.review_activity(OWNER, TRACK)

    assert list(activity.columns) == ["reviews", "correct"]
    assert len(activity) == 11
    assert activity["reviews"].sum() == 5
    assert activity.loc[pd.Timestamp("2024-03-01"), "reviews"] == 2
    assert activity.loc[pd.Timestamp("2024-03-01"), "correct"] == 1
    assert activity.loc[pd.Timestamp("2024-02-22"), "reviews"] == 0


def test_review_activity_without_reviews():
    assert analytics.review_activity(OWNER, TRACK).empty
