"""
Analytics package exports.
"""

from studycore.analytics.service import build_track_summary, review_activity
from studycore.analytics.types import TrackSummary

__all__ = [
    "build_track_summary",
    "review_activity",
    "TrackSummary",
]
