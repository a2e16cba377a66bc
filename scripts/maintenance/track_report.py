"""
Print the recomputed counters of one learner's exam track.

Usage:
    python -m scripts.maintenance.track_report OWNER_ID TRACK_ID

    # Include daily review activity
    python -m scripts.maintenance.track_report OWNER_ID TRACK_ID --activity
"""

import argparse

from studycore import analytics, srs


def main():
    parser = argparse.ArgumentParser(description="Show the counters of one exam track")
    parser.add_argument("owner_id", type=str, help="Learner identifier")
    parser.add_argument("track_id", type=str, help="Exam track identifier")
    parser.add_argument(
        "--activity",
        action="store_true",
        help="Also print reviews per day"
    )

    args = parser.parse_args()
    srs.init_db()

    summary = analytics.build_track_summary(args.owner_id, args.track_id)

    print("=" * 60)
    print(f"TRACK: {summary.track_id}  (owner: {summary.owner_id})")
    print("-" * 60)
    print(f"Total cards:      {summary.total}")
    print(f"  Unstudied:      {summary.unstudied}")
    print(f"  Mastered:       {summary.mastered}")
    print(f"  Needs review:   {summary.needs_review}")
    print()
    print(f"Due now:          {summary.due_now}")
    print(f"Review today:     {summary.due_today}")
    print(f"Review tomorrow:  {summary.due_tomorrow}")
    print(f"Accuracy:         {summary.accuracy:.0%}")

    if args.activity:
        activity = analytics.review_activity(args.owner_id, args.track_id)
        print()
        if activity.empty:
            print("No reviews yet.")
        else:
            print(activity.to_string())


if __name__ == "__main__":
    main()
