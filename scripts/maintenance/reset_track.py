"""
Reset one learner's exam track.

DANGEROUS: Every card of the track goes back to its default SRS state
and the active study session is discarded. Card content is kept.

Usage:
    python -m scripts.maintenance.reset_track OWNER_ID TRACK_ID

    # Skip the confirmation prompt
    python -m scripts.maintenance.reset_track OWNER_ID TRACK_ID --yes
"""

import argparse

from studycore import sessions, srs
from studycore.logging_config import setup_logging


def main():
    parser = argparse.ArgumentParser(description="Reset the SRS state of one exam track")
    parser.add_argument("owner_id", type=str, help="Learner identifier")
    parser.add_argument("track_id", type=str, help="Exam track identifier")
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Do not ask for confirmation"
    )

    args = parser.parse_args()
    setup_logging()

    print("=" * 60)
    print(f"WARNING: Reset track {args.track_id} of {args.owner_id}")
    print("=" * 60)
    print()
    print("This will reset:")
    print("  - Ease, interval and repetitions of every card")
    print("  - Attempt counters and mastered flags")
    print("  - The active study session (if any)")
    print()

    if not args.yes:
        response = input("Are you sure you want to reset? (type 'yes' to confirm): ")
        if response.lower() != "yes":
            print("\nCancelled. No changes made.")
            return

    print("\nResetting track...")
    srs.init_db()
    result = sessions.reset_track(args.owner_id, args.track_id)
    print(f"✓ Reset {result.reset_count} card(s)")
    if result.discarded_session:
        print("✓ Discarded the active session")


if __name__ == "__main__":
    main()
