#!/usr/bin/env python3
"""
demo.py - Walk through the ownership and borrowing stories

Each story runs against the same tracker, which is reset between stories so
their counters stay independent. Every ingested record is printed as it
happens, followed by a full report of the story's final state.

Run:
    python demo.py
"""

from memtrack import TrackerState, STORIES


def main() -> None:
    tracker = TrackerState("demo", verbose=True)
    for title, story in STORIES.items():
        tracker.reset()
        print(f"\n=== {title.replace('_', ' ').title()} ===")
        print(story.__doc__)
        story(tracker)
        print()
        print(tracker.render_report())

        result = tracker.verify_invariants()
        if not result['valid']:
            print(f"✗ Invariants violated: {result['discrepancies']}")


if __name__ == "__main__":
    main()
