"""
test_narration.py - Narrator contract and sample stories

Every shipped story must leave the tracker clean and its invariants intact.
"""

import pytest

from memtrack import (
    TrackerState, OperationKind, Effect,
    run_narration, STORIES,
    ownership_story, borrowing_story, cloning_story,
    scope_cleanup_story, shared_ownership_story,
)


@pytest.fixture
def narration_tracker():
    return TrackerState("narration", verbose=False)


@pytest.mark.parametrize("name", list(STORIES))
def test_story_leaves_tracker_clean(narration_tracker, name):
    STORIES[name](narration_tracker)
    s = narration_tracker.summary()
    assert s.current_concurrent == 0
    assert s.active_allocation_count == 0
    assert s.active_borrow_count == 0
    assert s.total_allocated == s.total_deallocated
    assert narration_tracker.verify_invariants()['valid']


@pytest.mark.parametrize("name", list(STORIES))
def test_story_never_misuses_tracker(narration_tracker, name):
    STORIES[name](narration_tracker)
    assert all(r.effect is not Effect.NO_OP for r in narration_tracker.operation_log)


@pytest.mark.parametrize("story, ops, peak, allocated", [
    (ownership_story, 10, 18, 36),
    (borrowing_story, 8, 5, 5),
    (cloning_story, 5, 26, 26),
    (scope_cleanup_story, 6, 29, 29),
    (shared_ownership_story, 5, 11, 11),
])
def test_story_totals(narration_tracker, story, ops, peak, allocated):
    story(narration_tracker)
    s = narration_tracker.summary()
    assert s.operation_count == ops
    assert s.peak_concurrent == peak
    assert s.total_allocated == allocated


def test_borrowing_story_never_aliases_exclusively(narration_tracker):
    """Replay the story step by step and check the aliasing rule at each step."""
    borrowing_story(narration_tracker)
    for seq in range(1, len(narration_tracker.operation_log) + 1):
        assert narration_tracker.replay(upto=seq).borrow_conflicts() == {}


class TestRunNarration:

    def test_isolated_runs_reset_between_narrators(self, narration_tracker):
        summaries = run_narration(narration_tracker, [cloning_story, borrowing_story])
        assert [s.operation_count for s in summaries] == [5, 8]
        assert [s.peak_concurrent for s in summaries] == [26, 5]

    def test_shared_runs_accumulate(self, narration_tracker):
        summaries = run_narration(narration_tracker, [cloning_story, borrowing_story], isolate=False)
        assert [s.operation_count for s in summaries] == [5, 13]
        assert summaries[-1].total_allocated == 31

    def test_any_callable_is_a_narrator(self, narration_tracker):
        calls = []

        def leaky(tracker):
            calls.append(tracker)
            tracker.record(OperationKind.ALLOCATE, "leak", "Box<i32>", 4)

        summaries = run_narration(narration_tracker, [leaky, lambda t: t.deallocate("leak")], isolate=False)
        assert calls == [narration_tracker]
        assert summaries[0].current_concurrent == 4
        assert summaries[1].current_concurrent == 0

    def test_no_narrators(self, narration_tracker):
        assert run_narration(narration_tracker, []) == []
