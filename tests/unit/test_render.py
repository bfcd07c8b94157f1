"""
test_render.py - Unit tests for text rendering

render_state() output is compared as a sorted list of lines because table
order is not part of its contract.
"""

import pytest

from memtrack import (
    OperationRecord, OperationKind, Effect, RenderOptions, TrackerSummary,
    render_bar, render_state, render_operation, render_history,
    render_breakdown, render_summary, render_report,
    operation_breakdown,
)

from tests.conftest import render_lines
from tests.fake_view import FakeView, alloc, shared, exclusive


class TestRenderBar:

    @pytest.mark.parametrize("size, expected", [
        (0, 1),       # never shorter than 1
        (7, 1),
        (8, 1),
        (16, 2),
        (100, 12),
        (10_000, 40),  # clamped to the maximum
    ])
    def test_default_bar_width(self, size, expected):
        assert render_bar(size) == "█" * expected

    def test_custom_options(self, small_bars):
        assert render_bar(3, small_bars) == "###"
        assert render_bar(500, small_bars) == "#" * 10


class TestRenderState:

    def test_empty_state(self, empty_view):
        assert render_state(empty_view) == ""

    def test_allocations_then_borrows(self, small_bars):
        view = FakeView(
            allocations=[alloc("s1", 5, "String"), alloc("v", 64, "Vec<u8>", seq=2)],
            borrows=[shared("r1", "s1", seq=3), exclusive("m1", "v", seq=4)],
        )
        text = render_state(view, small_bars)
        assert render_lines(text) == sorted([
            "s1: ##### (5 bytes)",
            "v: ########## (64 bytes)",
            "r1 --(shared)--> s1",
            "m1 --(exclusive)--> v",
        ])
        # Allocation lines come before borrow lines
        lines = text.splitlines()
        assert all(" bytes)" in line for line in lines[:2])
        assert all("-->" in line for line in lines[2:])

    def test_tracker_render_state_uses_its_options(self, small_bars):
        from memtrack import TrackerState
        tracker = TrackerState("t", verbose=False, render_options=small_bars)
        tracker.allocate("s1", "String", 5)
        assert tracker.render_state() == "s1: ##### (5 bytes)"


class TestRenderOperation:

    def test_minimal(self):
        rec = OperationRecord(3, OperationKind.ALLOCATE, "s1", "String", 5)
        assert render_operation(rec) == "[0003] ALLOCATE String @ s1 (5 bytes)"

    def test_with_description_and_target(self):
        rec = OperationRecord(12, OperationKind.MOVE, "s1", "String", 5,
                              description="let s2 = s1", target="s2", effect=Effect.LOG_ONLY)
        assert render_operation(rec) == "[0012] MOVE String @ s1 -> s2 (5 bytes) - let s2 = s1"

    def test_no_op_marker(self):
        rec = OperationRecord(1, OperationKind.DEALLOCATE, "ghost", "", 0, effect=Effect.NO_OP)
        assert render_operation(rec) == "[0001] DEALLOCATE  @ ghost (0 bytes) (no-op)"

    def test_single_line(self):
        rec = OperationRecord(1, OperationKind.BORROW, "r1", "&String", 0, "a borrow", target="s1")
        assert "\n" not in render_operation(rec)

    def test_tracker_render_operation(self, allocated_tracker):
        rec = allocated_tracker.operation_log[0]
        assert allocated_tracker.render_operation(rec) == render_operation(rec)

    def test_history(self, allocated_tracker):
        text = render_history(allocated_tracker.recent(2))
        lines = text.splitlines()
        assert lines[0].startswith("[0002] ALLOCATE")
        assert lines[1].startswith("[0001] ALLOCATE")


class TestRenderSummary:

    def test_clean_summary(self):
        text = render_summary(TrackerSummary(2, 5, 5, 5, 0, 0, 0))
        assert "Memory Operations Summary" in text
        assert "operations         : 2" in text
        assert "All memory properly cleaned up" in text

    def test_leaking_summary(self):
        text = render_summary(TrackerSummary(1, 5, 0, 5, 5, 1, 0))
        assert "Some memory still allocated" in text

    def test_box_lines_have_equal_width(self):
        lines = render_summary(TrackerSummary(1, 5, 0, 5, 5, 1, 0)).splitlines()
        assert lines[0].startswith("┌") and lines[-1].startswith("└")
        assert len(lines[0]) == len(lines[1]) == len(lines[3])


class TestRenderBreakdown:

    def test_empty_breakdown(self, empty_view):
        assert render_breakdown(operation_breakdown(empty_view)) == "  (no operations)"

    def test_skips_zero_counts(self, allocated_tracker):
        text = render_breakdown(allocated_tracker.operation_breakdown())
        assert text == "  ALLOCATE: 2"


class TestRenderReport:

    def test_report_sections(self, borrowed_tracker):
        text = borrowed_tracker.render_report()
        assert text.startswith("=== Current Memory State ===")
        assert "r1 --(shared)--> a" in text
        assert "Recent operations (latest 4):" in text
        assert "Operation breakdown:" in text
        assert "Memory Operations Summary" in text

    def test_report_on_empty_view(self, empty_view):
        text = render_report(empty_view)
        assert "(no active allocations or borrows)" in text
        assert "Recent operations" not in text

    def test_report_warns_about_aliasing(self, aliasing_view):
        text = render_report(aliasing_view)
        assert "conflicting borrows of data: r1, m1" in text
        assert "g1 borrows ghost, which is not allocated" in text
