"""
conftest.py - Shared pytest fixtures for memtrack tests

Provides common fixtures used across unit, functional and conformance tests:
- Trackers (empty, with live allocations, with live borrows)
- Render options with small bars for readable assertions
- Helper functions for comparing tracker states
"""

import pytest
from typing import Dict, Any

from memtrack import (
    TrackerState, OperationKind, RenderOptions,
)

from tests.fake_view import FakeView, alloc, shared, exclusive


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def tracker_state_equals(a: TrackerState, b: TrackerState) -> bool:
    """Check if two trackers have equivalent summaries and tables."""
    return compare_tracker_states(a, b)["equal"]


def compare_tracker_states(a: TrackerState, b: TrackerState) -> Dict[str, Any]:
    """Compare two trackers and return the differences."""
    summary_diffs = {}
    sa = a.summary().as_dict()
    sb = b.summary().as_dict()
    for key in sa:
        if sa[key] != sb[key]:
            summary_diffs[key] = {"tracker1": sa[key], "tracker2": sb[key]}

    allocation_diffs = []
    for location in set(a.get_allocations()) | set(b.get_allocations()):
        ea = a.get_allocation(location)
        eb = b.get_allocation(location)
        if ea != eb:
            allocation_diffs.append({"location": location, "tracker1": ea, "tracker2": eb})

    borrow_diffs = []
    for label in set(a.get_borrows()) | set(b.get_borrows()):
        ea = a.get_borrow(label)
        eb = b.get_borrow(label)
        if ea != eb:
            borrow_diffs.append({"label": label, "tracker1": ea, "tracker2": eb})

    return {
        "equal": not summary_diffs and not allocation_diffs and not borrow_diffs,
        "summary_diffs": summary_diffs,
        "allocation_diffs": allocation_diffs,
        "borrow_diffs": borrow_diffs,
    }


def render_lines(text: str) -> list:
    """Split rendered output into a sorted list of lines (order-insensitive)."""
    return sorted(text.splitlines()) if text else []


# =============================================================================
# TRACKER FIXTURES
# =============================================================================

@pytest.fixture
def tracker():
    """Fresh, silent tracker."""
    return TrackerState("test", verbose=False)


@pytest.fixture
def allocated_tracker(tracker):
    """Tracker with two live allocations: a (100 bytes) and b (50 bytes)."""
    tracker.record(OperationKind.ALLOCATE, "a", "Vec<u8>", 100)
    tracker.record(OperationKind.ALLOCATE, "b", "String", 50)
    return tracker


@pytest.fixture
def borrowed_tracker(allocated_tracker):
    """Allocated tracker with a shared borrow r1 and an exclusive borrow m1 of a."""
    allocated_tracker.record(OperationKind.BORROW, "r1", "&Vec<u8>", 0, target="a")
    allocated_tracker.record(OperationKind.MUTABLE_BORROW, "m1", "&mut String", 0, target="b")
    return allocated_tracker


@pytest.fixture
def small_bars():
    """Render options with 1 byte per block and a maximum width of 10."""
    return RenderOptions(max_bar_width=10, bytes_per_block=1, bar_char="#")


# =============================================================================
# FAKE VIEW FIXTURES
# =============================================================================

@pytest.fixture
def empty_view():
    return FakeView()


@pytest.fixture
def aliasing_view():
    """FakeView where data has a shared and an exclusive borrow, and ghost is dangling."""
    return FakeView(
        allocations=[alloc("data", 5, "String", seq=1), alloc("other", 64, "Vec<u8>", seq=2)],
        borrows=[
            shared("r1", "data", seq=3),
            exclusive("m1", "data", seq=4),
            shared("r2", "other", seq=5),
            shared("g1", "ghost", seq=6),
        ],
    )
