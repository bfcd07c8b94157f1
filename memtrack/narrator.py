"""
narrator.py - Scripted teaching scenarios

A narrator is any callable that takes a TrackerState and drives it through a
scripted sequence of ingestion calls. There is no base class: a plain function
is enough, and the caller that owns the tracker passes it in.

The stories below follow the ownership and borrowing lessons. Each one leaves
the tracker with no live allocations or borrows.
"""

from __future__ import annotations
from typing import Callable, Dict, Iterable, List

from .core import TrackerSummary
from .tracker import TrackerState


# Type alias for narrator callables.
Narrator = Callable[[TrackerState], None]


def run_narration(
    tracker: TrackerState,
    narrators: Iterable[Narrator],
    isolate: bool = True,
) -> List[TrackerSummary]:
    """
    Run narrators in order against one tracker.

    Args:
        tracker: The tracker every narrator drives
        narrators: Callables taking the tracker
        isolate: Reset the tracker before each narrator (default: True)

    Returns:
        The tracker's summary after each narrator, in order
    """
    summaries = []
    for narrator in narrators:
        if isolate:
            tracker.reset()
        narrator(tracker)
        summaries.append(tracker.summary())
    return summaries


# ============================================================================
# STORIES
# ============================================================================

def ownership_story(tracker: TrackerState) -> None:
    """Ownership moves on assignment and into functions."""
    tracker.allocate("s1", "String", 5, 'let s1 = String::from("hello")')
    tracker.move("s1", "s2", description="let s2 = s1; s1 is no longer valid")
    tracker.allocate("data", "String", 13, 'let data = String::from("function data")')
    tracker.move("data", "param", description="takes_ownership(data)")
    tracker.deallocate("param", "param dropped when the function returns")
    tracker.deallocate("s2", "s2 goes out of scope")


def borrowing_story(tracker: TrackerState) -> None:
    """Many shared borrows, or exactly one exclusive borrow."""
    tracker.allocate("data", "String", 5, 'let data = String::from("hello")')
    tracker.borrow("r1", "data", description="let r1 = &data")
    tracker.borrow("r2", "data", description="let r2 = &data; shared borrows coexist")
    tracker.end_borrow("r1", "last use of r1")
    tracker.end_borrow("r2", "last use of r2")
    tracker.borrow("mut_ref", "data", exclusive=True, description="let mut_ref = &mut data")
    tracker.end_borrow("mut_ref", "last use of mut_ref")
    tracker.deallocate("data", "data goes out of scope")


def cloning_story(tracker: TrackerState) -> None:
    """A clone is an independent allocation; both values stay valid."""
    tracker.allocate("original", "String", 13, 'let original = String::from("original data")')
    tracker.clone_value("original", "copy", description="let copy = original.clone()")
    tracker.deallocate("copy", "copy goes out of scope")
    tracker.deallocate("original", "original goes out of scope")


def scope_cleanup_story(tracker: TrackerState) -> None:
    """Values are dropped when their scope ends, innermost first."""
    tracker.allocate("outer", "Vec<i32>", 20, "let outer = vec![1, 2, 3, 4, 5]")
    tracker.allocate("inner", "String", 9, 'inner scope: let inner = String::from("temporary")')
    tracker.borrow("reference", "outer", description="let reference = &outer")
    tracker.end_borrow("reference", "last use of reference")
    tracker.deallocate("inner", "inner scope ends")
    tracker.deallocate("outer", "outer scope ends")


def shared_ownership_story(tracker: TrackerState) -> None:
    """Cloning a reference-counted pointer shares data instead of copying it."""
    tracker.allocate("shared_data", "Rc<String>", 11, 'let shared_data = Rc::new(String::from("shared data"))')
    tracker.clone_value("shared_data", "reference1", size=0,
                        description="Rc::clone(&shared_data) bumps the count, no new heap data")
    tracker.deallocate("reference1", "count drops to 1")
    tracker.deallocate("shared_data", "count drops to 0, data freed")


STORIES: Dict[str, Narrator] = {
    "ownership": ownership_story,
    "borrowing": borrowing_story,
    "cloning": cloning_story,
    "scope_cleanup": scope_cleanup_story,
    "shared_ownership": shared_ownership_story,
}
