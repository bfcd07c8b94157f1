"""
memtrack - Memory Operation Tracker and Visualizer

A simulated memory ledger for narrating how allocations, moves and borrows
evolve in a teaching scenario. Nothing here touches real process memory.

Usage:
    from memtrack import TrackerState, OperationKind

    tracker = TrackerState("lesson", verbose=False)
    tracker.record(OperationKind.ALLOCATE, "s1", "String", 5)
    tracker.record(OperationKind.MOVE, "s1", "String", 5, target="s2")
    tracker.record(OperationKind.BORROW, "r1", "&String", 0, target="s2")

    print(tracker.render_state())
    print(tracker.summary())
"""

# Core types
from .core import (
    OperationKind,
    Exclusivity,
    Effect,
    OperationRecord,
    AllocationEntry,
    BorrowEntry,
    TrackerSummary,
    RenderOptions,
    TrackerView,
    TrackerError,
    InvalidSize,
    MissingTarget,
    UnknownOperationKind,
    coerce_kind,
    MAX_BAR_WIDTH,
    BYTES_PER_BLOCK,
    BAR_CHAR,
    DEFAULT_RECENT_COUNT,
    DEFAULT_RENDER_OPTIONS,
)

# Tracker
from .tracker import TrackerState

# Reporting
from .reporting import (
    summary,
    recent,
    has_active_allocations,
    has_active_borrows,
    operation_breakdown,
    operations_by_kind,
    largest_allocations,
    allocation_size_stats,
    borrows_of,
    borrow_conflicts,
    dangling_borrows,
)

# Rendering
from .render import (
    render_bar,
    render_state,
    render_operation,
    render_history,
    render_breakdown,
    render_summary,
    render_report,
)

# Narration
from .narrator import (
    Narrator,
    run_narration,
    ownership_story,
    borrowing_story,
    cloning_story,
    scope_cleanup_story,
    shared_ownership_story,
    STORIES,
)

__all__ = [
    # Core
    'OperationKind', 'Exclusivity', 'Effect',
    'OperationRecord', 'AllocationEntry', 'BorrowEntry', 'TrackerSummary',
    'RenderOptions', 'TrackerView',
    'TrackerError', 'InvalidSize', 'MissingTarget', 'UnknownOperationKind',
    'coerce_kind',
    'MAX_BAR_WIDTH', 'BYTES_PER_BLOCK', 'BAR_CHAR', 'DEFAULT_RECENT_COUNT',
    'DEFAULT_RENDER_OPTIONS',
    # Tracker
    'TrackerState',
    # Reporting
    'summary', 'recent', 'has_active_allocations', 'has_active_borrows',
    'operation_breakdown', 'operations_by_kind', 'largest_allocations',
    'allocation_size_stats', 'borrows_of', 'borrow_conflicts', 'dangling_borrows',
    # Rendering
    'render_bar', 'render_state', 'render_operation', 'render_history',
    'render_breakdown', 'render_summary', 'render_report',
    # Narration
    'Narrator', 'run_narration',
    'ownership_story', 'borrowing_story', 'cloning_story',
    'scope_cleanup_story', 'shared_ownership_story', 'STORIES',
]

__version__ = '0.1.0'
