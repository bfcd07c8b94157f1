"""
reporting.py - Read-only summaries and history queries

All functions take a TrackerView and never mutate it. TrackerState exposes
each of them as a method, so callers normally write tracker.summary() rather
than summary(tracker).
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, List, Union

import numpy as np

from .core import (
    TrackerView, TrackerSummary,
    OperationRecord, OperationKind, AllocationEntry, BorrowEntry,
    coerce_kind,
)


def summary(view: TrackerView) -> TrackerSummary:
    """
    Aggregate the log, tables and counters into a TrackerSummary.

    Pure read: calling it any number of times has no effect on the tracker.
    """
    return TrackerSummary(
        operation_count=len(view.operation_log),
        total_allocated=view.total_allocated,
        total_deallocated=view.total_deallocated,
        peak_concurrent=view.peak_concurrent,
        current_concurrent=view.current_concurrent,
        active_allocation_count=len(view.get_allocations()),
        active_borrow_count=len(view.get_borrows()),
    )


def recent(view: TrackerView, n: int) -> List[OperationRecord]:
    """
    Return up to n records, most recent first.

    n is clamped to the log length; n == 0 yields an empty list.

    Raises:
        ValueError: If n is negative
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    log = view.operation_log
    if n == 0:
        return []
    return list(reversed(log[-n:]))


def has_active_allocations(view: TrackerView) -> bool:
    return bool(view.get_allocations())


def has_active_borrows(view: TrackerView) -> bool:
    return bool(view.get_borrows())


def operation_breakdown(view: TrackerView) -> Dict[OperationKind, int]:
    """
    Count records per OperationKind.

    Every kind is present in the result (zero when unused), in enum order.
    Derived records emitted by moves are counted under their own kind.
    """
    counts = {kind: 0 for kind in OperationKind}
    for record in view.operation_log:
        counts[record.kind] += 1
    return counts


def operations_by_kind(view: TrackerView, kind: Union[OperationKind, str]) -> List[OperationRecord]:
    """Return all records of one kind, oldest first."""
    wanted = coerce_kind(kind)
    return [record for record in view.operation_log if record.kind is wanted]


def largest_allocations(view: TrackerView, n: int = 5) -> List[AllocationEntry]:
    """
    Return up to n live allocations ordered by size, largest first.

    Ties are broken by creation order so the result is deterministic.
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    entries = sorted(
        view.get_allocations().values(),
        key=lambda e: (-e.size, e.sequence_number),
    )
    return entries[:n]


def allocation_size_stats(view: TrackerView) -> Dict[str, float]:
    """
    Describe the distribution of live allocation sizes.

    Returns:
        Dict with keys 'count', 'total', 'mean', 'median', 'p90' and 'max'.
        All values are 0 when nothing is allocated.
    """
    sizes = np.asarray([e.size for e in view.get_allocations().values()], dtype=float)
    if sizes.size == 0:
        return {'count': 0, 'total': 0.0, 'mean': 0.0, 'median': 0.0, 'p90': 0.0, 'max': 0.0}
    return {
        'count': int(sizes.size),
        'total': float(np.sum(sizes)),
        'mean': float(np.mean(sizes)),
        'median': float(np.median(sizes)),
        'p90': float(np.percentile(sizes, 90)),
        'max': float(np.max(sizes)),
    }


def borrows_of(view: TrackerView, target: str) -> List[BorrowEntry]:
    """Return the live borrows of one location, oldest first."""
    return sorted(
        (b for b in view.get_borrows().values() if b.target == target),
        key=lambda b: b.sequence_number,
    )


def borrow_conflicts(view: TrackerView) -> Dict[str, List[BorrowEntry]]:
    """
    Find locations whose live borrows break the aliasing rules.

    A location conflicts when it has an exclusive borrow alongside any other
    borrow. The tracker never rejects such states; this report lets a narrator
    point them out.

    Returns:
        Dict mapping target location to its live borrows (oldest first).
    """
    by_target: Dict[str, List[BorrowEntry]] = defaultdict(list)
    for entry in view.get_borrows().values():
        by_target[entry.target].append(entry)

    conflicts = {}
    for target in sorted(by_target):
        entries = sorted(by_target[target], key=lambda b: b.sequence_number)
        if len(entries) > 1 and any(e.is_exclusive for e in entries):
            conflicts[target] = entries
    return conflicts


def dangling_borrows(view: TrackerView) -> List[BorrowEntry]:
    """Return live borrows whose target is not a live allocation, oldest first."""
    allocations = view.get_allocations()
    return sorted(
        (b for b in view.get_borrows().values() if b.target not in allocations),
        key=lambda b: b.sequence_number,
    )
