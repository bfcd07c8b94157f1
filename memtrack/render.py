"""
render.py - Plain-text diagrams of tracker state

Every function returns a string; nothing here prints. TrackerState calls
render_operation() for its verbose output and exposes render_state() and
render_report() as methods.
"""

from __future__ import annotations
from typing import Dict, Iterable, Optional

from .core import (
    TrackerView, TrackerSummary, OperationRecord, OperationKind,
    AllocationEntry, BorrowEntry, Effect,
    RenderOptions, DEFAULT_RENDER_OPTIONS, DEFAULT_RECENT_COUNT,
)
from . import reporting


# Inner width of box-drawn blocks.
BOX_WIDTH = 60


def _pad(text: str, width: int = BOX_WIDTH) -> str:
    """Pad or truncate text to exactly width characters."""
    if len(text) > width:
        return text[:width - 3] + "..."
    return text + " " * (width - len(text))


def render_bar(size: int, options: RenderOptions = DEFAULT_RENDER_OPTIONS) -> str:
    """
    Draw a size-proportional bar.

    One character per bytes_per_block bytes, never shorter than 1 and never
    longer than max_bar_width.
    """
    blocks = size // options.bytes_per_block
    blocks = max(1, min(options.max_bar_width, blocks))
    return options.bar_char * blocks


def render_allocation(entry: AllocationEntry, options: RenderOptions = DEFAULT_RENDER_OPTIONS) -> str:
    return f"{entry.location}: {render_bar(entry.size, options)} ({entry.size} bytes)"


def render_borrow(entry: BorrowEntry) -> str:
    return f"{entry.label} --({entry.exclusivity.value})--> {entry.target}"


def render_state(view: TrackerView, options: RenderOptions = DEFAULT_RENDER_OPTIONS) -> str:
    """
    Render the live tables.

    One line per active allocation followed by one line per active borrow.
    Returns an empty string when nothing is live.
    """
    lines = [render_allocation(e, options) for e in view.get_allocations().values()]
    lines.extend(render_borrow(b) for b in view.get_borrows().values())
    return "\n".join(lines)


def render_operation(record: OperationRecord) -> str:
    """
    Format one record as a single line.

    Example:
        [0003] ALLOCATE String @ s1 (5 bytes) - create s1
    """
    line = f"[{record.sequence_number:04d}] {record.kind.label} {record.type_label} @ {record.location}"
    if record.target:
        line += f" -> {record.target}"
    line += f" ({record.size} bytes)"
    if record.effect is Effect.NO_OP:
        line += " (no-op)"
    if record.description:
        line += f" - {record.description}"
    return line


def render_history(records: Iterable[OperationRecord]) -> str:
    """Render records one per line, in the order given."""
    return "\n".join(render_operation(r) for r in records)


def render_breakdown(breakdown: Dict[OperationKind, int]) -> str:
    """Render per-kind counts, skipping kinds that never occurred."""
    lines = [f"  {kind.label}: {count}" for kind, count in breakdown.items() if count]
    if not lines:
        return "  (no operations)"
    return "\n".join(lines)


def render_summary(summary: TrackerSummary) -> str:
    """Render a TrackerSummary as a box-drawn block."""
    bar = "─" * BOX_WIDTH
    lines = [
        f"┌{bar}┐",
        f"│{_pad(' Memory Operations Summary')}│",
        f"├{bar}┤",
        f"│{_pad('   operations         : ' + str(summary.operation_count))}│",
        f"│{_pad('   total allocated    : ' + str(summary.total_allocated) + ' bytes')}│",
        f"│{_pad('   total deallocated  : ' + str(summary.total_deallocated) + ' bytes')}│",
        f"│{_pad('   peak concurrent    : ' + str(summary.peak_concurrent) + ' bytes')}│",
        f"│{_pad('   current concurrent : ' + str(summary.current_concurrent) + ' bytes')}│",
        f"│{_pad('   active allocations : ' + str(summary.active_allocation_count))}│",
        f"│{_pad('   active borrows     : ' + str(summary.active_borrow_count))}│",
        f"├{bar}┤",
    ]
    if summary.current_concurrent == 0:
        lines.append(f"│{_pad(' ✓ All memory properly cleaned up')}│")
    else:
        lines.append(f"│{_pad(' ⚠️  Some memory still allocated')}│")
    lines.append(f"└{bar}┘")
    return "\n".join(lines)


def render_report(view: TrackerView, options: Optional[RenderOptions] = None) -> str:
    """
    Render a full report: live state, aliasing warnings, recent history,
    breakdown and summary.
    """
    options = options or DEFAULT_RENDER_OPTIONS
    sections = ["=== Current Memory State ==="]
    state = render_state(view, options)
    sections.append(state if state else "(no active allocations or borrows)")

    warnings = []
    for target, entries in reporting.borrow_conflicts(view).items():
        labels = ", ".join(e.label for e in entries)
        warnings.append(f"⚠️  conflicting borrows of {target}: {labels}")
    for entry in reporting.dangling_borrows(view):
        warnings.append(f"⚠️  {entry.label} borrows {entry.target}, which is not allocated")
    if warnings:
        sections.append("")
        sections.extend(warnings)

    history = reporting.recent(view, DEFAULT_RECENT_COUNT)
    if history:
        sections.append("")
        sections.append(f"Recent operations (latest {len(history)}):")
        sections.append(render_history(history))

    sections.append("")
    sections.append("Operation breakdown:")
    sections.append(render_breakdown(reporting.operation_breakdown(view)))
    sections.append(render_summary(reporting.summary(view)))
    return "\n".join(sections)
