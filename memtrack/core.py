"""
Core types for the memory operation tracker.

This module provides the foundational data structures and protocols:
1. Protocols: TrackerView for read-only tracker access
2. Immutable data structures: OperationRecord, AllocationEntry, BorrowEntry, TrackerSummary
3. Exceptions: TrackerError and its specific error types
4. Configuration: module constants and RenderOptions

Nothing in this module mutates tracker state. TrackerState (tracker.py) is the
only place where the log, tables and counters change.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from numbers import Integral
from typing import Dict, Any, Optional, Protocol, Tuple, Union, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Widest bar render_state() will draw for a single allocation.
MAX_BAR_WIDTH = 40

# Each bar block stands for this many simulated bytes.
BYTES_PER_BLOCK = 8

# Character used to draw allocation bars.
BAR_CHAR = "█"

# Default number of records returned by recent-history helpers.
DEFAULT_RECENT_COUNT = 10

# Sequence number assigned to the first record after construction or reset().
FIRST_SEQUENCE = 1


# ============================================================================
# ENUMS
# ============================================================================

class OperationKind(Enum):
    """Kind of simulated memory event recorded in the operation log."""
    ALLOCATE = "allocate"
    DEALLOCATE = "deallocate"
    MOVE = "move"
    BORROW = "borrow"
    MUTABLE_BORROW = "mutable_borrow"
    BORROW_END = "borrow_end"
    CLONE = "clone"

    @property
    def label(self) -> str:
        """Upper-case label used in rendered output (e.g. "MUTABLE_BORROW")."""
        return self.name


class Exclusivity(Enum):
    """
    Whether a borrow is shared (read-only, many allowed) or exclusive
    (read-write, singular).
    """
    SHARED = "shared"
    EXCLUSIVE = "exclusive"


class Effect(Enum):
    """
    Outcome of applying a record to the derived tables.

    APPLIED: The record changed the allocation or borrow table.
    NO_OP: The record named a label with no active entry. Tolerated and logged.
    LOG_ONLY: The kind has no table semantics (Clone, Move marker).
    """
    APPLIED = "applied"
    NO_OP = "no_op"
    LOG_ONLY = "log_only"


# Kinds that must name a second label through the `target` argument.
KINDS_REQUIRING_TARGET = frozenset({
    OperationKind.MOVE,
    OperationKind.BORROW,
    OperationKind.MUTABLE_BORROW,
})


# ============================================================================
# EXCEPTIONS
# ============================================================================

class TrackerError(Exception):
    """Base exception for all tracker errors."""
    pass


class InvalidSize(TrackerError):
    """Raised when a record is ingested with a negative or non-integer size."""
    pass


class MissingTarget(TrackerError):
    """Raised when a Move or Borrow is ingested without a target label."""
    pass


class UnknownOperationKind(TrackerError):
    """Raised when a kind string does not name an OperationKind."""
    pass


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def _squash(text: str) -> str:
    return "".join(ch for ch in text.lower() if ch not in "_- ")


def coerce_kind(kind: Union[OperationKind, str]) -> OperationKind:
    """
    Convert a kind given as enum member or string into an OperationKind.

    Strings are matched case-insensitively, ignoring "_", "-" and spaces, so
    "allocate", "ALLOCATE", "mutable_borrow" and "BorrowEnd" are all accepted.

    Raises:
        UnknownOperationKind: If the value does not name a kind
    """
    if isinstance(kind, OperationKind):
        return kind
    if isinstance(kind, str):
        key = _squash(kind)
        for member in OperationKind:
            if _squash(member.value) == key:
                return member
    raise UnknownOperationKind(f"Unknown operation kind: {kind!r}")


def validate_size(size: Any) -> int:
    """
    Check that a simulated size is a non-negative integer and return it as int.

    Raises:
        InvalidSize: If size is negative, a bool, or not an integer
    """
    if isinstance(size, bool) or not isinstance(size, Integral):
        raise InvalidSize(f"Size must be a non-negative integer, got {size!r}")
    if size < 0:
        raise InvalidSize(f"Size must be non-negative, got {size}")
    return int(size)


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class OperationRecord:
    """
    One immutable log entry describing a simulated memory event.

    Attributes:
        sequence_number: Engine-assigned, strictly increasing position in the log.
        kind: The OperationKind of the event.
        location: Label of the storage slot (borrow label for borrows, source for moves).
        type_label: Free-text description of the simulated value's type.
        size: Simulated size in bytes.
        description: Optional narration text.
        target: Second label: borrowed location, move destination or clone label.
        effect: What applying this record did to the tables.
        derived_from: Sequence number of the Move marker that produced this record.

    This class is immutable (frozen=True) and memory-optimized (slots=True).
    """
    sequence_number: int
    kind: OperationKind
    location: str
    type_label: str
    size: int
    description: Optional[str] = None
    target: Optional[str] = None
    effect: Effect = Effect.APPLIED
    derived_from: Optional[int] = None

    def __post_init__(self):
        if self.sequence_number < FIRST_SEQUENCE:
            raise ValueError(f"Sequence number must be >= {FIRST_SEQUENCE}, got {self.sequence_number}")
        if not isinstance(self.kind, OperationKind):
            raise ValueError(f"kind must be OperationKind, got {type(self.kind)}")
        validate_size(self.size)

    @property
    def is_derived(self) -> bool:
        """True if this record was emitted by a Move marker rather than a caller."""
        return self.derived_from is not None

    def __repr__(self) -> str:
        arrow = f"→{self.target}" if self.target else ""
        return f"Op#{self.sequence_number}({self.kind.label} {self.location}{arrow}, {self.size}B)"


@dataclass(frozen=True, slots=True)
class AllocationEntry:
    """
    A live simulated allocation.

    Attributes:
        location: Location label the allocation is keyed by.
        size: Size in bytes recorded by the Allocate.
        type_label: Type description recorded by the Allocate.
        sequence_number: Sequence number of the Allocate that created it.
    """
    location: str
    size: int
    type_label: str
    sequence_number: int


@dataclass(frozen=True, slots=True)
class BorrowEntry:
    """
    A live simulated borrow.

    Attributes:
        label: Borrow label the entry is keyed by.
        target: Location label being borrowed.
        exclusivity: SHARED or EXCLUSIVE.
        sequence_number: Sequence number of the Borrow that created it.
    """
    label: str
    target: str
    exclusivity: Exclusivity
    sequence_number: int

    @property
    def is_exclusive(self) -> bool:
        return self.exclusivity is Exclusivity.EXCLUSIVE


@dataclass(frozen=True, slots=True)
class TrackerSummary:
    """
    Point-in-time aggregate of a tracker's log, tables and counters.
    """
    operation_count: int
    total_allocated: int
    total_deallocated: int
    peak_concurrent: int
    current_concurrent: int
    active_allocation_count: int
    active_borrow_count: int

    def as_dict(self) -> Dict[str, int]:
        """Return the summary as a plain dictionary."""
        return {
            'operation_count': self.operation_count,
            'total_allocated': self.total_allocated,
            'total_deallocated': self.total_deallocated,
            'peak_concurrent': self.peak_concurrent,
            'current_concurrent': self.current_concurrent,
            'active_allocation_count': self.active_allocation_count,
            'active_borrow_count': self.active_borrow_count,
        }


@dataclass(frozen=True, slots=True)
class RenderOptions:
    """
    Settings for the text renderer. Modify these to experiment.

    Attributes:
        max_bar_width: Maximum number of bar characters per allocation line.
        bytes_per_block: Simulated bytes represented by one bar character.
        bar_char: Character used to draw bars.
    """
    max_bar_width: int = MAX_BAR_WIDTH
    bytes_per_block: int = BYTES_PER_BLOCK
    bar_char: str = BAR_CHAR

    def __post_init__(self):
        if self.max_bar_width < 1:
            raise ValueError(f"max_bar_width must be >= 1, got {self.max_bar_width}")
        if self.bytes_per_block < 1:
            raise ValueError(f"bytes_per_block must be >= 1, got {self.bytes_per_block}")
        if len(self.bar_char) != 1:
            raise ValueError(f"bar_char must be a single character, got {self.bar_char!r}")


DEFAULT_RENDER_OPTIONS = RenderOptions()


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class TrackerView(Protocol):
    """
    Read-only interface to tracker state.

    Reporting and rendering functions accept a TrackerView to declare that they
    never mutate state. TrackerState implements this protocol; tests use
    FakeView, a fixed in-memory implementation.
    """

    @property
    def operation_log(self) -> Tuple[OperationRecord, ...]:
        """Return the log as an immutable tuple, oldest first."""
        ...

    @property
    def total_allocated(self) -> int:
        ...

    @property
    def total_deallocated(self) -> int:
        ...

    @property
    def peak_concurrent(self) -> int:
        ...

    @property
    def current_concurrent(self) -> int:
        ...

    def get_allocations(self) -> Dict[str, AllocationEntry]:
        """Return a copy of the allocation table keyed by location label."""
        ...

    def get_borrows(self) -> Dict[str, BorrowEntry]:
        """Return a copy of the borrow table keyed by borrow label."""
        ...
