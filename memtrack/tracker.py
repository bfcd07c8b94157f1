"""
tracker.py - Stateful Memory Operation Tracker

TrackerState is the central state manager. It is the only class that mutates
the operation log, the allocation and borrow tables, and the running counters.

Key responsibilities:
    - Implements the TrackerView protocol for read-only reporting and rendering
    - Ingests records, assigning sequence numbers and applying their effects
    - Rejects invalid input before any mutation (zero side effects on failure)
    - Tolerates misuse such as freeing an unknown label, logging it as a no-op
    - Provides audit tooling: verify_invariants(), copy(), replay()
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple, Any, Union

from .core import (
    # Types
    OperationRecord, OperationKind, AllocationEntry, BorrowEntry,
    TrackerSummary, Exclusivity, Effect, RenderOptions,
    # Constants
    FIRST_SEQUENCE, KINDS_REQUIRING_TARGET, DEFAULT_RENDER_OPTIONS, DEFAULT_RECENT_COUNT,
    # Exceptions
    TrackerError, MissingTarget,
    # Helper functions
    coerce_kind, validate_size,
)
from . import reporting
from . import render


class TrackerState:
    """
    Simulated memory ledger with an append-only log and derived tables.

    Implements the TrackerView protocol, so the tracker itself can be passed to
    the pure functions in reporting.py and render.py.

    Design Principles:
        - Always logs: every accepted call appends at least one record, even
          when it changes nothing (no-op frees are recorded with Effect.NO_OP).
        - Rejects early: invalid calls raise before anything is appended.
        - One owner: no globals. Whoever drives a scenario owns the tracker
          and passes it to each narrator.

    Thread Safety:
        Not thread-safe. Callers sharing a tracker across threads must
        serialize access themselves.

    Example:
        tracker = TrackerState("demo", verbose=False)
        tracker.record("allocate", "s1", "String", 5)
        tracker.move("s1", "s2")
        tracker.borrow("r1", "s2")
        print(tracker.render_state())
    """

    def __init__(
        self,
        name: str = "tracker",
        verbose: bool = True,
        render_options: Optional[RenderOptions] = None,
    ):
        """
        Create a tracker.

        Args:
            name: Tracker identifier, used in reports
            verbose: Print each record as it is ingested (default: True)
            render_options: Bar settings for render_state() (default: DEFAULT_RENDER_OPTIONS)
        """
        self.name = name
        self.verbose = verbose
        self.render_options = render_options or DEFAULT_RENDER_OPTIONS
        self._log: List[OperationRecord] = []
        self._allocations: Dict[str, AllocationEntry] = {}
        self._borrows: Dict[str, BorrowEntry] = {}
        self._total_allocated: int = 0
        self._total_deallocated: int = 0
        self._peak_concurrent: int = 0
        self._current_concurrent: int = 0
        self._next_sequence: int = FIRST_SEQUENCE

    # ========================================================================
    # TrackerView PROTOCOL IMPLEMENTATION (read-only)
    # ========================================================================

    @property
    def operation_log(self) -> Tuple[OperationRecord, ...]:
        """The log as an immutable tuple, oldest first."""
        return tuple(self._log)

    @property
    def total_allocated(self) -> int:
        """Bytes ever allocated, including implicit re-allocations."""
        return self._total_allocated

    @property
    def total_deallocated(self) -> int:
        """Bytes ever freed, including bytes replaced by re-allocation."""
        return self._total_deallocated

    @property
    def peak_concurrent(self) -> int:
        """Highest current_concurrent ever observed."""
        return self._peak_concurrent

    @property
    def current_concurrent(self) -> int:
        """Sum of sizes in the allocation table."""
        return self._current_concurrent

    def get_allocations(self) -> Dict[str, AllocationEntry]:
        """Return a copy of the allocation table keyed by location label."""
        return dict(self._allocations)

    def get_borrows(self) -> Dict[str, BorrowEntry]:
        """Return a copy of the borrow table keyed by borrow label."""
        return dict(self._borrows)

    def get_allocation(self, location: str) -> Optional[AllocationEntry]:
        return self._allocations.get(location)

    def get_borrow(self, label: str) -> Optional[BorrowEntry]:
        return self._borrows.get(label)

    # ========================================================================
    # INGESTION (Mutating)
    # ========================================================================

    def record(
        self,
        kind: Union[OperationKind, str],
        location: str,
        type_label: str,
        size: int,
        description: Optional[str] = None,
        target: Optional[str] = None,
    ) -> int:
        """
        Ingest one operation and apply its effect to the tables and counters.

        Effects by kind:
            ALLOCATE: insert or overwrite the entry for location.
            DEALLOCATE: remove the entry for location; no-op if absent.
            MOVE: marker record, then a derived Deallocate of location and a
                derived Allocate of target carrying the source's size and type.
            BORROW / MUTABLE_BORROW: insert the borrow `location` -> target.
                Re-borrowing under an active label overwrites it.
            BORROW_END: remove the borrow `location`; no-op if absent.
            CLONE: log only.

        Args:
            kind: OperationKind or its string value (e.g. "allocate")
            location: Storage slot label (borrow label for borrows, source for moves)
            type_label: Free-text type description
            size: Simulated size in bytes (non-negative integer)
            description: Optional narration text
            target: Borrowed location, move destination, or clone label

        Returns:
            Sequence number of the record (the marker, for moves)

        Raises:
            UnknownOperationKind: If kind does not name an OperationKind
            InvalidSize: If size is negative or not an integer
            MissingTarget: If a Move or Borrow has no target
        """
        try:
            kind = coerce_kind(kind)
            size = validate_size(size)
            if kind in KINDS_REQUIRING_TARGET and not target:
                raise MissingTarget(f"{kind.label} of {location!r} requires a target label")
        except TrackerError as e:
            if self.verbose:
                print(f"✗ REJECTED: {e}")
            raise

        if kind is OperationKind.ALLOCATE:
            return self._apply_allocate(location, type_label, size, description, target).sequence_number
        if kind is OperationKind.DEALLOCATE:
            return self._apply_deallocate(location, type_label, size, description, target).sequence_number
        if kind is OperationKind.MOVE:
            return self._apply_move(location, target, type_label, size, description)
        if kind in (OperationKind.BORROW, OperationKind.MUTABLE_BORROW):
            return self._apply_borrow(kind, location, target, type_label, size, description)
        if kind is OperationKind.BORROW_END:
            return self._apply_borrow_end(location, type_label, size, description, target)
        # CLONE
        return self._append(
            kind, location, type_label, size, description, target, Effect.LOG_ONLY
        ).sequence_number

    def reset(self) -> None:
        """
        Clear the log, both tables and all counters.

        Used to isolate independent scenarios within one process. Never fails;
        calling it twice leaves the same empty state as calling it once.
        """
        self._log = []
        self._allocations = {}
        self._borrows = {}
        self._total_allocated = 0
        self._total_deallocated = 0
        self._peak_concurrent = 0
        self._current_concurrent = 0
        self._next_sequence = FIRST_SEQUENCE

    def _append(
        self,
        kind: OperationKind,
        location: str,
        type_label: str,
        size: int,
        description: Optional[str],
        target: Optional[str],
        effect: Effect,
        derived_from: Optional[int] = None,
    ) -> OperationRecord:
        """Create the next record, append it to the log, and echo it if verbose."""
        record = OperationRecord(
            sequence_number=self._next_sequence,
            kind=kind,
            location=location,
            type_label=type_label,
            size=size,
            description=description,
            target=target,
            effect=effect,
            derived_from=derived_from,
        )
        self._next_sequence += 1
        self._log.append(record)
        if self.verbose:
            print(render.render_operation(record))
            if effect is Effect.NO_OP:
                print(f"⚠️  NO-OP: nothing active under {location!r}")
        return record

    def _apply_allocate(
        self,
        location: str,
        type_label: str,
        size: int,
        description: Optional[str],
        target: Optional[str],
        derived_from: Optional[int] = None,
    ) -> OperationRecord:
        record = self._append(
            OperationKind.ALLOCATE, location, type_label, size,
            description, target, Effect.APPLIED, derived_from,
        )
        replaced = self._allocations.get(location)
        if replaced is not None:
            # The overwritten entry's bytes count as freed so that
            # total_allocated - total_deallocated == current_concurrent.
            self._current_concurrent -= replaced.size
            self._total_deallocated += replaced.size
            if self.verbose:
                print(f"⚠️  REPLACED: {location!r} held {replaced.size} bytes of {replaced.type_label}")
        self._allocations[location] = AllocationEntry(
            location=location,
            size=size,
            type_label=type_label,
            sequence_number=record.sequence_number,
        )
        self._current_concurrent += size
        self._total_allocated += size
        self._peak_concurrent = max(self._peak_concurrent, self._current_concurrent)
        return record

    def _apply_deallocate(
        self,
        location: str,
        type_label: str,
        size: int,
        description: Optional[str],
        target: Optional[str],
        derived_from: Optional[int] = None,
    ) -> OperationRecord:
        entry = self._allocations.pop(location, None)
        effect = Effect.APPLIED if entry is not None else Effect.NO_OP
        record = self._append(
            OperationKind.DEALLOCATE, location, type_label, size,
            description, target, effect, derived_from,
        )
        if entry is not None:
            # Counters use the stored size, not the size passed by the caller
            self._current_concurrent -= entry.size
            self._total_deallocated += entry.size
        return record

    def _apply_move(
        self,
        source: str,
        dest: str,
        type_label: str,
        size: int,
        description: Optional[str],
    ) -> int:
        entry = self._allocations.get(source)
        moved_size = entry.size if entry is not None else size
        moved_type = entry.type_label if entry is not None else type_label

        marker = self._append(
            OperationKind.MOVE, source, moved_type, moved_size,
            description, dest, Effect.LOG_ONLY,
        )
        self._apply_deallocate(
            source, moved_type, moved_size,
            f"moved to {dest}", None, derived_from=marker.sequence_number,
        )
        self._apply_allocate(
            dest, moved_type, moved_size,
            f"moved from {source}", None, derived_from=marker.sequence_number,
        )
        return marker.sequence_number

    def _apply_borrow(
        self,
        kind: OperationKind,
        label: str,
        target: str,
        type_label: str,
        size: int,
        description: Optional[str],
    ) -> int:
        record = self._append(kind, label, type_label, size, description, target, Effect.APPLIED)
        exclusivity = Exclusivity.EXCLUSIVE if kind is OperationKind.MUTABLE_BORROW else Exclusivity.SHARED
        # Last write wins for an already-active label
        self._borrows[label] = BorrowEntry(
            label=label,
            target=target,
            exclusivity=exclusivity,
            sequence_number=record.sequence_number,
        )
        return record.sequence_number

    def _apply_borrow_end(
        self,
        label: str,
        type_label: str,
        size: int,
        description: Optional[str],
        target: Optional[str],
    ) -> int:
        entry = self._borrows.pop(label, None)
        effect = Effect.APPLIED if entry is not None else Effect.NO_OP
        if target is None and entry is not None:
            target = entry.target
        return self._append(
            OperationKind.BORROW_END, label, type_label, size, description, target, effect
        ).sequence_number

    # ========================================================================
    # CONVENIENCE WRAPPERS (Mutating)
    # ========================================================================

    def allocate(self, location: str, type_label: str, size: int, description: Optional[str] = None) -> int:
        """Record an Allocate of size bytes of type_label at location."""
        return self.record(OperationKind.ALLOCATE, location, type_label, size, description)

    def deallocate(self, location: str, description: Optional[str] = None) -> int:
        """
        Record a Deallocate of location, taking type and size from the live entry.

        Freeing an unknown location is tolerated and recorded as a no-op with
        an empty type label and size 0.
        """
        entry = self._allocations.get(location)
        type_label = entry.type_label if entry is not None else ""
        size = entry.size if entry is not None else 0
        return self.record(OperationKind.DEALLOCATE, location, type_label, size, description)

    def move(
        self,
        source: str,
        dest: str,
        type_label: Optional[str] = None,
        description: Optional[str] = None,
    ) -> int:
        """
        Record a transfer of ownership from source to dest.

        The destination inherits the source's size and type. type_label is only
        used when the source is not live, in which case dest is allocated with
        size 0.
        """
        entry = self._allocations.get(source)
        if type_label is None:
            type_label = entry.type_label if entry is not None else ""
        size = entry.size if entry is not None else 0
        return self.record(OperationKind.MOVE, source, type_label, size, description, target=dest)

    def borrow(
        self,
        label: str,
        target: str,
        exclusive: bool = False,
        description: Optional[str] = None,
    ) -> int:
        """
        Record a shared (default) or exclusive borrow of target under label.

        The type label is derived from the target's type: "&String" for a
        shared borrow of a String, "&mut String" for an exclusive one.
        """
        entry = self._allocations.get(target)
        base_type = entry.type_label if entry is not None else "?"
        if exclusive:
            kind = OperationKind.MUTABLE_BORROW
            type_label = f"&mut {base_type}"
        else:
            kind = OperationKind.BORROW
            type_label = f"&{base_type}"
        return self.record(kind, label, type_label, 0, description, target=target)

    def end_borrow(self, label: str, description: Optional[str] = None) -> int:
        """Record the end of borrow label. Ending an unknown borrow is a no-op."""
        entry = self._borrows.get(label)
        type_label = ""
        if entry is not None:
            target_entry = self._allocations.get(entry.target)
            base_type = target_entry.type_label if target_entry is not None else "?"
            type_label = f"&mut {base_type}" if entry.is_exclusive else f"&{base_type}"
        return self.record(OperationKind.BORROW_END, label, type_label, 0, description)

    def clone_value(
        self,
        source: str,
        clone_label: str,
        size: Optional[int] = None,
        type_label: Optional[str] = None,
        description: Optional[str] = None,
    ) -> int:
        """
        Record a deep copy of source into a new allocation at clone_label.

        Appends a Clone record followed by an Allocate of clone_label: unlike a
        move, both values are live afterwards. Size and type default to the
        source's when it is live.

        Returns:
            Sequence number of the Clone record
        """
        entry = self._allocations.get(source)
        if size is None:
            size = entry.size if entry is not None else 0
        if type_label is None:
            type_label = entry.type_label if entry is not None else ""
        # Validate before the Clone record goes in, so the pair is all-or-nothing
        size = validate_size(size)
        seq = self.record(OperationKind.CLONE, source, type_label, size, description, target=clone_label)
        self.record(OperationKind.ALLOCATE, clone_label, type_label, size, f"clone of {source}")
        return seq

    # ========================================================================
    # REPORTING (read-only, delegates to reporting.py)
    # ========================================================================

    def summary(self) -> TrackerSummary:
        return reporting.summary(self)

    def recent(self, n: int = DEFAULT_RECENT_COUNT) -> List[OperationRecord]:
        """Up to n records, most recent first."""
        return reporting.recent(self, n)

    def has_active_allocations(self) -> bool:
        return reporting.has_active_allocations(self)

    def has_active_borrows(self) -> bool:
        return reporting.has_active_borrows(self)

    def operation_breakdown(self) -> Dict[OperationKind, int]:
        return reporting.operation_breakdown(self)

    def operations_by_kind(self, kind: Union[OperationKind, str]) -> List[OperationRecord]:
        return reporting.operations_by_kind(self, kind)

    def largest_allocations(self, n: int = 5) -> List[AllocationEntry]:
        return reporting.largest_allocations(self, n)

    def allocation_size_stats(self) -> Dict[str, float]:
        return reporting.allocation_size_stats(self)

    def borrow_conflicts(self) -> Dict[str, List[BorrowEntry]]:
        return reporting.borrow_conflicts(self)

    def dangling_borrows(self) -> List[BorrowEntry]:
        return reporting.dangling_borrows(self)

    # ========================================================================
    # RENDERING (read-only, delegates to render.py)
    # ========================================================================

    def render_state(self) -> str:
        return render.render_state(self, self.render_options)

    def render_operation(self, record: OperationRecord) -> str:
        return render.render_operation(record)

    def render_report(self) -> str:
        return render.render_report(self, self.render_options)

    # ========================================================================
    # AUDIT TOOLING
    # ========================================================================

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Recompute the counter invariants from the tables.

        Checks:
            - current_concurrent equals the sum of live allocation sizes
            - current_concurrent does not exceed peak_concurrent
            - total_allocated - total_deallocated equals current_concurrent
            - sequence numbers are strictly increasing

        Returns:
            Dict with keys:
            - 'valid': bool - True if every invariant holds
            - 'discrepancies': List[Dict] - one entry per violated invariant,
              with 'invariant', 'expected' and 'actual'

        Example:
            result = tracker.verify_invariants()
            assert result['valid'], result['discrepancies']
        """
        discrepancies = []

        live_sum = sum(e.size for e in self._allocations.values())
        if live_sum != self._current_concurrent:
            discrepancies.append({
                'invariant': 'current_concurrent == sum(allocation sizes)',
                'expected': live_sum,
                'actual': self._current_concurrent,
            })

        if self._current_concurrent > self._peak_concurrent:
            discrepancies.append({
                'invariant': 'current_concurrent <= peak_concurrent',
                'expected': self._peak_concurrent,
                'actual': self._current_concurrent,
            })

        net = self._total_allocated - self._total_deallocated
        if net != self._current_concurrent:
            discrepancies.append({
                'invariant': 'total_allocated - total_deallocated == current_concurrent',
                'expected': net,
                'actual': self._current_concurrent,
            })

        for prev, curr in zip(self._log, self._log[1:]):
            if curr.sequence_number <= prev.sequence_number:
                discrepancies.append({
                    'invariant': 'sequence numbers strictly increasing',
                    'expected': f"> {prev.sequence_number}",
                    'actual': curr.sequence_number,
                })
                break

        return {
            'valid': len(discrepancies) == 0,
            'discrepancies': discrepancies,
        }

    def copy(self) -> TrackerState:
        """
        Create an independent copy of this tracker.

        Records and entries are immutable, so shallow copies of the log and
        tables are enough for the copy and the original to evolve separately.
        """
        cloned = TrackerState.__new__(TrackerState)
        cloned.name = self.name
        cloned.verbose = self.verbose
        cloned.render_options = self.render_options
        cloned._log = list(self._log)
        cloned._allocations = dict(self._allocations)
        cloned._borrows = dict(self._borrows)
        cloned._total_allocated = self._total_allocated
        cloned._total_deallocated = self._total_deallocated
        cloned._peak_concurrent = self._peak_concurrent
        cloned._current_concurrent = self._current_concurrent
        cloned._next_sequence = self._next_sequence
        return cloned

    def replay(self, upto: Optional[int] = None) -> TrackerState:
        """
        Rebuild a fresh tracker by re-ingesting the log.

        Only primary records are replayed; records derived from a Move marker
        are regenerated by the marker itself. The replayed tracker is silent
        regardless of this tracker's verbose setting.

        Args:
            upto: Replay only records with sequence_number <= upto (default: all).
                A Move marker within range brings its derived records with it.

        Returns:
            New TrackerState named "{name}_replayed"
        """
        replayed = TrackerState(
            name=f"{self.name}_replayed",
            verbose=False,
            render_options=self.render_options,
        )
        for record in self._log:
            if upto is not None and record.sequence_number > upto:
                break
            if record.is_derived:
                continue
            replayed.record(
                record.kind,
                record.location,
                record.type_label,
                record.size,
                record.description,
                target=record.target,
            )
        return replayed

    def __repr__(self) -> str:
        return (
            f"TrackerState({self.name!r}, {len(self._log)} ops, "
            f"{len(self._allocations)} allocations, {len(self._borrows)} borrows, "
            f"{self._current_concurrent}B live)"
        )
