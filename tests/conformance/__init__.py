"""
Conformance Test Suite

Property-based checks of the tracker's normative behavior, run over
arbitrary operation sequences generated with hypothesis.

The tests are organized by invariant:
1. test_counters.py - Counter and table consistency after every step
2. test_rejection.py - Invalid calls leave no trace
3. test_replay.py - Reset, copy and replay reproduce state exactly
"""
