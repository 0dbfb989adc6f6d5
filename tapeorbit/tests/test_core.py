"""
test_core.py - Hashing, visited table and orbit tracking

The tracker is exercised with small synthetic dialects whose orbit shape
is known in advance, so tail and cycle lengths can be checked exactly.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

import random

from tapeorbit.core import (
    CapacityExhaustedError, Dialect, OrbitTracker, TapeHasher, VisitedTable, djb2,
)
from tapeorbit.tape import Alphabet, Program


EIGHT = Alphabet("abcdefgh")


class RhoDialect(Dialect):
    """
    Tape of four equal cells holding v.  v -> v+1, except the last value
    loops back to `entry`.  With values 0..7 and entry 3 the orbit from
    [0,0,0,0] has tail 3 and cycle 5.
    """
    name = "rho"

    def __init__(self, last: int = 7, entry: int = 3):
        super().__init__(4, EIGHT)
        self.last = last
        self.entry = entry
        self.calls = 0

    def step(self, source):
        self.calls += 1
        v = source.tape[0]
        nxt = self.entry if v == self.last else v + 1
        return source.successor(bytes([nxt] * 4))


class CounterDialect(Dialect):
    """Base-8 counter over four cells: 4096 distinct tapes before wrapping"""
    name = "counter"

    def __init__(self):
        super().__init__(4, EIGHT)

    def step(self, source):
        cells = list(source.tape)
        for i in range(4):
            cells[i] = (cells[i] + 1) % 8
            if cells[i]:
                break
        return source.successor(bytes(cells))


class IdentityDialect(Dialect):
    name = "identity"

    def __init__(self):
        super().__init__(4, EIGHT)

    def step(self, source):
        return source.successor(source.tape)


def seed4(v=0):
    return Program(bytes([v] * 4))


# ============================================================
# HASHING
# ============================================================

def test_djb2_known_values():
    assert djb2(b"") == 5381
    assert djb2(b"\x00") == 5381 * 33
    assert djb2(b"\x01\x02") == ((5381 * 33 + 1) * 33 + 2)
    print("[PASS] djb2 reference values")


def test_vectorised_hash_matches_reference():
    rng = random.Random(1234)
    for length in (1, 4, 64, 256):
        hasher = TapeHasher(length)
        for _ in range(20):
            tape = bytes(rng.randrange(11) for _ in range(length))
            assert hasher(tape) == djb2(tape), length
    print("[PASS] numpy hash == djb2")


def test_hash_is_order_sensitive():
    hasher = TapeHasher(3)
    assert hasher(b"\x01\x02\x03") != hasher(b"\x03\x02\x01")
    print("[PASS] hash order sensitive")


# ============================================================
# VISITED TABLE
# ============================================================

def test_table_reports_first_occurrence():
    table = VisitedTable(8, 4)
    first = Program(b"\x01\x01\x01\x01", generation=2)
    assert table.insert(first) is None
    assert table.insert(Program(b"\x02\x02\x02\x02", generation=3)) is None
    again = table.insert(Program(b"\x01\x01\x01\x01", generation=9))
    assert again is first
    assert again.generation == 2
    assert len(table) == 2
    print("[PASS] repeat returns first occurrence")


def test_table_compares_full_tapes_on_collision():
    table = VisitedTable(4, 4)
    table.hasher = lambda tape: 0  # every tape collides
    a = Program(b"\x01\x00\x00\x00", 0)
    b = Program(b"\x02\x00\x00\x00", 1)
    c = Program(b"\x03\x00\x00\x00", 2)
    assert table.insert(a) is None
    assert table.insert(b) is None
    assert table.insert(c) is None
    assert table.slots[:3] == [a, b, c]
    assert table.insert(Program(b"\x02\x00\x00\x00", 5)) is b
    assert table.probes > 0
    print("[PASS] collisions resolved by content")


def test_table_overflow_is_an_error():
    table = VisitedTable(2, 4)
    table.insert(seed4(0))
    table.insert(seed4(1))
    try:
        table.insert(Program(bytes([2] * 4), generation=2))
    except CapacityExhaustedError as e:
        assert e.capacity == 2
        assert e.generation == 2
        print("[PASS] overflow raises")
        return
    raise AssertionError("full table must not silently accept or drop a program")


def test_full_table_still_finds_repeats():
    table = VisitedTable(2, 4)
    table.insert(seed4(0))
    table.insert(seed4(1))
    assert table.insert(seed4(1)) is not None
    assert table.load_factor() == 1.0
    print("[PASS] repeat found in full table")


# ============================================================
# ORBIT TRACKER
# ============================================================

def test_known_tail_and_cycle():
    for budget in (8, 9, 50):
        outcome = OrbitTracker(RhoDialect(), budget).run(seed4(0))
        assert outcome.closed
        assert outcome.tail_length == 3, outcome
        assert outcome.cycle_length == 5, outcome
        assert outcome.steps == 8
        assert outcome.unique_programs == 8
        assert [p.generation for p in outcome.orbit] == list(range(9))
        assert outcome.orbit[-1] == outcome.orbit[3]
    print("[PASS] tail 3 / cycle 5")


def test_budget_too_small_reports_open_orbit():
    outcome = OrbitTracker(RhoDialect(), 7).run(seed4(0))
    assert not outcome.closed
    assert outcome.tail_length == 7
    assert outcome.cycle_length == 0
    print("[PASS] open orbit under budget")


def test_long_orbit_reports_budget():
    dialect = CounterDialect()
    outcome = OrbitTracker(dialect, 100).run(seed4(0))
    assert outcome.tail_length == 100
    assert outcome.cycle_length == 0
    assert outcome.steps == 100
    assert outcome.unique_programs == 101
    assert "open" in outcome.signature()
    print("[PASS] no cycle within budget")


def test_fixed_point_is_cycle_of_one():
    outcome = OrbitTracker(IdentityDialect(), 10).run(seed4(5))
    assert outcome.closed
    assert outcome.tail_length == 0
    assert outcome.cycle_length == 1
    assert outcome.signature() == "Orbit(tail=0, cycle=1)"
    print("[PASS] fixed point")


def test_seed_inside_cycle_has_zero_tail():
    # entry 0: values 0..7 then back to 0, the seed itself recurs
    outcome = OrbitTracker(RhoDialect(entry=0), 20).run(seed4(0))
    assert outcome.tail_length == 0
    assert outcome.cycle_length == 8
    print("[PASS] pure cycle")


def test_fresh_table_per_run():
    dialect = RhoDialect()
    tracker = OrbitTracker(dialect, 20)
    first = tracker.run(seed4(0))
    first_table = tracker.table
    second = tracker.run(seed4(0))
    assert (first.tail_length, first.cycle_length) == (second.tail_length, second.cycle_length)
    assert tracker.table is not first_table

    # seed 5 is already on the cycle; a leftover table would report tail 5
    third = tracker.run(seed4(5))
    assert third.tail_length == 0
    assert third.cycle_length == 5
    print("[PASS] no state carried between orbits")


def test_undersized_table_raises():
    tracker = OrbitTracker(CounterDialect(), budget=10, capacity=4)
    try:
        tracker.run(seed4(0))
    except CapacityExhaustedError:
        print("[PASS] undersized table raises")
        return
    raise AssertionError("expected CapacityExhaustedError")


def test_zero_budget_never_steps():
    dialect = RhoDialect()
    outcome = OrbitTracker(dialect, 0).run(seed4(0))
    assert dialect.calls == 0
    assert outcome.tail_length == 0
    assert outcome.cycle_length == 0
    assert not outcome.closed
    print("[PASS] zero budget")


def test_keep_orbit_off():
    outcome = OrbitTracker(RhoDialect(), 20, keep_orbit=False).run(seed4(0))
    assert outcome.orbit == []
    assert (outcome.tail_length, outcome.cycle_length) == (3, 5)
    print("[PASS] orbit not retained")


def run_all_tests():
    print("\n" + "=" * 60)
    print("CORE TESTS")
    print("=" * 60)
    tests = [
        test_djb2_known_values,
        test_vectorised_hash_matches_reference,
        test_hash_is_order_sensitive,
        test_table_reports_first_occurrence,
        test_table_compares_full_tapes_on_collision,
        test_table_overflow_is_an_error,
        test_full_table_still_finds_repeats,
        test_known_tail_and_cycle,
        test_budget_too_small_reports_open_orbit,
        test_long_orbit_reports_budget,
        test_fixed_point_is_cycle_of_one,
        test_seed_inside_cycle_has_zero_tail,
        test_fresh_table_per_run,
        test_undersized_table_raises,
        test_zero_budget_never_steps,
        test_keep_orbit_off,
    ]
    for test in tests:
        test()
    print(f"\n[SUCCESS] {len(tests)} core tests passed")


if __name__ == "__main__":
    run_all_tests()
