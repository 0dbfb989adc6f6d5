"""
tapeorbit/core.py - Orbit engine (THE ENGINE)

This module contains the dialect-agnostic machinery:
- Dialect: abstract transition function (program -> successor program)
- TapeWiring: which tape a dialect fetches, reads and writes
- VisitedTable: content-addressed table of programs seen in one orbit
- OrbitTracker: iterates a dialect from a seed until content repeats

The tracker stores every visited tape of the current orbit. The first
repeat gives both the transient (tail) and the cycle length in one pass.

Orbit shape for a seed p0:

    p0 -> p1 -> ... -> p[tail] -> ... -> p[tail+cycle] == p[tail]

    tail_length  = generation where the repeated content first appeared
    cycle_length = generation of the repeat - tail_length
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from dataclasses import dataclass, field

import numpy as np

from .tape import Alphabet, Program, STANDARD


MASK64 = (1 << 64) - 1
DJB2_SEED = 5381
DJB2_MULT = 33

DEFAULT_MAX_INSTRUCTIONS = 25600


# ============================================================
# ERRORS
# ============================================================

class EngineError(Exception):
    """Base class for engine failures"""
    pass


class InvalidSymbolError(EngineError):
    """
    A fetched symbol is outside the alphabet.

    Well-formed programs never produce this; it means the tape was
    corrupted and the run should stop.
    """

    def __init__(self, value: int, position: int, alphabet_size: int):
        self.value = value
        self.position = position
        self.alphabet_size = alphabet_size
        super().__init__(
            f"Impossible instruction {value} at {position} "
            f"(alphabet size {alphabet_size})"
        )


class CapacityExhaustedError(EngineError):
    """Every slot of the visited table holds different content"""

    def __init__(self, capacity: int, generation: int):
        self.capacity = capacity
        self.generation = generation
        super().__init__(
            f"Visited table overflow at generation {generation}: "
            f"all {capacity} slots occupied, increase the table size"
        )


# ============================================================
# DIALECT INTERFACE
# ============================================================

@dataclass(frozen=True)
class TapeWiring:
    """
    Which tape each cursor works on during one transition.

    fetch_from_output:     instructions come from the tape under construction
    read_from_output:      data reads come from the tape under construction
    output_starts_as_copy: the new tape starts as a copy of the source
                           (otherwise it starts blank, filled with NOP)

    When fetching from the output, a write can rewrite a cell the
    instruction head has not reached yet, so later instructions in the
    same transition see the modified code.
    """
    fetch_from_output: bool = False
    read_from_output: bool = False
    output_starts_as_copy: bool = False

    def describe(self) -> str:
        fetch = "output" if self.fetch_from_output else "source"
        read = "output" if self.read_from_output else "source"
        start = "copy" if self.output_starts_as_copy else "blank"
        return f"fetch={fetch} read={read} output={start}"


ISOLATED = TapeWiring()
SELF_REFERENTIAL = TapeWiring(True, True, True)
FETCH_OUTPUT = TapeWiring(True, False, True)


class Dialect(ABC):
    """
    Abstract transition function.

    A dialect turns a program into its successor: same length, generation
    one higher, no I/O. Subclasses implement step(); everything else in
    the engine only ever calls step().
    """

    name: str = "dialect"

    def __init__(self, tape_length: int, alphabet: Alphabet = STANDARD,
                 max_instructions: int = DEFAULT_MAX_INSTRUCTIONS):
        if tape_length <= 0:
            raise ValueError(f"tape_length must be positive, got {tape_length}")
        self.tape_length = tape_length
        self.alphabet = alphabet
        self.max_instructions = max_instructions

    @abstractmethod
    def step(self, source: Program) -> Program:
        """Compute the successor of source"""
        pass

    def fetch(self, tape, position: int) -> int:
        """Fetch the instruction at position, rejecting corrupted symbols"""
        value = tape[position]
        if value >= self.alphabet.size:
            raise InvalidSymbolError(value, position, self.alphabet.size)
        return value

    def check_length(self, source: Program):
        if len(source) != self.tape_length:
            raise ValueError(
                f"{self.name}: expected tape of length {self.tape_length}, "
                f"got {len(source)}"
            )

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r}, tape_length={self.tape_length})"


# ============================================================
# HASHING
# ============================================================

def djb2(data: bytes) -> int:
    """Reference 64-bit djb2 hash: h = h*33 + byte, starting at 5381"""
    h = DJB2_SEED
    for b in data:
        h = (h * DJB2_MULT + b) & MASK64
    return h


class TapeHasher:
    """
    Vectorised djb2 for tapes of one fixed length.

    Unrolled, djb2 is 5381*33^n + sum(b[i] * 33^(n-1-i)) mod 2^64, so the
    powers are computed once and each hash is a single uint64 dot product
    (numpy integer arrays wrap modulo 2^64).
    """

    def __init__(self, length: int):
        self.length = length
        powers = [0] * length
        p = 1
        for i in range(length - 1, -1, -1):
            powers[i] = p
            p = (p * DJB2_MULT) & MASK64
        self.powers = np.array(powers, dtype=np.uint64)
        self.offset = (DJB2_SEED * p) & MASK64

    def __call__(self, tape: bytes) -> int:
        values = np.frombuffer(tape, dtype=np.uint8).astype(np.uint64)
        weighted = int((values * self.powers).sum(dtype=np.uint64))
        return (weighted + self.offset) & MASK64


# ============================================================
# VISITED TABLE
# ============================================================

class VisitedTable:
    """
    Open-addressing table of programs seen in the current orbit.

    Slots are probed linearly from hash % capacity. Two tapes with equal
    hashes are only treated as equal after a full byte comparison.
    """

    def __init__(self, capacity: int, tape_length: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.hasher = TapeHasher(tape_length)
        self.slots: List[Optional[Program]] = [None] * capacity
        self.count = 0
        self.probes = 0

    def __len__(self):
        return self.count

    def load_factor(self) -> float:
        return self.count / self.capacity

    def insert(self, program: Program) -> Optional[Program]:
        """
        Record program.

        Returns the earlier program with identical content if there is one
        (the orbit just closed), otherwise stores program and returns None.
        """
        h = self.hasher(program.tape) % self.capacity
        for _ in range(self.capacity):
            occupant = self.slots[h]
            if occupant is None:
                self.slots[h] = program
                self.count += 1
                return None
            if occupant.tape == program.tape:
                return occupant
            h = (h + 1) % self.capacity
            self.probes += 1
        raise CapacityExhaustedError(self.capacity, program.generation)


# ============================================================
# ORBIT TRACKER
# ============================================================

@dataclass
class OrbitOutcome:
    """Summary of one seed's orbit"""
    seed: Program
    tail_length: int
    cycle_length: int
    steps: int
    closed: bool
    unique_programs: int
    orbit: List[Program] = field(default_factory=list, repr=False)

    def signature(self) -> str:
        if self.closed:
            return f"Orbit(tail={self.tail_length}, cycle={self.cycle_length})"
        return f"Orbit(open after {self.steps} steps)"


class OrbitTracker:
    """
    Runs one orbit at a time.

    The seed is recorded at generation 0, then step() is applied up to
    `budget` times. Each trial gets a fresh VisitedTable; the table must
    hold the seed plus every successor, so capacity defaults to budget + 1.
    """

    def __init__(self, dialect, budget: int, capacity: Optional[int] = None,
                 keep_orbit: bool = True):
        if budget < 0:
            raise ValueError(f"budget must be non-negative, got {budget}")
        self.dialect = dialect
        self.budget = budget
        self.capacity = capacity if capacity is not None else budget + 1
        self.keep_orbit = keep_orbit
        self.table: Optional[VisitedTable] = None

    def run(self, seed: Program) -> OrbitOutcome:
        table = VisitedTable(self.capacity, len(seed))
        self.table = table
        orbit = [seed] if self.keep_orbit else []

        table.insert(seed)
        current = seed
        for steps in range(1, self.budget + 1):
            current = self.dialect.step(current)
            if self.keep_orbit:
                orbit.append(current)
            first = table.insert(current)
            if first is not None:
                return OrbitOutcome(
                    seed=seed,
                    tail_length=first.generation - seed.generation,
                    cycle_length=current.generation - first.generation,
                    steps=steps,
                    closed=True,
                    unique_programs=len(table),
                    orbit=orbit,
                )

        return OrbitOutcome(
            seed=seed,
            tail_length=self.budget,
            cycle_length=0,
            steps=self.budget,
            closed=False,
            unique_programs=len(table),
            orbit=orbit,
        )
