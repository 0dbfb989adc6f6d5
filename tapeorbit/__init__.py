"""
tapeorbit - Orbits of self-modifying tape programs

A tape program is a fixed-length row of instruction symbols. Running it
produces a new tape of the same length, its successor. Iterating that
from a seed gives an orbit, which eventually repeats (or runs past the
step budget). tapeorbit searches many seeds and collects how long their
transients and cycles are.

Key Concepts:
- Program: immutable tape + generation index
- Dialect: the transition function (bracket, bracket-self, latch)
- OrbitTracker: iterates a dialect, detects the first repeated tape
- Histogram: orbit counts by cycle or tail length, with exemplar seeds
- SearchSession: the trial loop tying generator, tracker and histograms

Data flow:
    generator -> seed -> OrbitTracker (Dialect.step, VisitedTable)
              -> OrbitOutcome -> Histogram / storage
"""

from .tape import (
    Op,
    Alphabet,
    Program,
    STANDARD,
    MalformedProgramError,
)

from .core import (
    Dialect,
    TapeWiring,
    ISOLATED,
    SELF_REFERENTIAL,
    FETCH_OUTPUT,
    EngineError,
    InvalidSymbolError,
    CapacityExhaustedError,
    VisitedTable,
    OrbitTracker,
    OrbitOutcome,
    djb2,
)

from .dialects import (
    BracketDialect,
    LatchDialect,
    DIALECTS,
    get_dialect,
)

from .generator import (
    decode_index,
    encode_sequence,
    enumerated_program,
    random_program,
    EnumeratedSeeds,
    RandomSeeds,
    FileSeeds,
)

from .histogram import (
    MetricKind,
    Histogram,
    HistogramBucket,
)

from .session import (
    SearchConfig,
    SearchState,
    SearchSession,
    ProgressReporter,
)

__version__ = "0.1.0"
__all__ = [
    # Tapes
    "Op",
    "Alphabet",
    "Program",
    "STANDARD",
    "MalformedProgramError",
    # Engine
    "Dialect",
    "TapeWiring",
    "ISOLATED",
    "SELF_REFERENTIAL",
    "FETCH_OUTPUT",
    "EngineError",
    "InvalidSymbolError",
    "CapacityExhaustedError",
    "VisitedTable",
    "OrbitTracker",
    "OrbitOutcome",
    "djb2",
    # Dialects
    "BracketDialect",
    "LatchDialect",
    "DIALECTS",
    "get_dialect",
    # Seeds
    "decode_index",
    "encode_sequence",
    "enumerated_program",
    "random_program",
    "EnumeratedSeeds",
    "RandomSeeds",
    "FileSeeds",
    # Statistics
    "MetricKind",
    "Histogram",
    "HistogramBucket",
    # Search
    "SearchConfig",
    "SearchState",
    "SearchSession",
    "ProgressReporter",
]
