"""
tapeorbit/session.py - Search runs

A search feeds seeds through the OrbitTracker one at a time and folds
each outcome into long-lived state:

- SearchConfig: every parameter of a run, fixed at start
- SearchState: what the run has accumulated (histograms, highest cycle
  and tail seen so far, counters, where enumeration should resume)
- ProgressReporter: periodic printout, purely observational
- SearchSession: the trial loop

Trials share nothing except SearchState. Two states built from disjoint
seed ranges can be merged, which is how a split search is recombined.

A trial whose visited table overflows is reported and counted as
discarded; it never reaches the histograms, because its numbers would
look like a valid open orbit.
"""

from typing import Iterable, Optional, Tuple
from dataclasses import dataclass, field
import os
import pickle
import time

import psutil

from .core import CapacityExhaustedError, OrbitOutcome, OrbitTracker, DEFAULT_MAX_INSTRUCTIONS
from .dialects import get_dialect
from .generator import EnumeratedSeeds, RandomSeeds
from .histogram import Histogram, MetricKind
from .storage import write_orbit, dump_histogram
from .tape import Program, STANDARD


MODES = ("enumerate", "random")


# ============================================================
# CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class SearchConfig:
    """Parameters of one search run"""
    trials: int = 100_000_000
    budget: int = 1024             # transitions per orbit
    tape_length: int = 64
    dialect: str = "bracket"
    mode: str = "enumerate"
    start: int = 0                 # first enumeration index
    seed: Optional[int] = None     # RNG seed for random mode

    # Exemplar retention
    cycle_cutoff: int = 66
    tail_cutoff: int = 200
    min_count: int = 1             # buckets rarer than this are not dumped
    max_exemplars: Optional[int] = None

    # Engine limits
    max_instructions: int = DEFAULT_MAX_INSTRUCTIONS
    capacity: Optional[int] = None  # visited table slots (default budget + 1)

    # Output
    out_dir: str = "."
    dump_orbits: bool = True
    # Orbits are written only when they beat these (a fresh state starts here)
    record_cycle: int = 0
    record_tail: int = 1
    dump_ties: bool = False        # also dump orbits that equal the record
    progress_every: int = 100_000
    state_file: Optional[str] = None

    def __post_init__(self):
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {self.mode!r}")
        if self.trials < 0:
            raise ValueError(f"trials must be >= 0, got {self.trials}")
        if self.budget < 0:
            raise ValueError(f"budget must be >= 0, got {self.budget}")
        if self.tape_length <= 0:
            raise ValueError(f"tape_length must be > 0, got {self.tape_length}")
        if self.start < 0:
            raise ValueError(f"start must be >= 0, got {self.start}")
        if self.record_cycle < 0 or self.record_tail < 0:
            raise ValueError(
                f"record thresholds must be >= 0, got cycle={self.record_cycle} "
                f"tail={self.record_tail}"
            )


# ============================================================
# ACCUMULATED STATE
# ============================================================

@dataclass
class SearchState:
    """
    Everything a search run accumulates.

    Passed explicitly through the trial loop; nothing here is global.
    """
    dialect: str
    tape_length: int
    next_index: int = 0
    trials_done: int = 0
    discarded: int = 0
    highest_cycle: int = 0
    highest_tail: int = 0
    orbits_written: int = 0
    cycle_hist: Histogram = field(default_factory=lambda: Histogram(MetricKind.CYCLE))
    tail_hist: Histogram = field(default_factory=lambda: Histogram(MetricKind.TAIL))
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def histogram(self, kind: MetricKind) -> Histogram:
        return self.cycle_hist if kind is MetricKind.CYCLE else self.tail_hist

    def merge(self, other: 'SearchState') -> 'SearchState':
        """Fold a state from an independent set of trials into this one"""
        if (other.dialect, other.tape_length) != (self.dialect, self.tape_length):
            raise ValueError(
                f"Cannot merge {other.dialect}/{other.tape_length} "
                f"into {self.dialect}/{self.tape_length}"
            )
        self.trials_done += other.trials_done
        self.discarded += other.discarded
        self.highest_cycle = max(self.highest_cycle, other.highest_cycle)
        self.highest_tail = max(self.highest_tail, other.highest_tail)
        self.orbits_written += other.orbits_written
        self.next_index = max(self.next_index, other.next_index)
        self.cycle_hist.merge(other.cycle_hist)
        self.tail_hist.merge(other.tail_hist)
        return self

    def save(self, path: str):
        self.updated_at = time.time()
        with open(path, 'wb') as f:
            pickle.dump(self, f)

    @staticmethod
    def load(path: str) -> 'SearchState':
        with open(path, 'rb') as f:
            return pickle.load(f)

    def summary(self) -> str:
        lines = [
            f"Search: {self.dialect} (tape length {self.tape_length})",
            f"  Trials: {self.trials_done:,}",
            f"  Discarded (table overflow): {self.discarded:,}",
            f"  Highest cycle: {self.highest_cycle}",
            f"  Highest tail: {self.highest_tail}",
            f"  Mean cycle: {self.cycle_hist.mean():.2f}",
            f"  Mean tail: {self.tail_hist.mean():.2f}",
            f"  Orbits written: {self.orbits_written}",
            f"  Next enumeration index: {self.next_index:,}",
        ]
        return "\n".join(lines)


# ============================================================
# PROGRESS
# ============================================================

class ProgressReporter:
    """Prints histograms and counters every `every` trials"""

    def __init__(self, every: int = 100_000, verbose: bool = True):
        self.every = every
        self.verbose = verbose
        self.start_time = time.time()
        self.reports = 0

    def memory_mb(self) -> float:
        return psutil.Process().memory_info().rss / (1024 * 1024)

    def should_report(self, trials_done: int) -> bool:
        return self.every > 0 and trials_done > 0 and trials_done % self.every == 0

    def report(self, state: SearchState, remaining: int):
        self.reports += 1
        if not self.verbose:
            return
        elapsed = time.time() - self.start_time
        rate = state.trials_done / elapsed if elapsed > 0 else 0.0
        print("\n" + "=" * 60)
        print(f"PROGRESS: {state.trials_done:,} trials, {remaining:,} remaining")
        print("=" * 60)
        print(state.cycle_hist.summary())
        print(state.tail_hist.summary())
        print(f"  Rate: {rate:,.1f} trials/s, memory: {self.memory_mb():.0f} MB")


# ============================================================
# SEARCH SESSION
# ============================================================

class SearchSession:
    """
    Runs trials and keeps SearchState up to date.

    Usage:
        session = SearchSession(SearchConfig(trials=10_000, dialect="bracket-self"))
        state = session.run()
    """

    def __init__(self, config: SearchConfig, state: Optional[SearchState] = None,
                 reporter: Optional[ProgressReporter] = None, verbose: bool = True):
        self.config = config
        self.verbose = verbose
        self.alphabet = STANDARD
        self.dialect = get_dialect(config.dialect, config.tape_length,
                                   max_instructions=config.max_instructions)
        self.tracker = OrbitTracker(self.dialect, config.budget,
                                    capacity=config.capacity,
                                    keep_orbit=config.dump_orbits)
        if state is None:
            state = SearchState(
                dialect=self.dialect.name,
                tape_length=config.tape_length,
                next_index=config.start,
                highest_cycle=config.record_cycle,
                highest_tail=config.record_tail,
                cycle_hist=Histogram(MetricKind.CYCLE, config.max_exemplars),
                tail_hist=Histogram(MetricKind.TAIL, config.max_exemplars),
            )
        elif (state.dialect, state.tape_length) != (self.dialect.name, config.tape_length):
            raise ValueError(
                f"State is for {state.dialect}/{state.tape_length}, "
                f"config is {self.dialect.name}/{config.tape_length}"
            )
        self.state = state
        self.reporter = reporter or ProgressReporter(config.progress_every, verbose)

    def default_seeds(self) -> Iterable[Tuple[str, Program]]:
        config = self.config
        if config.mode == "enumerate":
            return EnumeratedSeeds(self.state.next_index, config.trials,
                                   config.tape_length, self.alphabet.size)
        return RandomSeeds(config.trials, config.tape_length, self.alphabet.size,
                           seed=config.seed)

    def run_trial(self, seed: Program, label: str = "") -> Optional[OrbitOutcome]:
        """One seed's orbit. Returns None if the trial had to be discarded."""
        config = self.config
        state = self.state
        try:
            outcome = self.tracker.run(seed)
        except CapacityExhaustedError as e:
            state.discarded += 1
            print(f"  [DISCARD] {label or 'seed'}: {e}")
            return None

        state.trials_done += 1
        state.cycle_hist.record(outcome.cycle_length, config.cycle_cutoff, seed)
        state.tail_hist.record(outcome.tail_length, config.tail_cutoff, seed)

        if config.dump_ties:
            new_cycle = outcome.cycle_length >= state.highest_cycle
            new_tail = outcome.tail_length >= state.highest_tail
        else:
            new_cycle = outcome.cycle_length > state.highest_cycle
            new_tail = outcome.tail_length > state.highest_tail

        if new_cycle:
            state.highest_cycle = outcome.cycle_length
            if self.verbose:
                print(f"Cycle detected with size: {outcome.cycle_length}, "
                      f"after {outcome.steps} program executions ({label})")
        if new_tail:
            state.highest_tail = outcome.tail_length
            if self.verbose:
                print(f"{outcome.tail_length} steps before repeat, "
                      f"cycle_size: {outcome.cycle_length} ({label})")
        if (new_cycle or new_tail) and config.dump_orbits:
            if write_orbit(config.out_dir, self.dialect.name, outcome, self.alphabet):
                state.orbits_written += 1

        return outcome

    def run(self, seeds: Optional[Iterable[Tuple[str, Program]]] = None) -> SearchState:
        """Run every seed (default: the configured generator), then finish()"""
        enumerating = seeds is None and self.config.mode == "enumerate"
        if seeds is None:
            seeds = self.default_seeds()
        total = len(seeds) if hasattr(seeds, '__len__') else None

        if self.verbose:
            print("=" * 60)
            print(f"SEARCH: {self.dialect.name}, tape {self.config.tape_length}, "
                  f"budget {self.config.budget}")
            print("=" * 60)

        done = 0
        for label, seed in seeds:
            self.run_trial(seed, label)
            done += 1
            if enumerating:
                self.state.next_index += 1
            if self.reporter.should_report(done):
                remaining = total - done if total is not None else 0
                self.reporter.report(self.state, remaining)
                if self.config.state_file:
                    self.state.save(self.config.state_file)

        self.finish()
        return self.state

    def finish(self):
        """Print final histograms, dump exemplar files, save state"""
        config = self.config
        state = self.state
        if self.verbose:
            print("\n" + "=" * 60)
            print("RESULTS")
            print("=" * 60)
            print(state.summary())
            print(state.cycle_hist.summary())
            print(state.tail_hist.summary())

        dump_histogram(state.cycle_hist, config.cycle_cutoff, config.out_dir,
                       self.dialect.name, self.alphabet, config.min_count)
        dump_histogram(state.tail_hist, config.tail_cutoff, config.out_dir,
                       self.dialect.name, self.alphabet, config.min_count)

        if config.state_file:
            directory = os.path.dirname(config.state_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            state.save(config.state_file)
            if self.verbose:
                print(f"State saved to {config.state_file}")
