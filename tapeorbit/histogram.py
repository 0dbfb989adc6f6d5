"""
tapeorbit/histogram.py - Orbit statistics across a search

One Histogram per metric (cycle length or tail length). Buckets are made
on first use and only ever grow: the counter goes up on every record, and
when the key reaches the cutoff the seed that produced it is kept as an
exemplar.

Counters do not depend on the order of record() calls, so histograms
built on separate workers can be merged afterwards.
"""

from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum
import pickle

import numpy as np

from .tape import Program


class MetricKind(Enum):
    """Which orbit number a histogram buckets"""
    CYCLE = "cycle"
    TAIL = "tail"

    def metric(self, outcome) -> int:
        if self is MetricKind.CYCLE:
            return outcome.cycle_length
        return outcome.tail_length


@dataclass
class HistogramBucket:
    key: int
    count: int = 0
    exemplars: List[Program] = field(default_factory=list)


class Histogram:
    """
    Integer-keyed occurrence counter with exemplar retention.

    max_exemplars caps the exemplars kept per bucket (None keeps all of
    them). The counter is never capped.
    """

    def __init__(self, kind: MetricKind, max_exemplars: Optional[int] = None):
        self.kind = kind
        self.max_exemplars = max_exemplars
        self._buckets: Dict[int, HistogramBucket] = {}

    def __len__(self):
        return len(self._buckets)

    def __contains__(self, key: int):
        return key in self._buckets

    def record(self, metric_key: int, cutoff: int, exemplar: Program) -> HistogramBucket:
        bucket = self._buckets.get(metric_key)
        if bucket is None:
            bucket = HistogramBucket(metric_key)
            self._buckets[metric_key] = bucket
        bucket.count += 1
        if metric_key >= cutoff:
            if self.max_exemplars is None or len(bucket.exemplars) < self.max_exemplars:
                bucket.exemplars.append(exemplar)
        return bucket

    def bucket(self, key: int) -> Optional[HistogramBucket]:
        return self._buckets.get(key)

    def buckets(self) -> List[HistogramBucket]:
        """All buckets, ascending by key"""
        return [self._buckets[k] for k in sorted(self._buckets)]

    def counts(self) -> Dict[int, int]:
        return {b.key: b.count for b in self.buckets()}

    def total(self) -> int:
        return sum(b.count for b in self._buckets.values())

    def as_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """(keys, counts) as int64 arrays, ascending by key"""
        buckets = self.buckets()
        keys = np.array([b.key for b in buckets], dtype=np.int64)
        counts = np.array([b.count for b in buckets], dtype=np.int64)
        return keys, counts

    def mean(self) -> float:
        keys, counts = self.as_arrays()
        if counts.sum() == 0:
            return 0.0
        return float(np.average(keys, weights=counts))

    def max_key(self) -> Optional[int]:
        return max(self._buckets) if self._buckets else None

    def merge(self, other: 'Histogram') -> 'Histogram':
        """Fold another histogram of the same kind into this one"""
        if other.kind is not self.kind:
            raise ValueError(f"Cannot merge {other.kind.value} histogram into {self.kind.value}")
        for theirs in other.buckets():
            mine = self._buckets.get(theirs.key)
            if mine is None:
                mine = HistogramBucket(theirs.key)
                self._buckets[theirs.key] = mine
            mine.count += theirs.count
            room = None if self.max_exemplars is None else self.max_exemplars - len(mine.exemplars)
            extra = theirs.exemplars if room is None else theirs.exemplars[:max(room, 0)]
            mine.exemplars.extend(extra)
        return self

    def summary(self) -> str:
        lines = [f"{self.kind.value} length histogram ({self.total():,} orbits):"]
        for b in self.buckets():
            kept = f"  [{len(b.exemplars)} kept]" if b.exemplars else ""
            lines.append(f"  {b.key}: {b.count}{kept}")
        return "\n".join(lines)

    # Serialization
    def save(self, path: str):
        data = {
            'kind': self.kind.value,
            'max_exemplars': self.max_exemplars,
            'buckets': {
                k: (b.count, [(p.tape, p.generation) for p in b.exemplars])
                for k, b in self._buckets.items()
            },
        }
        with open(path, 'wb') as f:
            pickle.dump(data, f)

    @staticmethod
    def load(path: str) -> 'Histogram':
        with open(path, 'rb') as f:
            data = pickle.load(f)
        hist = Histogram(MetricKind(data['kind']), data.get('max_exemplars'))
        for k, (count, exemplars) in data['buckets'].items():
            hist._buckets[k] = HistogramBucket(
                k, count, [Program(tape, gen) for tape, gen in exemplars]
            )
        return hist
