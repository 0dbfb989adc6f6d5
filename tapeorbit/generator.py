"""
tapeorbit/generator.py - Seed programs

Two ways to produce generation-0 programs:

1. Enumeration: index n -> short instruction sequence, left-placed on a
   blank tape. Sequences use the symbols 1..A-1 (NOP is left out, it is
   what the rest of the tape is filled with), so there are (A-1)^k
   sequences of length k. Indices are consumed tier by tier:

       n in [0, r)            -> length 1
       n in [r, r + r^2)      -> length 2
       n in [r + r^2, ...)    -> length 3      (r = A - 1)

   Within a tier the digits are little-endian base r. The mapping is a
   bijection, so sweeping n = 0, 1, 2, ... visits every short program
   once before any longer one.

2. Random: every cell drawn uniformly from the whole alphabet.

Seed sources wrap either mode (or a text file of rendered programs) as
iterables of (label, Program).
"""

from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .tape import Alphabet, MalformedProgramError, Program


# ============================================================
# ENUMERATION CODEC
# ============================================================

def _radix(alphabet_size: int) -> int:
    if alphabet_size < 2:
        raise ValueError(f"Enumeration needs at least 2 symbols, got {alphabet_size}")
    return alphabet_size - 1


def tier_bounds(length: int, alphabet_size: int) -> Tuple[int, int]:
    """Index range [start, end) holding the sequences of a given length"""
    r = _radix(alphabet_size)
    start = sum(r ** k for k in range(1, length))
    return start, start + r ** length


def decode_index(n: int, alphabet_size: int) -> List[int]:
    """Index -> instruction sequence (symbols 1..alphabet_size-1)"""
    if n < 0:
        raise ValueError(f"Enumeration index must be >= 0, got {n}")
    r = _radix(alphabet_size)
    length = 1
    while n >= r ** length:
        n -= r ** length
        length += 1

    seq = []
    for _ in range(length):
        n, digit = divmod(n, r)
        seq.append(digit + 1)
    return seq


def encode_sequence(seq: Sequence[int], alphabet_size: int) -> int:
    """Instruction sequence -> index. Inverse of decode_index."""
    r = _radix(alphabet_size)
    if not seq:
        raise ValueError("Cannot encode an empty sequence")
    index = tier_bounds(len(seq), alphabet_size)[0]
    place = 1
    for symbol in seq:
        if not 1 <= symbol <= r:
            raise ValueError(f"Symbol {symbol} not enumerable (valid: 1..{r})")
        index += (symbol - 1) * place
        place *= r
    return index


def enumerated_program(n: int, tape_length: int, alphabet_size: int) -> Program:
    seq = decode_index(n, alphabet_size)
    if len(seq) > tape_length:
        raise ValueError(
            f"Index {n} decodes to {len(seq)} symbols, tape holds {tape_length}"
        )
    return Program(bytes(seq) + bytes(tape_length - len(seq)))


def random_program(rng: np.random.Generator, tape_length: int,
                   alphabet_size: int) -> Program:
    tape = rng.integers(0, alphabet_size, size=tape_length, dtype=np.uint8)
    return Program(tape.tobytes())


# ============================================================
# SEED SOURCES
# ============================================================

class EnumeratedSeeds:
    """count consecutive enumerated programs starting at index start"""

    def __init__(self, start: int, count: int, tape_length: int, alphabet_size: int):
        self.start = start
        self.count = count
        self.tape_length = tape_length
        self.alphabet_size = alphabet_size

    def __len__(self):
        return self.count

    def __iter__(self) -> Iterator[Tuple[str, Program]]:
        for n in range(self.start, self.start + self.count):
            yield f"#{n}", enumerated_program(n, self.tape_length, self.alphabet_size)


class RandomSeeds:
    """count uniformly random programs; reproducible when seed is given"""

    def __init__(self, count: int, tape_length: int, alphabet_size: int,
                 seed: Optional[int] = None):
        self.count = count
        self.tape_length = tape_length
        self.alphabet_size = alphabet_size
        self.seed = seed

    def __len__(self):
        return self.count

    def __iter__(self) -> Iterator[Tuple[str, Program]]:
        rng = np.random.default_rng(self.seed)
        for i in range(self.count):
            yield f"random-{i}", random_program(rng, self.tape_length, self.alphabet_size)


def _decode_line(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedProgramError(
            f"Undecodable byte {raw[e.start]:#04x} at column {e.start + 1}"
        ) from None


class FileSeeds:
    """
    Programs read from a text file, one rendered program per line.

    Lines with the wrong length, unknown characters or bytes that are not
    UTF-8 are reported and skipped; the remaining lines are still used.
    Blank lines are ignored.
    """

    def __init__(self, path: str, alphabet: Alphabet, tape_length: int,
                 verbose: bool = True):
        self.path = path
        self.alphabet = alphabet
        self.tape_length = tape_length
        self.verbose = verbose
        self.rejected: List[Tuple[int, str]] = []

    def __iter__(self) -> Iterator[Tuple[str, Program]]:
        self.rejected = []
        with open(self.path, 'rb') as f:
            for line_no, raw in enumerate(f, start=1):
                raw = raw.rstrip(b"\r\n")
                if not raw.strip():
                    continue
                try:
                    program = self.alphabet.decode(_decode_line(raw), self.tape_length)
                except MalformedProgramError as e:
                    self.rejected.append((line_no, str(e)))
                    if self.verbose:
                        print(f"  [SKIP] {self.path}:{line_no}: {e}")
                    continue
                yield f"{self.path}:{line_no}", program
