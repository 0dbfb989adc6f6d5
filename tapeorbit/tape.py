"""
tapeorbit/tape.py - Tapes, symbols and the character table

A Program is a fixed-length tape of small integers. The same tape is both
the code that runs and the data it operates on, so there is no separate
"instruction" type: a symbol only becomes an instruction when a dialect
fetches it.

- Op: the 11-symbol instruction set shared by the built-in dialects
- Alphabet: symbol <-> character table used for rendering and loading
- Program: immutable tape + generation index
"""

from enum import IntEnum
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np


class MalformedProgramError(ValueError):
    """Text does not describe a valid tape (bad length or unknown character)"""
    pass


class Op(IntEnum):
    """Instruction symbols, in tape-value order"""
    NOP = 0          # o
    READ_LEFT = 1    # <
    READ_RIGHT = 2   # >
    WRITE_LEFT = 3   # {
    WRITE_RIGHT = 4  # }
    JUMP_BACK = 5    # l  (scan backward while read symbol is non-zero)
    JUMP_AHEAD = 6   # r  (scan forward while read symbol is zero)
    SWAP = 7         # s
    WRITE_INC = 8    # p
    WRITE_EQ = 9     # w
    WRITE_DEC = 10   # m


OP_CHARS = "o<>{}lrspwm"


class Alphabet:
    """
    Fixed symbol -> character table.

    Symbol i is rendered as chars[i]. Decoding is the exact inverse, so an
    encode/decode round trip reproduces the tape for every valid symbol.
    """

    def __init__(self, chars: str):
        if len(set(chars)) != len(chars):
            raise ValueError(f"Alphabet characters must be distinct: {chars!r}")
        if not chars:
            raise ValueError("Alphabet needs at least one symbol")
        self.chars = chars
        self._index: Dict[str, int] = {c: i for i, c in enumerate(chars)}

    @property
    def size(self) -> int:
        return len(self.chars)

    def __len__(self):
        return len(self.chars)

    def __repr__(self):
        return f"Alphabet({self.chars!r})"

    def __eq__(self, other):
        return isinstance(other, Alphabet) and other.chars == self.chars

    def __hash__(self):
        return hash(self.chars)

    def symbol_of(self, char: str) -> int:
        try:
            return self._index[char]
        except KeyError:
            raise MalformedProgramError(
                f"Unknown symbol character {char!r} (alphabet {self.chars!r})"
            ) from None

    def encode(self, program: 'Program') -> str:
        """Render a program as one character per symbol"""
        chars = self.chars
        try:
            return "".join(chars[s] for s in program.tape)
        except IndexError:
            raise MalformedProgramError(
                f"Program contains symbols outside alphabet of size {self.size}"
            ) from None

    def decode(self, text: str, tape_length: Optional[int] = None,
               generation: int = 0) -> 'Program':
        """Parse a rendered program. Rejects wrong length or unknown characters."""
        if tape_length is not None and len(text) != tape_length:
            raise MalformedProgramError(
                f"Expected {tape_length} symbols, got {len(text)}"
            )
        return Program(bytes(self.symbol_of(c) for c in text), generation)


STANDARD = Alphabet(OP_CHARS)


@dataclass(frozen=True)
class Program:
    """
    An immutable tape plus the number of transitions that produced it.

    Equality and hashing look at tape content only: two programs from
    different generations with the same tape are the same point in the
    orbit.
    """
    tape: bytes
    generation: int = field(default=0, compare=False)

    def __post_init__(self):
        if not isinstance(self.tape, bytes):
            object.__setattr__(self, 'tape', bytes(self.tape))

    def __len__(self):
        return len(self.tape)

    def successor(self, tape) -> 'Program':
        """Program one generation later with the given tape content"""
        return Program(bytes(tape), self.generation + 1)

    def symbols(self) -> List[int]:
        return list(self.tape)

    def array(self) -> np.ndarray:
        """Read-only uint8 view of the tape"""
        return np.frombuffer(self.tape, dtype=np.uint8)

    @staticmethod
    def blank(length: int, fill: int = Op.NOP) -> 'Program':
        return Program(bytes([int(fill)]) * length)

    def render(self, alphabet: Alphabet = STANDARD) -> str:
        return alphabet.encode(self)
