"""
tapeorbit/dialects/bracket.py - Bracket-loop dialect

Three cursors (read, write, instruction) start at cell 0. Each fetched
symbol is one instruction:

    o   no-op
    < > move read head left/right (wraps)
    { } move write head left/right (wraps)
    l   if read symbol != 0, scan back to the matching 'r'
    r   if read symbol == 0, scan ahead to the matching 'l'
    s   swap read and write heads
    p   output[write] = read symbol + 1   (mod alphabet size)
    w   output[write] = read symbol
    m   output[write] = read symbol - 1   (mod alphabet size)

The write head does not move on a write. After a jump the instruction
head rests on the matching bracket, which then runs as the next
instruction.

Interpretation stops when the instruction head leaves the tape, when the
instruction budget is spent, or when a bracket scan runs off the tape
without finding its match.

The wiring decides which tape is fetched and read. With ISOLATED the
source is read-only and the output starts blank; with SELF_REFERENTIAL
all three cursors work on one tape that starts as a copy of the source,
so the program rewrites its own code as it runs.
"""

from typing import Optional

from ..core import Dialect, TapeWiring, ISOLATED, DEFAULT_MAX_INSTRUCTIONS
from ..tape import Alphabet, Op, Program, STANDARD


class BracketDialect(Dialect):
    """Bracket-loop interpreter, parameterised by tape wiring"""

    name = "bracket"

    def __init__(self, tape_length: int, wiring: TapeWiring = ISOLATED,
                 alphabet: Alphabet = STANDARD,
                 max_instructions: int = DEFAULT_MAX_INSTRUCTIONS,
                 name: Optional[str] = None):
        super().__init__(tape_length, alphabet, max_instructions)
        if alphabet.size < len(Op):
            raise ValueError(
                f"Bracket dialect needs {len(Op)} symbols, alphabet has {alphabet.size}"
            )
        self.wiring = wiring
        if name is not None:
            self.name = name

    def step(self, source: Program) -> Program:
        self.check_length(source)
        length = self.tape_length
        size = self.alphabet.size
        wiring = self.wiring

        if wiring.output_starts_as_copy:
            output = bytearray(source.tape)
        else:
            output = bytearray(length)  # NOP == 0
        code = output if wiring.fetch_from_output else source.tape
        data = output if wiring.read_from_output else source.tape

        read_head = 0
        write_head = 0
        ins_head = 0

        for _ in range(self.max_instructions):
            if ins_head >= length:
                break
            op = self.fetch(code, ins_head)

            if op == Op.READ_LEFT:
                read_head = (read_head - 1) % length
            elif op == Op.READ_RIGHT:
                read_head = (read_head + 1) % length
            elif op == Op.WRITE_LEFT:
                write_head = (write_head - 1) % length
            elif op == Op.WRITE_RIGHT:
                write_head = (write_head + 1) % length
            elif op == Op.JUMP_BACK:
                if data[read_head] != 0:
                    ins_head = self._scan_back(code, ins_head)
                    if ins_head is None:
                        break
                    continue
            elif op == Op.JUMP_AHEAD:
                if data[read_head] == 0:
                    ins_head = self._scan_ahead(code, ins_head)
                    if ins_head is None:
                        break
                    continue
            elif op == Op.SWAP:
                read_head, write_head = write_head, read_head
            elif op == Op.WRITE_INC:
                output[write_head] = (data[read_head] + 1) % size
            elif op == Op.WRITE_EQ:
                output[write_head] = data[read_head]
            elif op == Op.WRITE_DEC:
                output[write_head] = (data[read_head] - 1) % size

            ins_head += 1

        return source.successor(output)

    def _scan_back(self, code, start: int) -> Optional[int]:
        """Index of the 'r' matching the 'l' at start, or None if unmatched"""
        depth = 1
        pos = start
        while pos > 0:
            pos -= 1
            value = self.fetch(code, pos)
            if value == Op.JUMP_BACK:
                depth += 1
            elif value == Op.JUMP_AHEAD:
                depth -= 1
                if depth == 0:
                    return pos
        return None

    def _scan_ahead(self, code, start: int) -> Optional[int]:
        """Index of the 'l' matching the 'r' at start, or None if unmatched"""
        depth = 1
        pos = start
        last = self.tape_length - 1
        while pos < last:
            pos += 1
            value = self.fetch(code, pos)
            if value == Op.JUMP_AHEAD:
                depth += 1
            elif value == Op.JUMP_BACK:
                depth -= 1
                if depth == 0:
                    return pos
        return None
