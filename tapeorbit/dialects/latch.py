"""
tapeorbit/dialects/latch.py - Direction-latch dialect

Here symbols do not act directly; they flip latches:

    < >   read head direction  (-1 / +1)
    { }   write head direction (-1 / +1)
    l r   instruction head direction (-1 / +1)
    p w m write offset (+1 / 0 / -1)
    s     swap read and write heads
    o     nothing

After every instruction, whatever it was, the read and write heads move
one cell along their latches (wrapping), the cell under the write head
receives (read symbol + offset) mod alphabet size, and the instruction
head moves one cell along its latch. Every instruction therefore writes,
and the program can reverse its own instruction stream.

By default instructions are fetched from the output tape (a copy of the
source) while data is read from the unmodified source.
"""

from typing import Optional

from ..core import Dialect, TapeWiring, FETCH_OUTPUT, DEFAULT_MAX_INSTRUCTIONS
from ..tape import Alphabet, Op, Program, STANDARD


class LatchDialect(Dialect):
    name = "latch"

    def __init__(self, tape_length: int, wiring: TapeWiring = FETCH_OUTPUT,
                 alphabet: Alphabet = STANDARD,
                 max_instructions: int = DEFAULT_MAX_INSTRUCTIONS,
                 name: Optional[str] = None):
        super().__init__(tape_length, alphabet, max_instructions)
        if alphabet.size < len(Op):
            raise ValueError(
                f"Latch dialect needs {len(Op)} symbols, alphabet has {alphabet.size}"
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
            output = bytearray(length)
        code = output if wiring.fetch_from_output else source.tape
        data = output if wiring.read_from_output else source.tape

        read_head = write_head = ins_head = 0
        read_dir = write_dir = ins_dir = 1
        offset = 0

        for _ in range(self.max_instructions):
            if not 0 <= ins_head < length:
                break
            op = self.fetch(code, ins_head)

            if op == Op.READ_LEFT:
                read_dir = -1
            elif op == Op.READ_RIGHT:
                read_dir = 1
            elif op == Op.WRITE_LEFT:
                write_dir = -1
            elif op == Op.WRITE_RIGHT:
                write_dir = 1
            elif op == Op.JUMP_BACK:
                ins_dir = -1
            elif op == Op.JUMP_AHEAD:
                ins_dir = 1
            elif op == Op.SWAP:
                read_head, write_head = write_head, read_head
            elif op == Op.WRITE_INC:
                offset = 1
            elif op == Op.WRITE_EQ:
                offset = 0
            elif op == Op.WRITE_DEC:
                offset = -1

            read_head = (read_head + read_dir) % length
            write_head = (write_head + write_dir) % length
            output[write_head] = (data[read_head] + offset) % size
            ins_head += ins_dir

        return source.successor(output)
