"""
tapeorbit/dialects - Instruction-set variants

Each dialect implements Dialect.step from tapeorbit.core:

- bracket:      bracket loops, code and data read from the untouched source,
                output starts blank
- bracket-self: bracket loops on a single tape that is both code and data
                and is rewritten while it runs
- latch:        direction latches, every instruction writes; code fetched
                from the tape under construction, data read from the source

Dialects are selected by name once at startup.
"""

from typing import Callable, Dict

from ..core import Dialect, ISOLATED, SELF_REFERENTIAL, FETCH_OUTPUT, DEFAULT_MAX_INSTRUCTIONS
from .bracket import BracketDialect
from .latch import LatchDialect


DIALECTS: Dict[str, Callable[..., Dialect]] = {
    "bracket": lambda length, **kw: BracketDialect(length, ISOLATED, name="bracket", **kw),
    "bracket-self": lambda length, **kw: BracketDialect(length, SELF_REFERENTIAL,
                                                        name="bracket-self", **kw),
    "latch": lambda length, **kw: LatchDialect(length, FETCH_OUTPUT, name="latch", **kw),
}


def get_dialect(name: str, tape_length: int,
                max_instructions: int = DEFAULT_MAX_INSTRUCTIONS) -> Dialect:
    """Build a registered dialect for the given tape length"""
    try:
        factory = DIALECTS[name]
    except KeyError:
        raise KeyError(
            f"Unknown dialect {name!r}. Available: {', '.join(sorted(DIALECTS))}"
        ) from None
    return factory(tape_length, max_instructions=max_instructions)


__all__ = [
    "BracketDialect",
    "LatchDialect",
    "DIALECTS",
    "get_dialect",
]
