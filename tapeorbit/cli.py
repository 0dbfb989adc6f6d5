"""
tapeorbit/cli.py - Command line interface

Usage:
    python -m tapeorbit.cli <command> [options]

Commands:
    search      Enumerate or sample seeds and collect orbit statistics
    replay      Re-run seeds from a file of rendered programs
    trace       Print the orbit of a single program
    status      Show a saved search state
    dialects    List available dialects

Examples:
    # First 100k enumerated programs on the canonical self-modifying dialect
    python -m tapeorbit.cli search --dialect bracket-self --trials 100000

    # Random 256-cell tapes, keeping seeds whose cycle is at least 100
    python -m tapeorbit.cli search --mode random --tape-length 256 --cycle-cutoff 100

    # Continue an enumeration where a saved state left off
    python -m tapeorbit.cli search --state run.pkl --resume --trials 1000000

    python -m tapeorbit.cli replay --file bracket_init_programs/cycle-70-3.txt
    python -m tapeorbit.cli trace "rw>p}l" --tape-length 16
"""

import argparse
import os
import sys

from .core import EngineError, OrbitTracker, DEFAULT_MAX_INSTRUCTIONS
from .dialects import DIALECTS, get_dialect
from .generator import FileSeeds
from .session import MODES, SearchConfig, SearchSession, SearchState
from .tape import MalformedProgramError, STANDARD


def _config_from_args(args, **overrides) -> SearchConfig:
    params = dict(
        trials=args.trials,
        budget=args.budget,
        tape_length=args.tape_length,
        dialect=args.dialect,
        cycle_cutoff=args.cycle_cutoff,
        tail_cutoff=args.tail_cutoff,
        min_count=args.min_count,
        record_cycle=args.record_cycle,
        record_tail=args.record_tail,
        max_exemplars=args.max_exemplars,
        max_instructions=args.max_instructions,
        capacity=args.capacity,
        out_dir=args.out,
        dump_orbits=not args.no_orbits,
        progress_every=args.progress_every,
        state_file=args.state,
    )
    params.update(overrides)
    return SearchConfig(**params)


def cmd_search(args):
    """Search over enumerated or random seeds"""
    config = _config_from_args(args, mode=args.mode, start=args.start, seed=args.seed)

    state = None
    if args.resume:
        if not args.state or not os.path.exists(args.state):
            print(f"Nothing to resume: state file {args.state!r} not found")
            return 1
        state = SearchState.load(args.state)
        print(f"Resuming {state.dialect}: {state.trials_done:,} trials done, "
              f"next index {state.next_index:,}")

    session = SearchSession(config, state=state)
    session.run()
    return 0


def cmd_replay(args):
    """Re-run seeds from a text file"""
    config = _config_from_args(args, trials=0, dump_ties=True)
    seeds = FileSeeds(args.file, STANDARD, args.tape_length)
    session = SearchSession(config)
    session.run(seeds)
    if seeds.rejected:
        print(f"\nRejected {len(seeds.rejected)} malformed line(s) in {args.file}")
    return 0


def cmd_trace(args):
    """Print one program's orbit"""
    tape_length = args.tape_length or len(args.program)
    try:
        seed = STANDARD.decode(args.program.ljust(tape_length, STANDARD.chars[0]),
                               tape_length)
    except MalformedProgramError as e:
        print(f"Invalid program: {e}")
        return 1

    dialect = get_dialect(args.dialect, tape_length, max_instructions=args.max_instructions)
    outcome = OrbitTracker(dialect, args.budget).run(seed)
    for program in outcome.orbit:
        print(f"{program.generation:>6}  {program.render()}")
    print(outcome.signature())
    return 0


def cmd_status(args):
    """Show a saved search state"""
    state = SearchState.load(args.state)
    print("=" * 60)
    print(f"SEARCH STATUS: {args.state}")
    print("=" * 60)
    print(state.summary())
    print()
    print(state.cycle_hist.summary())
    print(state.tail_hist.summary())
    return 0


def cmd_dialects(args):
    for name in sorted(DIALECTS):
        dialect = get_dialect(name, 8)
        print(f"  {name:<14} {type(dialect).__name__:<15} {dialect.wiring.describe()}")
    return 0


def _add_search_options(p):
    p.add_argument("--dialect", default="bracket", choices=sorted(DIALECTS),
                   help="Instruction-set dialect (default: bracket)")
    p.add_argument("--tape-length", type=int, default=64,
                   help="Cells per tape (default: 64)")
    p.add_argument("--budget", type=int, default=1024,
                   help="Transitions per orbit (default: 1024)")
    p.add_argument("--max-instructions", type=int, default=DEFAULT_MAX_INSTRUCTIONS,
                   help=f"Instructions per transition (default: {DEFAULT_MAX_INSTRUCTIONS})")
    p.add_argument("--capacity", type=int, default=None,
                   help="Visited table slots (default: budget + 1)")
    p.add_argument("--cycle-cutoff", type=int, default=66,
                   help="Keep seeds with cycle length >= this (default: 66)")
    p.add_argument("--tail-cutoff", type=int, default=200,
                   help="Keep seeds with tail length >= this (default: 200)")
    p.add_argument("--record-cycle", type=int, default=0,
                   help="Only write orbits whose cycle beats this (default: 0)")
    p.add_argument("--record-tail", type=int, default=1,
                   help="Only write orbits whose tail beats this (default: 1)")
    p.add_argument("--min-count", type=int, default=1,
                   help="Only dump buckets seen at least this often (default: 1)")
    p.add_argument("--max-exemplars", type=int, default=None,
                   help="Cap on kept seeds per bucket (default: unlimited)")
    p.add_argument("--out", default=".",
                   help="Output directory (default: .)")
    p.add_argument("--no-orbits", action="store_true",
                   help="Do not write record-setting orbits")
    p.add_argument("--progress-every", type=int, default=100_000,
                   help="Trials between progress reports (default: 100000)")
    p.add_argument("--state", default=None,
                   help="Pickle file for the search state")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="tapeorbit - orbits of self-modifying tape programs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  search    Enumerate or sample seeds
  replay    Re-run seeds from a file
  trace     Print one program's orbit
  status    Show a saved search state
  dialects  List dialects

Examples:
  python -m tapeorbit.cli search --dialect bracket-self --trials 100000
  python -m tapeorbit.cli trace "rw>p}l" --tape-length 16
"""
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # === SEARCH command ===
    search_parser = subparsers.add_parser("search", help="Search seeds")
    _add_search_options(search_parser)
    search_parser.add_argument("--trials", type=int, default=100_000_000,
                               help="Number of seeds to try (default: 100000000)")
    search_parser.add_argument("--mode", default="enumerate", choices=MODES,
                               help="Seed generator (default: enumerate)")
    search_parser.add_argument("--start", type=int, default=0,
                               help="First enumeration index (default: 0)")
    search_parser.add_argument("--seed", type=int, default=None,
                               help="RNG seed for random mode")
    search_parser.add_argument("--resume", action="store_true",
                               help="Continue from --state")

    # === REPLAY command ===
    replay_parser = subparsers.add_parser("replay", help="Re-run seeds from a file")
    _add_search_options(replay_parser)
    replay_parser.add_argument("--file", required=True,
                               help="File with one rendered program per line")
    replay_parser.set_defaults(trials=0)

    # === TRACE command ===
    trace_parser = subparsers.add_parser("trace", help="Print one orbit")
    trace_parser.add_argument("program", help="Rendered program (padded with 'o')")
    trace_parser.add_argument("--dialect", default="bracket", choices=sorted(DIALECTS))
    trace_parser.add_argument("--tape-length", type=int, default=None,
                              help="Cells per tape (default: program length)")
    trace_parser.add_argument("--budget", type=int, default=1024)
    trace_parser.add_argument("--max-instructions", type=int,
                              default=DEFAULT_MAX_INSTRUCTIONS)

    # === STATUS command ===
    status_parser = subparsers.add_parser("status", help="Show saved state")
    status_parser.add_argument("--state", required=True, help="State pickle file")

    # === DIALECTS command ===
    subparsers.add_parser("dialects", help="List dialects")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    commands = {
        "search": cmd_search,
        "replay": cmd_replay,
        "trace": cmd_trace,
        "status": cmd_status,
        "dialects": cmd_dialects,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 0

    try:
        return command(args)
    except EngineError as e:
        print(f"[FATAL] {e}")
        return 1
    except (OSError, ValueError) as e:
        print(f"[ERROR] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
