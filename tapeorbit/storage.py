"""
tapeorbit/storage.py - Writing discovered programs to disk

Two kinds of output, both plain text with one rendered program per line:

    <out>/<dialect>_programs/<cycle>-<tail>.txt
        a whole orbit, in generation order (seed first)
    <out>/<dialect>_init_programs/<kind>-<key>-<count>.txt
        the exemplar seeds of one histogram bucket

Orbit file names get a _N suffix when taken, so repeated finds with the
same numbers never overwrite each other.

A failed write is printed and skipped. Persistence is an observer of the
search and never stops it.
"""

from pathlib import Path
from typing import List, Optional

from .core import OrbitOutcome
from .histogram import Histogram
from .tape import Alphabet, STANDARD


MAX_DISCRIMINATOR = 1000


def orbit_dir(out_dir, dialect_name: str) -> Path:
    return Path(out_dir) / f"{dialect_name}_programs"


def exemplar_dir(out_dir, dialect_name: str) -> Path:
    return Path(out_dir) / f"{dialect_name}_init_programs"


def write_orbit(out_dir, dialect_name: str, outcome: OrbitOutcome,
                alphabet: Alphabet = STANDARD) -> Optional[Path]:
    """Write every program of an orbit to a fresh file. Returns its path."""
    directory = orbit_dir(out_dir, dialect_name)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"  [ERROR] Could not create directory {directory}: {e}")
        return None

    programs = sorted(outcome.orbit, key=lambda p: p.generation)
    stem = f"{outcome.cycle_length}-{outcome.tail_length}"

    for discriminator in range(MAX_DISCRIMINATOR):
        name = f"{stem}.txt" if discriminator == 0 else f"{stem}_{discriminator}.txt"
        path = directory / name
        try:
            with open(path, 'x') as f:
                for program in programs:
                    f.write(alphabet.encode(program))
                    f.write("\n")
            return path
        except FileExistsError:
            continue
        except OSError as e:
            print(f"  [ERROR] Could not write {path}: {e}")
            return None

    print(f"  [ERROR] No free file name for {stem} in {directory}")
    return None


def dump_histogram(hist: Histogram, cutoff: int, out_dir, dialect_name: str,
                   alphabet: Alphabet = STANDARD, min_count: int = 1) -> List[Path]:
    """Write one file per bucket with key >= cutoff and count >= min_count"""
    directory = exemplar_dir(out_dir, dialect_name)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"  [ERROR] Could not create directory {directory}: {e}")
        return []

    written = []
    for bucket in hist.buckets():
        if bucket.key < cutoff or bucket.count < min_count:
            continue
        path = directory / f"{hist.kind.value}-{bucket.key}-{bucket.count}.txt"
        try:
            with open(path, 'w') as f:
                for program in bucket.exemplars:
                    f.write(alphabet.encode(program))
                    f.write("\n")
        except OSError as e:
            print(f"  [ERROR] Could not write {path}: {e}")
            continue
        written.append(path)
    return written


def read_programs(path) -> List[str]:
    """Raw program lines of an orbit or exemplar file"""
    with open(path, 'r') as f:
        return [line.rstrip("\r\n") for line in f if line.strip()]
