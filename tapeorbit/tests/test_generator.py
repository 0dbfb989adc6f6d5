"""
test_generator.py - Enumeration codec, random programs, seed sources
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

import tempfile

import numpy as np

from tapeorbit.generator import (
    EnumeratedSeeds, FileSeeds, RandomSeeds,
    decode_index, encode_sequence, enumerated_program, random_program, tier_bounds,
)
from tapeorbit.tape import STANDARD


def test_first_indices():
    assert decode_index(0, 11) == [1]
    assert decode_index(9, 11) == [10]
    assert decode_index(10, 11) == [1, 1]
    assert decode_index(11, 11) == [2, 1]    # least significant digit first
    assert decode_index(20, 11) == [1, 2]
    assert decode_index(109, 11) == [10, 10]
    assert decode_index(110, 11) == [1, 1, 1]
    print("[PASS] first indices")


def test_tier_bounds():
    assert tier_bounds(1, 11) == (0, 10)
    assert tier_bounds(2, 11) == (10, 110)
    assert tier_bounds(3, 11) == (110, 1110)
    print("[PASS] tier bounds")


def test_enumeration_is_a_bijection():
    for size in (3, 8, 11):
        r = size - 1
        end = r + r ** 2 + r ** 3
        seen = set()
        for n in range(end):
            seq = decode_index(n, size)
            assert encode_sequence(seq, size) == n
            assert all(1 <= s <= r for s in seq)
            seen.add(tuple(seq))
        assert len(seen) == end
    print("[PASS] decode/encode bijection")


def test_shorter_sequences_come_first():
    lengths = [len(decode_index(n, 11)) for n in range(1110)]
    assert lengths == sorted(lengths)
    print("[PASS] length ordering")


def test_encode_rejects_invalid_sequences():
    for bad in ([], [0], [11], [1, 0]):
        try:
            encode_sequence(bad, 11)
        except ValueError:
            continue
        raise AssertionError(f"{bad} should not encode")
    try:
        decode_index(-1, 11)
    except ValueError:
        pass
    else:
        raise AssertionError("negative index should be rejected")
    print("[PASS] invalid codec input")


def test_enumerated_program_is_left_placed():
    prog = enumerated_program(10, 8, 11)
    assert prog.tape == bytes([1, 1, 0, 0, 0, 0, 0, 0])
    assert prog.generation == 0
    assert prog.render() == "<<oooooo"
    try:
        enumerated_program(10, 1, 11)
    except ValueError:
        pass
    else:
        raise AssertionError("two symbols do not fit one cell")
    print("[PASS] enumerated program layout")


def test_random_program_is_reproducible():
    a = random_program(np.random.default_rng(42), 256, 11)
    b = random_program(np.random.default_rng(42), 256, 11)
    assert a == b
    assert len(a) == 256
    assert max(a.tape) < 11
    assert a.generation == 0
    # 256 uniform draws over 11 symbols use more than one symbol
    assert len(set(a.tape)) > 1
    print("[PASS] random programs")


def test_seed_sources():
    enumerated = list(EnumeratedSeeds(5, 3, 8, 11))
    assert [label for label, _ in enumerated] == ["#5", "#6", "#7"]
    assert enumerated[0][1] == enumerated_program(5, 8, 11)

    first = [p for _, p in RandomSeeds(5, 16, 11, seed=3)]
    second = [p for _, p in RandomSeeds(5, 16, 11, seed=3)]
    assert first == second
    assert len(RandomSeeds(5, 16, 11)) == 5
    print("[PASS] seed sources")


def test_file_seeds_skip_malformed_lines():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "seeds.txt")
        with open(path, "wb") as f:
            f.write(b"wooooooo\n")          # 1 ok
            f.write(b"woo\n")               # 2 too short
            f.write(b"wooxoooo\n")          # 3 unknown character
            f.write(b"\n")                  # 4 blank, ignored
            f.write(b"pooooooo\n")          # 5 ok
            f.write(b"wo\xff\xfeoooo\n")    # 6 not UTF-8
            f.write(b"mooooooo\r\n")        # 7 ok, CRLF

        source = FileSeeds(path, STANDARD, 8, verbose=False)
        seeds = list(source)
        assert [p.render() for _, p in seeds] == ["wooooooo", "pooooooo", "mooooooo"]
        assert seeds[1][0].endswith(":5")
        assert seeds[2][0].endswith(":7")
        assert [line for line, _ in source.rejected] == [2, 3, 6]
        assert "0xff" in source.rejected[2][1]
    print("[PASS] malformed seeds skipped")


def run_all_tests():
    print("\n" + "=" * 60)
    print("GENERATOR TESTS")
    print("=" * 60)
    tests = [
        test_first_indices,
        test_tier_bounds,
        test_enumeration_is_a_bijection,
        test_shorter_sequences_come_first,
        test_encode_rejects_invalid_sequences,
        test_enumerated_program_is_left_placed,
        test_random_program_is_reproducible,
        test_seed_sources,
        test_file_seeds_skip_malformed_lines,
    ]
    for test in tests:
        test()
    print(f"\n[SUCCESS] {len(tests)} generator tests passed")


if __name__ == "__main__":
    run_all_tests()
