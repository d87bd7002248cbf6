"""Tests for InstructionSequence loose and strict sub-sequence matching."""

from itertools import combinations

import pytest

from irprobe.sequence import InstructionSequence

ARITHMETIC = [
    "CONST 1 -> %0",
    "CONST 2 -> %1",
    "BINOP + %0 %1 -> %2",
    "STORE_VAR x %2",
]

REPEATED_LOADS = ["LOAD a", "LOAD b", "ADD", "LOAD a", "STORE c"]


def _embeds(pattern, instructions, offset, strict):
    """Reference check: try every index combination explicitly."""
    if not pattern:
        return True
    start = max(offset, 0)
    for idxs in combinations(range(start, len(instructions)), len(pattern)):
        if not all(instructions[i].startswith(p) for i, p in zip(idxs, pattern)):
            continue
        if strict and any(b != a + 1 for a, b in zip(idxs, idxs[1:])):
            continue
        return True
    return False


class TestEmptyPattern:
    @pytest.mark.parametrize("offset", [0, 2, 4, 100])
    def test_empty_pattern_matches_loose_at_any_offset(self, offset):
        assert InstructionSequence(ARITHMETIC).has_sequence([], offset)

    @pytest.mark.parametrize("offset", [0, 2, 4, 100])
    def test_empty_pattern_matches_strict_at_any_offset(self, offset):
        assert InstructionSequence(ARITHMETIC).has_strict_sequence([], offset)

    def test_empty_pattern_matches_empty_sequence(self):
        seq = InstructionSequence([])
        assert seq.match_loose([])
        assert seq.match_strict([])


class TestEmptySequence:
    def test_non_empty_pattern_never_matches(self):
        seq = InstructionSequence()
        assert not seq.has_sequence(["CONST"])
        assert not seq.has_strict_sequence(["CONST"])
        assert seq.index_of("CONST") == -1


class TestLooseMatch:
    def test_contiguous_pattern(self):
        seq = InstructionSequence(ARITHMETIC)
        assert seq.has_sequence(["CONST 1", "CONST 2", "BINOP +"])

    def test_gaps_are_allowed(self):
        seq = InstructionSequence(ARITHMETIC)
        assert seq.has_sequence(["CONST 1", "STORE_VAR x"])

    def test_order_matters(self):
        seq = InstructionSequence(ARITHMETIC)
        assert not seq.has_sequence(["BINOP", "CONST 1"])

    def test_missing_instruction(self):
        seq = InstructionSequence(ARITHMETIC)
        assert not seq.has_sequence(["CONST 1", "RETURN"])

    def test_repeated_head_token(self):
        seq = InstructionSequence(REPEATED_LOADS)
        assert seq.has_sequence(["LOAD a", "STORE c"])

    def test_pattern_longer_than_sequence(self):
        seq = InstructionSequence(["CONST 1 -> %0"])
        assert not seq.has_sequence(["CONST", "CONST"])

    def test_offset_skips_earlier_instructions(self):
        seq = InstructionSequence(ARITHMETIC)
        assert seq.has_sequence(["CONST 2"], offset=1)
        assert not seq.has_sequence(["CONST 1"], offset=1)

    def test_offset_past_end(self):
        seq = InstructionSequence(ARITHMETIC)
        assert not seq.has_sequence(["CONST"], offset=10)

    def test_negative_offset_is_clamped(self):
        seq = InstructionSequence(ARITHMETIC)
        assert seq.has_sequence(["CONST 1"], offset=-3)

    def test_explicit_strict_override(self):
        seq = InstructionSequence(ARITHMETIC)
        assert not seq.has_sequence(["CONST 1", "STORE_VAR"], strict=True)


class TestStrictMatch:
    def test_contiguous_run(self):
        seq = InstructionSequence(ARITHMETIC)
        assert seq.has_strict_sequence(["CONST 1", "CONST 2", "BINOP +"])

    def test_gap_fails(self):
        seq = InstructionSequence(ARITHMETIC)
        assert not seq.has_strict_sequence(["CONST 1", "BINOP +"])

    def test_run_in_the_middle(self):
        seq = InstructionSequence(ARITHMETIC)
        assert seq.has_strict_sequence(["CONST 2", "BINOP +", "STORE_VAR"])

    def test_first_element_may_float(self):
        seq = InstructionSequence(["NOP", "NOP", "CONST 1 -> %0", "RETURN %0"])
        assert seq.has_strict_sequence(["CONST 1", "RETURN"])

    def test_first_element_may_float_from_non_zero_offset(self):
        seq = InstructionSequence(["X", "A", "B"])
        assert seq.has_strict_sequence(["B"], offset=1)
        assert seq.has_strict_sequence(["A", "B"], offset=1)

    def test_offset_excludes_earlier_run(self):
        seq = InstructionSequence(["A", "B", "C"])
        assert not seq.has_strict_sequence(["A", "B"], offset=1)

    def test_explicit_loose_override(self):
        seq = InstructionSequence(ARITHMETIC)
        assert seq.has_strict_sequence(["CONST 1", "STORE_VAR"], strict=False)


class TestBacktracking:
    def test_strict_dead_end_at_first_occurrence(self):
        # The first "LOAD a" is followed by ADD, only the second one is followed by STORE c
        seq = InstructionSequence(["LOAD a", "ADD", "LOAD a", "STORE c"])
        assert seq.has_strict_sequence(["LOAD a", "STORE c"])

    def test_strict_dead_end_after_partial_match(self):
        seq = InstructionSequence(["A", "B", "A", "B", "C"])
        assert seq.has_strict_sequence(["A", "B", "C"])

    def test_strict_backtracks_through_several_candidates(self):
        seq = InstructionSequence(["A", "X", "A", "B", "X", "A", "B", "C"])
        assert seq.has_strict_sequence(["A", "B", "C"])
        assert not seq.has_strict_sequence(["A", "B", "X", "C"])

    def test_loose_with_repeated_tokens(self):
        seq = InstructionSequence(REPEATED_LOADS)
        assert seq.has_sequence(["LOAD a", "LOAD a", "STORE c"])
        assert not seq.has_sequence(["LOAD a", "LOAD a", "LOAD a"])


class TestPrefixSemantics:
    def test_prefix_matches(self):
        seq = InstructionSequence(["LOAD a"])
        assert seq.has_sequence(["LOAD"])

    def test_substring_does_not_match(self):
        seq = InstructionSequence(["STORELOAD"])
        assert not seq.has_sequence(["LOAD"])

    def test_longer_token_does_not_match(self):
        seq = InstructionSequence(["LOAD"])
        assert not seq.has_sequence(["LOAD a"])

    def test_index_of(self):
        seq = InstructionSequence(REPEATED_LOADS)
        assert seq.index_of("LOAD a") == 0
        assert seq.index_of("LOAD a", 1) == 3
        assert seq.index_of("LOAD a", 4) == -1
        assert seq.index_of("STORE") == 4


CASES = [
    (REPEATED_LOADS, ["LOAD a", "STORE c"]),
    (REPEATED_LOADS, ["LOAD b", "ADD", "LOAD a"]),
    (REPEATED_LOADS, ["ADD", "LOAD b"]),
    (REPEATED_LOADS, ["LOAD", "LOAD", "LOAD", "STORE"]),
    (["A", "B", "A", "B", "C"], ["A", "B", "C"]),
    (["A", "B", "A", "B", "C"], ["A", "C"]),
    (["A", "B", "A", "B", "C"], ["B", "A", "C"]),
    (ARITHMETIC, ["CONST", "BINOP", "STORE_VAR"]),
]


class TestAgainstReference:
    @pytest.mark.parametrize("instructions,pattern", CASES)
    @pytest.mark.parametrize("offset", [0, 1, 2])
    def test_modes_agree_with_exhaustive_search(self, instructions, pattern, offset):
        seq = InstructionSequence(instructions)
        assert seq.has_sequence(pattern, offset) == _embeds(pattern, instructions, offset, False)
        assert seq.has_strict_sequence(pattern, offset) == _embeds(
            pattern, instructions, offset, True
        )

    @pytest.mark.parametrize("instructions,pattern", CASES)
    def test_strict_implies_loose(self, instructions, pattern):
        seq = InstructionSequence(instructions)
        if seq.match_strict(pattern):
            assert seq.match_loose(pattern)

    def test_loose_does_not_imply_strict(self):
        seq = InstructionSequence(REPEATED_LOADS)
        assert seq.match_loose(["LOAD b", "STORE c"])
        assert not seq.match_strict(["LOAD b", "STORE c"])


class TestRendering:
    def test_instructions_are_trimmed(self):
        seq = InstructionSequence(["  CONST 1 -> %0  ", "\tRETURN %0\n"])
        assert seq.instructions == ("CONST 1 -> %0", "RETURN %0")

    def test_render_joins_with_newlines(self):
        seq = InstructionSequence(["CONST 1 -> %0", "RETURN %0"])
        assert seq.render() == "CONST 1 -> %0\nRETURN %0"
        assert str(seq) == seq.render()

    def test_to_literal(self):
        seq = InstructionSequence(["CONST 1 -> %0", "RETURN %0"])
        assert seq.to_literal() == "'CONST 1 -> %0',\n'RETURN %0',\n"

    def test_to_literal_is_valid_list_body(self):
        seq = InstructionSequence(["CONST 'hi' -> %0", "RETURN %0"])
        assert eval("[" + seq.to_literal() + "]") == list(seq)

    def test_empty_sequence_renders_empty(self):
        seq = InstructionSequence()
        assert seq.render() == ""
        assert seq.to_literal() == ""
        assert len(seq) == 0

    def test_equality(self):
        assert InstructionSequence(["A"]) == InstructionSequence([" A "])
        assert InstructionSequence(["A"]) != InstructionSequence(["B"])
