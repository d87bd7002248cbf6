"""Instruction sequences with loose and strict sub-sequence matching."""

from __future__ import annotations

from typing import Iterable, Iterator, Sequence


class InstructionSequence:
    """An immutable, ordered list of instruction lines for one member.

    Patterns are lists of instruction prefixes: ``"BINOP +"`` matches
    ``"BINOP + %0 %1 -> %2"``.  A loose match lets other instructions sit
    between matched ones; a strict match requires the matched instructions
    to be contiguous.
    """

    def __init__(self, instructions: Iterable[str] = ()):
        self._instructions: tuple[str, ...] = tuple(i.strip() for i in instructions)

    @property
    def instructions(self) -> tuple[str, ...]:
        return self._instructions

    def __len__(self) -> int:
        return len(self._instructions)

    def __iter__(self) -> Iterator[str]:
        return iter(self._instructions)

    def __eq__(self, other) -> bool:
        if not isinstance(other, InstructionSequence):
            return NotImplemented
        return self._instructions == other._instructions

    def __hash__(self) -> int:
        return hash(self._instructions)

    def __repr__(self) -> str:
        return f"InstructionSequence({list(self._instructions)!r})"

    def __str__(self) -> str:
        return self.render()

    def has_sequence(
        self, pattern: Sequence[str], offset: int = 0, strict: bool = False
    ) -> bool:
        """Find a sub-sequence of instructions matching *pattern*.

        Args:
            pattern: Instruction prefixes to find, in order.
            offset: Index at which the search starts.
            strict: Whether matched instructions must be contiguous.

        Returns:
            True if *pattern* embeds in the instructions at or after *offset*.
        """
        return self._match(list(pattern), max(offset, 0), strict, anchored=False)

    def has_strict_sequence(
        self, pattern: Sequence[str], offset: int = 0, strict: bool = True
    ) -> bool:
        """Same as :meth:`has_sequence` but contiguous by default.

        The first element may match at or after *offset*; each later element
        must immediately follow its predecessor.
        """
        return self.has_sequence(pattern, offset, strict)

    def match_loose(self, pattern: Sequence[str], offset: int = 0) -> bool:
        return self.has_sequence(pattern, offset, strict=False)

    def match_strict(self, pattern: Sequence[str], offset: int = 0) -> bool:
        return self.has_sequence(pattern, offset, strict=True)

    def _match(self, pattern: list[str], offset: int, strict: bool, anchored: bool) -> bool:
        """Backtracking search for *pattern* from *offset*.

        *anchored* is False only for the first pattern element; in strict
        mode every later element must sit exactly at *offset*.
        """
        if not pattern:
            return True
        head, tail = pattern[0], pattern[1:]
        idx = self.index_of(head, offset)
        while idx != -1:
            if strict and anchored and idx != offset:
                return False
            if self._match(tail, idx + 1, strict, anchored=True):
                return True
            idx = self.index_of(head, idx + 1)
        return False

    def index_of(self, token: str, offset: int = 0) -> int:
        """Return the lowest index >= *offset* whose instruction starts with *token*, or -1."""
        for i in range(max(offset, 0), len(self._instructions)):
            if self._instructions[i].startswith(token):
                return i
        return -1

    def render(self) -> str:
        return "\n".join(self._instructions)

    def to_literal(self) -> str:
        """Render one ``'instruction',`` line per instruction, for pasting into a list literal."""
        return "".join(f"{inst!r},\n" for inst in self._instructions)
