"""IR Design — flattened three-address code grouped into class members."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ValidationError

from . import constants


class Opcode(str, Enum):
    # Value producers
    CONST = "CONST"
    LOAD_VAR = "LOAD_VAR"
    LOAD_FIELD = "LOAD_FIELD"
    LOAD_INDEX = "LOAD_INDEX"
    NEW_OBJECT = "NEW_OBJECT"
    NEW_ARRAY = "NEW_ARRAY"
    BINOP = "BINOP"
    UNOP = "UNOP"
    CALL_FUNCTION = "CALL_FUNCTION"
    CALL_METHOD = "CALL_METHOD"
    CALL_UNKNOWN = "CALL_UNKNOWN"
    # Value consumers / control flow
    STORE_VAR = "STORE_VAR"
    STORE_FIELD = "STORE_FIELD"
    STORE_INDEX = "STORE_INDEX"
    BRANCH_IF = "BRANCH_IF"
    BRANCH = "BRANCH"
    RETURN = "RETURN"
    THROW = "THROW"
    # Special
    SYMBOLIC = "SYMBOLIC"
    # Labels (pseudo-instruction)
    LABEL = "LABEL"


class SourceLocation(BaseModel):
    """Structured source span from tree-sitter AST nodes."""

    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def is_unknown(self) -> bool:
        return (
            self.start_line == 0
            and self.start_col == 0
            and self.end_line == 0
            and self.end_col == 0
        )

    def __str__(self) -> str:
        if self.is_unknown():
            return "<unknown>"
        return f"{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


NO_SOURCE_LOCATION = SourceLocation(start_line=0, start_col=0, end_line=0, end_col=0)


class IRInstruction(BaseModel):
    opcode: Opcode
    result_reg: str | None = None
    operands: list[Any] = []
    label: str | None = None  # for LABEL / branch targets
    source_location: SourceLocation = NO_SOURCE_LOCATION

    def __str__(self) -> str:
        """Mnemonic-first text form, e.g. ``BINOP + %0 %1 -> %2``."""
        if self.opcode == Opcode.LABEL:
            return f"LABEL {self.label}"
        parts: list[str] = [self.opcode.value]
        parts.extend(str(op) for op in self.operands)
        if self.label:
            parts.append(self.label)
        if self.result_reg:
            parts.append(f"-> {self.result_reg}")
        return " ".join(parts)


class MemberKind(str, Enum):
    METHOD = "method"
    FIELD = "field"


class Member(BaseModel):
    """One named method or field initializer of a compiled unit."""

    name: str
    kind: MemberKind
    owner: str = ""
    params: list[str] = []
    instructions: list[IRInstruction] = []


class CompiledUnit(BaseModel):
    """The class-like result of compiling one source unit."""

    name: str
    language: str = constants.DEFAULT_LANGUAGE
    members: list[Member] = []

    def methods(self) -> list[Member]:
        return [m for m in self.members if m.kind == MemberKind.METHOD]

    def fields(self) -> list[Member]:
        return [m for m in self.members if m.kind == MemberKind.FIELD]

    def find_members(self, name: str, kind: MemberKind) -> list[Member]:
        return [m for m in self.members if m.name == name and m.kind == kind]

    def to_bytes(self) -> bytes:
        return constants.UNIT_MAGIC + self.model_dump_json().encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> CompiledUnit:
        """Load a unit previously produced by :meth:`to_bytes`.

        Raises ``ValueError`` if *data* is not a serialized unit.
        """
        if not data.startswith(constants.UNIT_MAGIC):
            raise ValueError("Not a compiled unit: missing magic header")
        try:
            return cls.model_validate_json(data[len(constants.UNIT_MAGIC) :])
        except ValidationError as e:
            raise ValueError(f"Corrupt compiled unit: {e}") from e
