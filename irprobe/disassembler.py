"""Disassembler — renders serialized compiled units as a textual listing.

Listing layout::

    // unit script (python), 3 members
    <blank>
    // method, 4 instructions
    method <module>()
        CONST 1 -> %0
        ...
    end
    <blank>
    // field, 2 instructions
    field x in Point
        CONST 0 -> %5
        STORE_VAR x %5
    end

Structural lines (comments, member headers, ``end``) start in column 0;
instruction lines are indented.  Members appear in declaration order.
Backslashes and line breaks in operands (multi-line string constants) are
escaped, so every instruction occupies exactly one line.
"""

from __future__ import annotations

import logging

from .ir import CompiledUnit, IRInstruction, Member, MemberKind
from . import constants

logger = logging.getLogger(__name__)

INSTRUCTION_INDENT = "    "


def escape_operand_text(text: str) -> str:
    """Escape backslashes and line breaks so an instruction stays on one line."""
    return text.replace("\\", "\\\\").replace("\n", "\\n").replace("\r", "\\r")


def render_instruction(inst: IRInstruction, with_locations: bool = False) -> str:
    text = escape_operand_text(str(inst))
    if with_locations and not inst.source_location.is_unknown():
        return f"{text}  # {inst.source_location}"
    return text


def member_header(member: Member) -> str:
    if member.kind == MemberKind.METHOD:
        header = f"method {member.name}({', '.join(member.params)})"
    else:
        header = f"field {member.name}"
    if member.owner:
        header += f"{constants.LISTING_OWNER_SEPARATOR}{member.owner}"
    return header


def _render_member(member: Member, with_locations: bool) -> list[str]:
    count = len(member.instructions)
    noun = "instruction" if count == 1 else "instructions"
    lines = [
        f"{constants.LISTING_COMMENT} {member.kind.value}, {count} {noun}",
        member_header(member),
    ]
    lines.extend(
        f"{INSTRUCTION_INDENT}{render_instruction(inst, with_locations)}"
        for inst in member.instructions
    )
    lines.append(constants.LISTING_MEMBER_END)
    return lines


def render_unit(unit: CompiledUnit, with_locations: bool = False) -> str:
    lines = [
        f"{constants.LISTING_COMMENT} unit {unit.name} ({unit.language}),"
        f" {len(unit.members)} members"
    ]
    for member in unit.members:
        lines.append("")
        lines.extend(_render_member(member, with_locations))
    return "\n".join(lines) + "\n"


def disassemble(class_bytes: bytes, with_locations: bool = False) -> str:
    """Decode serialized unit bytes and return the full listing.

    Raises ``ValueError`` if *class_bytes* is not a serialized unit.
    """
    unit = CompiledUnit.from_bytes(class_bytes)
    logger.debug("Disassembling %s (%d members)", unit.name, len(unit.members))
    return render_unit(unit, with_locations)
