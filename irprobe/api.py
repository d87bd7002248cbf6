"""Composable API functions for the compile → disassemble → extract pipeline.

Each function corresponds to a CLI workflow but is callable programmatically
without argparse.
"""

from __future__ import annotations

import logging
from typing import Callable

from .compiler import SourceUnit, compile_source
from .disassembler import disassemble
from .member_filter import filter_member
from .options import ExtractionOptions
from .sequence import InstructionSequence
from . import constants

logger = logging.getLogger(__name__)


def extract_sequence(
    class_bytes: bytes, options: ExtractionOptions | None = None
) -> InstructionSequence:
    """Disassemble *class_bytes* and keep only the selected member's instructions.

    Args:
        class_bytes: Serialized compiled unit.
        options: Member selection; defaults to the ``<module>`` entry point.

    Returns:
        The member's instruction sequence, empty if no member matched.
    """
    options = options or ExtractionOptions()
    listing = disassemble(class_bytes)
    sequence = InstructionSequence(filter_member(listing, options))
    logger.debug(
        "Extracted %d instructions for %s %s",
        len(sequence),
        options.kind.value,
        options.name,
    )
    if options.print_on_extract:
        print(sequence)
    return sequence


def compile_sequence(
    source: str,
    options: ExtractionOptions | None = None,
    conversion_action: Callable[[SourceUnit], None] | None = None,
    language: str = constants.DEFAULT_LANGUAGE,
) -> InstructionSequence:
    """Compile *source* and extract the selected member's instruction sequence.

    Raises:
        CompilationError: If *source* does not compile.
    """
    result = compile_source(source, conversion_action=conversion_action, language=language)
    return extract_sequence(result.class_bytes, options)


def dump_listing(
    source: str,
    language: str = constants.DEFAULT_LANGUAGE,
    with_locations: bool = False,
) -> str:
    """Compile *source* and return the full disassembly listing."""
    result = compile_source(source, language=language)
    return disassemble(result.class_bytes, with_locations=with_locations)
