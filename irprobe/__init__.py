"""Instruction-sequence assertions over compiled source fragments."""

from .api import (  # noqa: F401
    compile_sequence,
    dump_listing,
    extract_sequence,
)
from .compiler import CompilationError, CompilationUnit, Phase, compile_source  # noqa: F401
from .harness import BytecodeHarness  # noqa: F401
from .options import ExtractionOptions  # noqa: F401
from .sequence import InstructionSequence  # noqa: F401
