"""Test harness for asserting on the instructions generated from source fragments."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .api import extract_sequence
from .compiler import CompilationError, SourceUnit, compile_source
from .ir import CompiledUnit
from .options import ExtractionOptions
from .sequence import InstructionSequence
from . import constants

logger = logging.getLogger(__name__)


class BytecodeHarness:
    """Compiles fragments and keeps the last extracted sequence for assertions.

    One harness per test; ``extraction_options`` selects the member that
    :meth:`assert_script` extracts and defaults to the ``<module>`` entry
    point.
    """

    def __init__(self, language: str = constants.DEFAULT_LANGUAGE):
        self.language = language
        self.extraction_options = ExtractionOptions()
        self.sequence: Optional[InstructionSequence] = None
        self.unit: Optional[CompiledUnit] = None

    def compile(
        self,
        source: str,
        options: ExtractionOptions | None = None,
        conversion_action: Callable[[SourceUnit], None] | None = None,
    ) -> InstructionSequence:
        """Compile *source* and return the selected member's instruction sequence.

        Raises:
            CompilationError: If *source* does not compile.
        """
        result = compile_source(
            source, conversion_action=conversion_action, language=self.language
        )
        self.unit = result.unit
        self.sequence = extract_sequence(result.class_bytes, options or ExtractionOptions())
        return self.sequence

    def assert_script(self, source: str, name: str = constants.DEFAULT_UNIT_NAME):
        """Execute *source*, then extract its sequence using ``extraction_options``.

        The script is run in a fresh namespace with ``exec``, the way a
        script-evaluating shell runs a test fragment; only Python scripts can
        be executed.  Exceptions raised by the script itself (including
        failed ``assert`` statements) propagate.  ``sequence`` and ``unit``
        are cleared first, so they stay ``None`` if the script cannot be
        compiled for extraction.
        """
        if self.language != "python":
            raise ValueError(f"Cannot execute scripts written in {self.language}")
        self.sequence = None
        self.unit = None
        namespace: dict = {"__name__": f"__{name}__"}
        try:
            exec(compile(source, f"<{name}>", "exec"), namespace)
        finally:
            try:
                result = compile_source(source, language=self.language, name=name)
                self.unit = result.unit
                self.sequence = extract_sequence(
                    result.class_bytes, self.extraction_options
                )
            except CompilationError as e:
                logger.debug("No sequence extracted from %s: %s", name, e)
