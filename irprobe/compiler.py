"""Compiler — phased pipeline from source text to serialized compiled units.

Phases run in order (PARSING → CONVERSION → CLASS_GENERATION → OUTPUT).
``CompilationUnit.compile(phase)`` advances every source up to *phase*;
calling it again later resumes from where the previous call stopped, which
lets a caller inspect or rewrite sources between CONVERSION and
CLASS_GENERATION.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Optional

from .frontend import get_frontend
from .ir import CompiledUnit
from .parser import Parser, ParserFactory, TreeSitterParserFactory, find_syntax_error
from . import constants

logger = logging.getLogger(__name__)


class Phase(IntEnum):
    INITIALIZATION = 0
    PARSING = 1
    CONVERSION = 2
    CLASS_GENERATION = 3
    OUTPUT = 4


class CompilationError(Exception):
    """Source text failed to compile."""

    def __init__(self, message: str, source_name: str = "", line: int = 0, column: int = 0):
        self.source_name = source_name
        self.line = line
        self.column = column
        where = f"{source_name}:{line}:{column}: " if source_name else ""
        super().__init__(f"{where}{message}")


@dataclass
class SourceUnit:
    """One named source text and the artifacts produced from it so far."""

    name: str
    text: str
    tree: object = None
    unit: Optional[CompiledUnit] = None
    _parser: Optional[Parser] = field(default=None, repr=False)
    _language: str = field(default=constants.DEFAULT_LANGUAGE, repr=False)

    def parse(self):
        self.tree = self._parser.parse(self.text, self._language)
        return self.tree

    def check_syntax(self):
        """Raise ``CompilationError`` at the first syntax error in the tree."""
        bad = find_syntax_error(self.tree.root_node)
        if bad is None:
            return
        line, column = bad.start_point[0] + 1, bad.start_point[1]
        kind = f"missing {bad.type}" if bad.is_missing else "syntax error"
        raise CompilationError(kind, source_name=self.name, line=line, column=column)

    def rewrite(self, text: str):
        """Replace the source text; the new text is parsed and checked immediately."""
        logger.debug("Rewriting source unit %s", self.name)
        self.text = text
        self.parse()
        self.check_syntax()


@dataclass(frozen=True)
class GeneratedClass:
    name: str
    class_bytes: bytes


class CompilationUnit:
    """Drives a set of sources through the compilation phases."""

    def __init__(
        self,
        language: str = constants.DEFAULT_LANGUAGE,
        parser_factory: ParserFactory | None = None,
    ):
        self.language = language
        self.phase = Phase.INITIALIZATION
        self.classes: list[GeneratedClass] = []
        self._parser = Parser(parser_factory or TreeSitterParserFactory())
        self._sources: list[SourceUnit] = []
        # Fail fast on unsupported languages, before any source is parsed
        get_frontend(language)

    @property
    def sources(self) -> list[SourceUnit]:
        return list(self._sources)

    def add_source(self, name: str, text: str) -> SourceUnit:
        if self.phase > Phase.INITIALIZATION:
            raise ValueError("Cannot add sources after compilation has started")
        su = SourceUnit(name=name, text=text, _parser=self._parser, _language=self.language)
        self._sources.append(su)
        return su

    def compile(self, phase: Phase = Phase.OUTPUT):
        """Advance every source through each phase after the current one, up to *phase*."""
        steps: dict[Phase, Callable[[], None]] = {
            Phase.PARSING: self._parse,
            Phase.CONVERSION: self._convert,
            Phase.CLASS_GENERATION: self._generate,
            Phase.OUTPUT: self._output,
        }
        for step in Phase:
            if self.phase < step <= phase:
                logger.debug("Compilation phase %s", step.name)
                steps[step]()
                self.phase = step

    def load_class(self, name: str) -> CompiledUnit:
        """Load a generated class by name from its serialized bytes."""
        if self.phase < Phase.OUTPUT:
            raise ValueError("No classes generated yet; compile to Phase.OUTPUT first")
        generated = next((c for c in self.classes if c.name == name), None)
        if generated is None:
            raise ValueError(f"No generated class named {name!r}")
        return CompiledUnit.from_bytes(generated.class_bytes)

    # ── phases ───────────────────────────────────────────────────

    def _parse(self):
        for su in self._sources:
            su.parse()

    def _convert(self):
        for su in self._sources:
            su.check_syntax()

    def _generate(self):
        for su in self._sources:
            frontend = get_frontend(self.language)
            members = frontend.lower(su.tree, su.text.encode("utf-8"))
            su.unit = CompiledUnit(name=su.name, language=self.language, members=members)
            logger.info("Generated %s with %d members", su.name, len(members))

    def _output(self):
        self.classes = [
            GeneratedClass(name=su.name, class_bytes=su.unit.to_bytes())
            for su in self._sources
        ]


@dataclass(frozen=True)
class CompilationResult:
    """What a single-source compilation produced up to its target phase.

    ``class_bytes`` is empty below OUTPUT; ``unit`` is None below
    CLASS_GENERATION.
    """

    source: SourceUnit
    class_bytes: bytes = b""
    unit: Optional[CompiledUnit] = None


def compile_source(
    text: str,
    phase: Phase = Phase.OUTPUT,
    conversion_action: Callable[[SourceUnit], None] | None = None,
    language: str = constants.DEFAULT_LANGUAGE,
    name: str = constants.DEFAULT_UNIT_NAME,
) -> CompilationResult:
    """Compile *text* up to *phase*.

    *conversion_action*, if given, is called once with the ``SourceUnit``
    after CONVERSION and before CLASS_GENERATION; it is not called when
    *phase* stops at or before CONVERSION.

    Raises:
        CompilationError: If the source has syntax errors.
        ValueError: If *language* has no frontend.
    """
    logger.info("Compiling %s (%s) to %s", name, language, phase.name)
    cu = CompilationUnit(language=language)
    su = cu.add_source(name, text)
    cu.compile(min(phase, Phase.CONVERSION))
    if conversion_action is not None and phase > Phase.CONVERSION:
        conversion_action(su)
    cu.compile(phase)
    if phase < Phase.OUTPUT:
        return CompilationResult(source=su, unit=su.unit)
    generated = cu.classes[0]
    return CompilationResult(
        source=su,
        class_bytes=generated.class_bytes,
        unit=cu.load_class(generated.name),
    )
