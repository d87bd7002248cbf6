"""Tests for the phased compiler pipeline."""

import pytest

from irprobe.compiler import (
    CompilationError,
    CompilationUnit,
    Phase,
    SourceUnit,
    compile_source,
)
from irprobe.ir import CompiledUnit, MemberKind

SIMPLE_SOURCE = "x = 1 + 2\n"
BROKEN_SOURCE = "def f(:\n    pass\n"


class TestCompileSource:
    def test_produces_serialized_unit(self):
        result = compile_source(SIMPLE_SOURCE)
        assert result.class_bytes.startswith(b"IRPB")
        assert isinstance(result.unit, CompiledUnit)
        assert result.unit.name == "script"
        assert result.unit.language == "python"

    def test_unit_matches_bytes(self):
        result = compile_source(SIMPLE_SOURCE)
        assert CompiledUnit.from_bytes(result.class_bytes) == result.unit

    def test_custom_name(self):
        result = compile_source(SIMPLE_SOURCE, name="Sample")
        assert result.unit.name == "Sample"

    def test_syntax_error(self):
        with pytest.raises(CompilationError) as exc_info:
            compile_source(BROKEN_SOURCE)
        assert exc_info.value.source_name == "script"
        assert exc_info.value.line == 1
        assert "script:1:" in str(exc_info.value)

    def test_unsupported_language(self):
        with pytest.raises(ValueError):
            compile_source(SIMPLE_SOURCE, language="cobol")

    def test_stop_before_output(self):
        result = compile_source(SIMPLE_SOURCE, phase=Phase.CLASS_GENERATION)
        assert result.class_bytes == b""
        assert result.unit is not None

    def test_stop_after_parsing(self):
        result = compile_source(SIMPLE_SOURCE, phase=Phase.PARSING)
        assert result.unit is None
        assert result.source.tree is not None


class TestConversionAction:
    def test_called_once_with_parsed_source(self):
        seen: list[SourceUnit] = []
        compile_source(SIMPLE_SOURCE, conversion_action=seen.append)
        assert len(seen) == 1
        assert seen[0].tree is not None
        assert seen[0].unit is None

    def test_rewrite_changes_generated_code(self):
        result = compile_source(
            SIMPLE_SOURCE, conversion_action=lambda su: su.rewrite("y = 3\n")
        )
        assert [m.name for m in result.unit.fields()] == ["y"]

    def test_rewrite_with_broken_source(self):
        with pytest.raises(CompilationError):
            compile_source(
                SIMPLE_SOURCE, conversion_action=lambda su: su.rewrite(BROKEN_SOURCE)
            )

    def test_not_called_when_stopping_at_conversion(self):
        seen: list[SourceUnit] = []
        compile_source(SIMPLE_SOURCE, phase=Phase.CONVERSION, conversion_action=seen.append)
        assert seen == []


class TestCompilationUnit:
    def test_phases_advance_incrementally(self):
        cu = CompilationUnit()
        su = cu.add_source("script", SIMPLE_SOURCE)
        cu.compile(Phase.PARSING)
        assert cu.phase == Phase.PARSING
        assert su.tree is not None
        assert su.unit is None
        cu.compile(Phase.CLASS_GENERATION)
        assert su.unit is not None
        assert cu.classes == []
        cu.compile()
        assert cu.phase == Phase.OUTPUT
        assert len(cu.classes) == 1

    def test_compiling_to_an_earlier_phase_is_a_no_op(self):
        cu = CompilationUnit()
        cu.add_source("script", SIMPLE_SOURCE)
        cu.compile()
        cu.compile(Phase.PARSING)
        assert cu.phase == Phase.OUTPUT

    def test_syntax_errors_surface_in_conversion(self):
        cu = CompilationUnit()
        cu.add_source("script", BROKEN_SOURCE)
        cu.compile(Phase.PARSING)
        with pytest.raises(CompilationError):
            cu.compile(Phase.CONVERSION)

    def test_multiple_sources(self):
        cu = CompilationUnit()
        cu.add_source("first", "a = 1\n")
        cu.add_source("second", "b = 2\n")
        cu.compile()
        assert [c.name for c in cu.classes] == ["first", "second"]
        second = cu.load_class("second")
        assert [m.name for m in second.members] == ["<module>", "b"]
        assert second.members[1].kind == MemberKind.FIELD

    def test_load_class_before_output(self):
        cu = CompilationUnit()
        cu.add_source("script", SIMPLE_SOURCE)
        cu.compile(Phase.CLASS_GENERATION)
        with pytest.raises(ValueError):
            cu.load_class("script")

    def test_load_unknown_class(self):
        cu = CompilationUnit()
        cu.add_source("script", SIMPLE_SOURCE)
        cu.compile()
        with pytest.raises(ValueError):
            cu.load_class("other")

    def test_add_source_after_compile_started(self):
        cu = CompilationUnit()
        cu.add_source("script", SIMPLE_SOURCE)
        cu.compile(Phase.PARSING)
        with pytest.raises(ValueError):
            cu.add_source("late", SIMPLE_SOURCE)

    def test_unsupported_language_fails_fast(self):
        with pytest.raises(ValueError):
            CompilationUnit(language="cobol")
