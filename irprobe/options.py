"""Extraction configuration (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass

from .ir import MemberKind
from . import constants


@dataclass(frozen=True)
class ExtractionOptions:
    """Selects the member whose instructions are extracted.

    At most one of ``target_method`` / ``target_field`` may be set; with
    neither, the module entry point ``<module>`` is selected.
    """

    target_method: str | None = None
    target_field: str | None = None
    print_on_extract: bool = False

    def __post_init__(self):
        if self.target_method is not None and self.target_field is not None:
            raise ValueError("Set either target_method or target_field, not both")

    @classmethod
    def for_method(cls, name: str, print_on_extract: bool = False) -> ExtractionOptions:
        return cls(target_method=name, print_on_extract=print_on_extract)

    @classmethod
    def for_field(cls, name: str, print_on_extract: bool = False) -> ExtractionOptions:
        return cls(target_field=name, print_on_extract=print_on_extract)

    @property
    def kind(self) -> MemberKind:
        return MemberKind.FIELD if self.target_field is not None else MemberKind.METHOD

    @property
    def name(self) -> str:
        if self.target_field is not None:
            return self.target_field
        return self.target_method if self.target_method is not None else constants.ENTRY_METHOD_NAME

    def selects(self, name: str, kind: MemberKind) -> bool:
        return kind == self.kind and name == self.name
