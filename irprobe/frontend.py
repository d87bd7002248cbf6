"""Frontend contract: AST → members of flattened IR."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .ir import Member


class Frontend(ABC):
    @abstractmethod
    def lower(self, tree, source: bytes) -> list[Member]:
        """Lower a parsed tree into members, in declaration order.

        The module body is always the first member.
        """
        ...


def get_frontend(language: str) -> Frontend:
    """Return a fresh frontend for *language*.

    Raises ``ValueError`` if *language* has no registered frontend.
    """
    from .frontends import get_deterministic_frontend

    return get_deterministic_frontend(language)
