"""Tree-sitter parsing layer and syntax-error detection."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ParserFactory(ABC):
    """Abstract factory for obtaining a language parser."""

    @abstractmethod
    def get_parser(self, language: str): ...


class TreeSitterParserFactory(ParserFactory):
    """Concrete factory that delegates to tree-sitter-language-pack.

    Raises ``ValueError`` for a language the pack does not know.
    """

    def get_parser(self, language: str):
        import tree_sitter_language_pack as tslp

        try:
            return tslp.get_parser(language)
        except LookupError as e:
            raise ValueError(f"No tree-sitter grammar for language: {language}") from e


class Parser:
    """Parses source text with a parser obtained from a factory."""

    def __init__(self, parser_factory: ParserFactory):
        self._factory = parser_factory

    def parse(self, source: str, language: str):
        return self._factory.get_parser(language).parse(source.encode("utf-8"))


def find_syntax_error(node):
    """Return the first ERROR or MISSING node under *node* in document order.

    Returns ``None`` for a clean tree.  Subtrees whose ``has_error`` flag is
    unset are skipped.
    """
    if node.type == "ERROR" or node.is_missing:
        return node
    if not node.has_error:
        return None
    return next(
        (
            found
            for child in node.children
            if (found := find_syntax_error(child)) is not None
        ),
        None,
    )
