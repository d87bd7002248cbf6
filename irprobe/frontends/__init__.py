"""Deterministic tree-sitter frontends."""

from __future__ import annotations

import importlib

from ._base import BaseFrontend

# Frontend modules are imported on first use
_FRONTEND_CLASSES: dict[str, str] = {
    "python": "python.PythonFrontend",
}


def get_deterministic_frontend(language: str) -> BaseFrontend:
    """Instantiate the deterministic frontend for *language*.

    Raises ``ValueError`` if *language* has no registered frontend.
    """
    spec = _FRONTEND_CLASSES.get(language)
    if spec is None:
        raise ValueError(f"Unsupported language for deterministic frontend: {language}")
    module_name, class_name = spec.split(".")
    mod = importlib.import_module(f".{module_name}", package=__package__)
    cls = getattr(mod, class_name)
    return cls()


SUPPORTED_LANGUAGES: tuple[str, ...] = tuple(_FRONTEND_CLASSES.keys())

__all__ = [
    "BaseFrontend",
    "get_deterministic_frontend",
    "SUPPORTED_LANGUAGES",
]
