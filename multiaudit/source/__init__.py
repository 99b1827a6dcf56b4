"""Source model layer: parse once, share across agents."""

from multiaudit.source.model import (
    DECISION_CATEGORIES,
    SCOPE_CATEGORIES,
    ImportBinding,
    ImportStatement,
    LanguageAdapter,
    NodeCategory,
    SourceModel,
    SourceModelProvider,
    SourceNode,
    read_source,
    split_lines,
)
from multiaudit.source.python import PythonAdapter, PythonSourceProvider

__all__ = [
    "DECISION_CATEGORIES",
    "SCOPE_CATEGORIES",
    "ImportBinding",
    "ImportStatement",
    "LanguageAdapter",
    "NodeCategory",
    "PythonAdapter",
    "PythonSourceProvider",
    "SourceModel",
    "SourceModelProvider",
    "SourceNode",
    "read_source",
    "split_lines",
]
