"""Import classification shared by the consistency agent and the fixer.

Both sides derive "correct" import order from the same functions, so a
file rewritten by the fixer passes re-analysis.
"""

import sys
from enum import IntEnum
from pathlib import Path

from multiaudit.source.model import ImportBinding, ImportStatement, SourceModel, split_lines


class ImportSection(IntEnum):
    """Import groups in the order they should appear."""

    FUTURE = 0
    STDLIB = 1
    THIRD_PARTY = 2
    FIRST_PARTY = 3
    LOCAL = 4


def classify(statement: ImportStatement, first_party: frozenset[str] = frozenset()) -> ImportSection:
    if statement.is_future:
        return ImportSection.FUTURE
    if statement.level > 0:
        return ImportSection.LOCAL
    package = statement.top_level_package
    if package in first_party:
        return ImportSection.FIRST_PARTY
    if package in sys.stdlib_module_names:
        return ImportSection.STDLIB
    return ImportSection.THIRD_PARTY


def sort_key(statement: ImportStatement, first_party: frozenset[str] = frozenset()) -> tuple:
    """Section, then plain imports before from-imports, then module name."""
    return (
        classify(statement, first_party),
        0 if statement.kind == "import" else 1,
        statement.module_key.lower(),
        statement.text,
    )


def is_sorted(statements: list[ImportStatement], first_party: frozenset[str] = frozenset()) -> bool:
    keys = [sort_key(s, first_party) for s in statements]
    return keys == sorted(keys)


def render_block(statements: list[ImportStatement], first_party: frozenset[str] = frozenset()) -> list[str]:
    """Render statements sorted, with a blank line between sections."""
    lines: list[str] = []
    previous: ImportSection | None = None
    for statement in sorted(statements, key=lambda s: sort_key(s, first_party)):
        section = classify(statement, first_party)
        if previous is not None and section != previous:
            lines.append("")
        lines.extend(split_lines(statement.text))
        previous = section
    return lines


def is_package_init(model: SourceModel) -> bool:
    return Path(model.path).name == "__init__.py"


def unused_bindings(model: SourceModel) -> list[tuple[ImportStatement, list[ImportBinding]]]:
    """Module-level import bindings never referenced in the file.

    ``__init__.py`` files are skipped since their imports are usually
    re-exports, as are ``__future__`` imports, wildcard imports and the
    ``import x as x`` re-export idiom.
    """
    if is_package_init(model):
        return []

    used = model.used_names
    result = []
    for statement in model.imports:
        if statement.is_future or statement.wildcard:
            continue
        unused = [
            binding
            for binding in statement.bindings
            if binding.alias != binding.name and binding.bound_name not in used
        ]
        if unused:
            result.append((statement, unused))
    return result


def duplicate_statements(model: SourceModel) -> list[tuple[ImportStatement, ImportStatement]]:
    """Pairs of (first, repeat) for statements importing from the same module."""
    seen: dict[tuple[str, str], ImportStatement] = {}
    duplicates = []
    for statement in model.imports:
        if statement.kind == "import":
            keys = [("import", b.render()) for b in statement.bindings]
        else:
            keys = [("from", statement.module_key)]
        for key in keys:
            if key in seen:
                duplicates.append((seen[key], statement))
                break
            seen[key] = statement
    return duplicates
