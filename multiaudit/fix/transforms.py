"""Pure source rewrites used by the AutoFixer.

Every transform takes a freshly parsed SourceModel plus the issue's line
and returns ``None`` when there is nothing left to do (already fixed) or
the complete new file content. Rewrites that cannot be done without
risking code or comments raise UnsafeFixError.
"""

import difflib
import re

from multiaudit.agents.code_quality import is_bare_handler
from multiaudit.errors import UnsafeFixError
from multiaudit.source import NodeCategory, SourceModel, split_lines
from multiaudit.source.imports import duplicate_statements, is_sorted, render_block, unused_bindings
from multiaudit.source.model import ImportStatement

_EQ_NONE = re.compile(r"\s*==\s*None\b")
_NE_NONE = re.compile(r"\s*!=\s*None\b")
_NONE_LEFT = re.compile(r"\bNone\s*(==|!=)")
_BARE_EXCEPT = re.compile(r"\bexcept\s*:")


def replace_lines(content: str, start: int, end: int, new_lines: list[str]) -> str:
    """Replace 1-based inclusive lines ``start..end`` with ``new_lines``."""
    lines = split_lines(content, keepends=True)
    original = lines[start - 1]
    newline = original[len(original.rstrip("\r\n")):] or "\n"
    replacement = [line + newline for line in new_lines]
    if end >= len(lines) and not lines[-1].endswith("\n") and replacement:
        replacement[-1] = replacement[-1].rstrip("\r\n")
    return "".join(lines[: start - 1] + replacement + lines[end:])


def describe_changes(before: str, after: str) -> list[str]:
    """Removed and added lines, prefixed with - and +."""
    return [
        line
        for line in difflib.ndiff(split_lines(before), split_lines(after))
        if line.startswith(("- ", "+ "))
    ]


def _ensure_isolated(model: SourceModel, statement: ImportStatement) -> None:
    """Refuse to touch lines shared with other statements or comments."""
    overlapping = [
        node
        for node in model.root.children
        if node.category != NodeCategory.COMMENT
        and node.start_line <= statement.end_line
        and node.end_line >= statement.start_line
    ]
    if len(overlapping) > 1:
        raise UnsafeFixError(f"line {statement.start_line} holds other statements")
    if model.comments_between(statement.start_line, statement.end_line):
        raise UnsafeFixError(f"comment attached to the import on line {statement.start_line}")


def remove_unused_import(model: SourceModel, line: int) -> str | None:
    """Drop the unused bindings of the import statement starting on ``line``."""
    target = next(((s, u) for s, u in unused_bindings(model) if s.start_line == line), None)
    if target is None:
        return None
    statement, unused = target
    _ensure_isolated(model, statement)

    kept = tuple(b for b in statement.bindings if b not in unused)
    new_lines = [statement.render(kept)] if kept else []
    return replace_lines(model.content, statement.start_line, statement.end_line, new_lines)


def merge_duplicate_import(model: SourceModel, line: int) -> str | None:
    """Fold the repeated import on ``line`` into its first occurrence."""
    pair = next(((f, r) for f, r in duplicate_statements(model) if r.start_line == line), None)
    if pair is None:
        return None
    first, repeat = pair
    if first.wildcard or repeat.wildcard:
        raise UnsafeFixError("wildcard imports are not merged")
    _ensure_isolated(model, first)
    _ensure_isolated(model, repeat)

    content = model.content
    if repeat.kind == "from":
        if first.start_line != first.end_line:
            raise UnsafeFixError(f"import on line {first.start_line} spans several lines")
        existing = {b.render() for b in first.bindings}
        merged = first.bindings + tuple(b for b in repeat.bindings if b.render() not in existing)
        # Later statement first so the earlier line number stays valid
        content = replace_lines(content, repeat.start_line, repeat.end_line, [])
        return replace_lines(content, first.start_line, first.end_line, [first.render(merged)])

    earlier = {
        b.render()
        for s in model.imports
        if s.kind == "import" and s.start_line < repeat.start_line
        for b in s.bindings
    }
    remaining = tuple(b for b in repeat.bindings if b.render() not in earlier)
    new_lines = [repeat.render(remaining)] if remaining else []
    return replace_lines(content, repeat.start_line, repeat.end_line, new_lines)


def sort_imports(model: SourceModel, first_party: frozenset[str] = frozenset()) -> str | None:
    """Rewrite the module-level import block in canonical order."""
    imports = model.imports
    if len(imports) < 2 or is_sorted(imports, first_party):
        return None

    start, end = imports[0].start_line, imports[-1].end_line
    covered = {n for s in imports for n in range(s.start_line, s.end_line + 1)}
    for number in range(start, end + 1):
        if number not in covered and model.line_text(number).strip():
            raise UnsafeFixError(f"code interleaved with imports at line {number}")
    if model.comments_between(start, end):
        raise UnsafeFixError("comments inside the import block would be lost")
    for node in model.root.children:
        if node.category != NodeCategory.IMPORT and node.start_line <= end and node.end_line >= start:
            raise UnsafeFixError(f"statement on line {node.start_line} shares the import block")

    return replace_lines(model.content, start, end, render_block(imports, first_party))


def fix_none_comparison(model: SourceModel, line: int) -> str | None:
    """Rewrite ``== None`` / ``!= None`` on ``line`` as identity checks."""
    nodes = [
        n
        for n in model.find_kind("comparison_operator")
        if n.start_line <= line <= n.end_line and (_EQ_NONE.search(n.text) or _NE_NONE.search(n.text))
    ]
    if not nodes:
        left = [n for n in model.find_kind("comparison_operator") if n.start_line == line and _NONE_LEFT.search(n.text)]
        if left:
            raise UnsafeFixError("None on the left-hand side is not rewritten")
        return None

    content = model.content
    for node in sorted(nodes, key=lambda n: n.span, reverse=True):
        start, end = node.span
        rewritten = _NE_NONE.sub(" is not None", _EQ_NONE.sub(" is None", node.text))
        content = content[:start] + rewritten + content[end:]
    return content


def fix_bare_except(model: SourceModel, line: int) -> str | None:
    """Turn ``except:`` on ``line`` into ``except Exception:``."""
    handlers = [h for h in model.find(NodeCategory.HANDLER) if h.start_line == line and is_bare_handler(h)]
    if not handlers:
        return None
    text = model.line_text(line)
    rewritten = _BARE_EXCEPT.sub("except Exception:", text, count=1)
    if rewritten == text:
        raise UnsafeFixError(f"could not locate 'except:' on line {line}")
    return replace_lines(model.content, line, line, [rewritten])
