"""Language-neutral source model.

A SourceModel wraps one parsed file. Agents walk it through SourceNode
objects that report an abstract NodeCategory, so dimension logic
(complexity, nesting, duplication) never depends on one parser's node
vocabulary. Concrete grammars plug in through a LanguageAdapter.
"""

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from pathlib import Path
from typing import Any, Callable, Iterator, Protocol


class NodeCategory(str, Enum):
    """Abstract node categories every language adapter maps onto."""

    MODULE = "module"
    FUNCTION = "function"
    CLASS = "class"
    BRANCH = "branch"
    LOOP = "loop"
    HANDLER = "handler"
    CALL = "call"
    BLOCK = "block"
    IMPORT = "import"
    COMMENT = "comment"
    STRING = "string"
    IDENTIFIER = "identifier"
    OTHER = "other"


# Categories that add a decision point to cyclomatic complexity
DECISION_CATEGORIES = frozenset({NodeCategory.BRANCH, NodeCategory.LOOP, NodeCategory.HANDLER})

# Categories that open a new scope for per-function metrics
SCOPE_CATEGORIES = frozenset({NodeCategory.FUNCTION, NodeCategory.CLASS})


def split_lines(content: str, keepends: bool = False) -> list[str]:
    """Split on \\n only, the way tree-sitter counts rows.

    Form feeds and other characters ``str.splitlines`` treats as breaks stay
    inside their line. Without ``keepends`` a trailing \\r is dropped too.
    """
    parts = content.split("\n")
    last = parts.pop()
    if keepends:
        lines = [part + "\n" for part in parts]
    else:
        lines = [part[:-1] if part.endswith("\r") else part for part in parts]
    if last:
        lines.append(last if keepends or not last.endswith("\r") else last[:-1])
    return lines


def read_source(path: str | Path) -> str:
    """Read a file as UTF-8 text with its line endings untouched."""
    return Path(path).read_bytes().decode("utf-8")


@dataclass(frozen=True)
class ImportBinding:
    """One name bound by an import statement."""

    name: str
    alias: str | None = None

    @property
    def bound_name(self) -> str:
        """The name this binding introduces into the module namespace."""
        if self.alias:
            return self.alias
        return self.name.split(".")[0]

    def render(self) -> str:
        return f"{self.name} as {self.alias}" if self.alias else self.name


@dataclass(frozen=True)
class ImportStatement:
    """A module-level import statement."""

    kind: str  # "import" or "from"
    module: str
    bindings: tuple[ImportBinding, ...]
    start_line: int
    end_line: int
    text: str
    level: int = 0
    wildcard: bool = False

    @property
    def is_future(self) -> bool:
        return self.kind == "from" and self.module == "__future__"

    @property
    def module_key(self) -> str:
        """Module path including leading dots for relative imports."""
        return "." * self.level + self.module

    @property
    def top_level_package(self) -> str:
        return self.module.split(".")[0] if self.module else ""

    def render(self, bindings: tuple[ImportBinding, ...] | None = None) -> str:
        """Render the statement on one line, optionally with other bindings."""
        bindings = self.bindings if bindings is None else bindings
        if self.kind == "import":
            return "import " + ", ".join(b.render() for b in bindings)
        names = "*" if self.wildcard else ", ".join(b.render() for b in bindings)
        return f"from {self.module_key} import {names}"


class LanguageAdapter(Protocol):
    """Maps one grammar onto the language-neutral model."""

    language: str

    def categorize(self, kind: str) -> NodeCategory:
        ...

    def extract_imports(self, model: "SourceModel") -> list[ImportStatement]:
        ...

    def used_names(self, model: "SourceModel") -> frozenset[str]:
        ...


class SourceNode:
    """A view over one syntax-tree node."""

    __slots__ = ("_node", "_model")

    def __init__(self, node: Any, model: "SourceModel"):
        self._node = node
        self._model = model

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SourceNode):
            return NotImplemented
        return (
            self._node.start_byte == other._node.start_byte
            and self._node.end_byte == other._node.end_byte
            and self._node.type == other._node.type
        )

    def __hash__(self) -> int:
        return hash((self._node.start_byte, self._node.end_byte, self._node.type))

    def __repr__(self) -> str:
        return f"SourceNode({self.kind}@{self.start_line}:{self.start_column})"

    @property
    def kind(self) -> str:
        """Grammar-specific node type."""
        return self._node.type

    @property
    def category(self) -> NodeCategory:
        return self._model.adapter.categorize(self._node.type)

    @property
    def start_line(self) -> int:
        return self._node.start_point[0] + 1

    @property
    def end_line(self) -> int:
        return self._node.end_point[0] + 1

    @property
    def start_column(self) -> int:
        return self._model.column_for(self._node.start_point[0], self._node.start_point[1])

    @property
    def end_column(self) -> int:
        return self._model.column_for(self._node.end_point[0], self._node.end_point[1])

    @property
    def line_span(self) -> int:
        return self.end_line - self.start_line + 1

    @property
    def span(self) -> tuple[int, int]:
        """Character offsets (start, end) of this node in the file content."""
        return (
            self._model.offset_of(self.start_line, self.start_column),
            self._model.offset_of(self.end_line, self.end_column),
        )

    @property
    def text(self) -> str:
        return self._model.text_between(self._node.start_byte, self._node.end_byte)

    @property
    def is_error(self) -> bool:
        return self._node.type == "ERROR" or bool(getattr(self._node, "is_missing", False))

    @property
    def children(self) -> list["SourceNode"]:
        """Named children only; punctuation and keywords are dropped."""
        return [SourceNode(child, self._model) for child in self._node.named_children]

    @property
    def parent(self) -> "SourceNode | None":
        parent = self._node.parent
        return SourceNode(parent, self._model) if parent is not None else None

    @property
    def name(self) -> str:
        """Text of the ``name`` field, or an empty string."""
        node = self.field("name")
        return node.text if node else ""

    def field(self, name: str) -> "SourceNode | None":
        child = self._node.child_by_field_name(name)
        return SourceNode(child, self._model) if child is not None else None

    def fields(self, name: str) -> list["SourceNode"]:
        return [SourceNode(c, self._model) for c in self._node.children_by_field_name(name)]

    def walk(self, depth: int = 0) -> Iterator[tuple["SourceNode", int]]:
        """Pre-order traversal yielding (node, depth)."""
        stack = [(self, depth)]
        while stack:
            node, level = stack.pop()
            yield node, level
            children = node.children
            for child in reversed(children):
                stack.append((child, level + 1))

    def descendants(self, stop_at: frozenset[NodeCategory] = frozenset()) -> Iterator["SourceNode"]:
        """Yield descendants, not descending into nodes of ``stop_at`` categories."""
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            if node.category in stop_at:
                continue
            stack.extend(reversed(node.children))


class SourceModel:
    """One parsed file: tree, text and offset to line/column mapping."""

    def __init__(self, path: str, content: str, root: Any, adapter: LanguageAdapter):
        self.path = path
        self.content = content
        self.adapter = adapter
        self._root = root
        self._bytes = content.encode("utf-8")
        self._line_bytes = self._bytes.split(b"\n")
        self._line_offsets = [0]
        for index, char in enumerate(content):
            if char == "\n":
                self._line_offsets.append(index + 1)

    @property
    def language(self) -> str:
        return self.adapter.language

    @cached_property
    def root(self) -> SourceNode:
        return SourceNode(self._root, self)

    @cached_property
    def lines(self) -> list[str]:
        return split_lines(self.content)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def has_errors(self) -> bool:
        return bool(getattr(self._root, "has_error", False))

    @cached_property
    def imports(self) -> list[ImportStatement]:
        return self.adapter.extract_imports(self)

    @cached_property
    def used_names(self) -> frozenset[str]:
        return self.adapter.used_names(self)

    def line_text(self, line: int) -> str:
        """Text of a 1-based line, without its newline."""
        if 1 <= line <= len(self.lines):
            return self.lines[line - 1]
        return ""

    def offset_to_line_column(self, offset: int) -> tuple[int, int]:
        """Map a character offset to a 1-based (line, column)."""
        if offset < 0 or offset > len(self.content):
            raise ValueError(f"Offset {offset} outside 0..{len(self.content)}")
        index = bisect_right(self._line_offsets, offset) - 1
        return index + 1, offset - self._line_offsets[index] + 1

    def offset_of(self, line: int, column: int) -> int:
        """Inverse of ``offset_to_line_column``."""
        return self._line_offsets[line - 1] + column - 1

    def text_between(self, start_byte: int, end_byte: int) -> str:
        return self._bytes[start_byte:end_byte].decode("utf-8", errors="replace")

    def column_for(self, row: int, byte_column: int) -> int:
        """Convert a tree-sitter (row, byte column) to a 1-based character column."""
        if row >= len(self._line_bytes):
            return byte_column + 1
        prefix = self._line_bytes[row][:byte_column]
        return len(prefix.decode("utf-8", errors="replace")) + 1

    def walk(self) -> Iterator[tuple[SourceNode, int]]:
        return self.root.walk()

    def visit(self, callback: Callable[[SourceNode, int], None]) -> None:
        """Call ``callback(node, depth)`` for every node, pre-order."""
        for node, depth in self.walk():
            callback(node, depth)

    def find(self, *categories: NodeCategory) -> list[SourceNode]:
        wanted = set(categories)
        return [node for node, _ in self.walk() if node.category in wanted]

    def find_kind(self, *kinds: str) -> list[SourceNode]:
        wanted = set(kinds)
        return [node for node, _ in self.walk() if node.kind in wanted]

    def comments_between(self, start_line: int, end_line: int) -> list[SourceNode]:
        """Comment nodes starting within an inclusive line range."""
        return [c for c in self.find(NodeCategory.COMMENT) if start_line <= c.start_line <= end_line]


class SourceModelProvider(Protocol):
    """Parses a file into a SourceModel; one instance is shared per run."""

    def parse(self, path: str, content: str) -> SourceModel:
        ...

    def supports(self, path: str) -> bool:
        ...
