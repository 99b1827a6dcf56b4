"""Python source provider backed by tree-sitter."""

import re
from pathlib import Path
from typing import Any

import structlog

from multiaudit.errors import SourceParseError
from multiaudit.source.model import (
    ImportBinding,
    ImportStatement,
    NodeCategory,
    SourceModel,
)

logger = structlog.get_logger()

_CATEGORY_BY_KIND: dict[str, NodeCategory] = {
    "module": NodeCategory.MODULE,
    "function_definition": NodeCategory.FUNCTION,
    "lambda": NodeCategory.FUNCTION,
    "class_definition": NodeCategory.CLASS,
    "if_statement": NodeCategory.BRANCH,
    "elif_clause": NodeCategory.BRANCH,
    "conditional_expression": NodeCategory.BRANCH,
    "case_clause": NodeCategory.BRANCH,
    "boolean_operator": NodeCategory.BRANCH,
    "if_clause": NodeCategory.BRANCH,
    "for_statement": NodeCategory.LOOP,
    "while_statement": NodeCategory.LOOP,
    "for_in_clause": NodeCategory.LOOP,
    "except_clause": NodeCategory.HANDLER,
    "except_group_clause": NodeCategory.HANDLER,
    "call": NodeCategory.CALL,
    "block": NodeCategory.BLOCK,
    "import_statement": NodeCategory.IMPORT,
    "import_from_statement": NodeCategory.IMPORT,
    "future_import_statement": NodeCategory.IMPORT,
    "comment": NodeCategory.COMMENT,
    "string": NodeCategory.STRING,
    "identifier": NodeCategory.IDENTIFIER,
}

# String literals that name a symbol (``__all__`` entries, quoted annotations)
_NAME_LIKE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*")


def string_value(text: str) -> str:
    """Strip prefix and quotes from a string literal's source text."""
    body = text.lstrip("rRbBuUfF")
    for quote in ('"""', "'''", '"', "'"):
        if body.startswith(quote) and body.endswith(quote) and len(body) >= 2 * len(quote):
            return body[len(quote):-len(quote)]
    return body


class PythonAdapter:
    """Maps tree-sitter-python node kinds onto NodeCategory."""

    language = "python"

    def categorize(self, kind: str) -> NodeCategory:
        return _CATEGORY_BY_KIND.get(kind, NodeCategory.OTHER)

    def extract_imports(self, model: SourceModel) -> list[ImportStatement]:
        """Collect module-level import statements in source order."""
        statements: list[ImportStatement] = []
        for node in model.root.children:
            match node.kind:
                case "import_statement":
                    bindings = tuple(self._binding(n) for n in node.fields("name"))
                    statements.append(
                        ImportStatement(
                            kind="import",
                            module=bindings[0].name if bindings else "",
                            bindings=bindings,
                            start_line=node.start_line,
                            end_line=node.end_line,
                            text=node.text,
                        )
                    )
                case "import_from_statement" | "future_import_statement":
                    statements.append(self._from_import(node))
        return statements

    def _from_import(self, node: Any) -> ImportStatement:
        level = 0
        module = "__future__"
        if node.kind == "import_from_statement":
            module_node = node.field("module_name")
            module = ""
            if module_node is not None and module_node.kind == "relative_import":
                for part in module_node.children:
                    if part.kind == "import_prefix":
                        level = part.text.count(".")
                    elif part.kind == "dotted_name":
                        module = part.text
            elif module_node is not None:
                module = module_node.text
        wildcard = any(child.kind == "wildcard_import" for child in node.children)
        bindings = tuple(self._binding(n) for n in node.fields("name"))
        return ImportStatement(
            kind="from",
            module=module,
            bindings=bindings,
            start_line=node.start_line,
            end_line=node.end_line,
            text=node.text,
            level=level,
            wildcard=wildcard,
        )

    @staticmethod
    def _binding(node: Any) -> ImportBinding:
        if node.kind == "aliased_import":
            name = node.field("name")
            alias = node.field("alias")
            return ImportBinding(
                name=name.text if name else node.text,
                alias=alias.text if alias else None,
            )
        return ImportBinding(name=node.text)

    def used_names(self, model: SourceModel) -> frozenset[str]:
        """Identifiers referenced outside import statements.

        Identifier-like string literals count as uses so that ``__all__``
        re-exports and quoted annotations keep their imports alive.
        """
        names: set[str] = set()
        for node in model.root.descendants(stop_at=frozenset({NodeCategory.IMPORT})):
            match node.category:
                case NodeCategory.IDENTIFIER:
                    names.add(node.text)
                case NodeCategory.STRING:
                    value = string_value(node.text).strip()
                    if _NAME_LIKE.fullmatch(value):
                        names.add(value.split(".")[0])
        return frozenset(names)


class PythonSourceProvider:
    """Parses Python files into SourceModels with tree-sitter."""

    suffixes = (".py", ".pyi")

    def __init__(self):
        self._logger = logger.bind(component="PythonSourceProvider")
        self._adapter = PythonAdapter()
        self._parser = None
        self._initialized = False

    def _ensure_initialized(self) -> None:
        """Lazy initialization of tree-sitter."""
        if self._initialized:
            return

        import tree_sitter_python as tspython
        from tree_sitter import Language, Parser

        self._parser = Parser(Language(tspython.language()))
        self._initialized = True
        self._logger.debug("tree-sitter initialized")

    def supports(self, path: str) -> bool:
        return Path(path).suffix in self.suffixes

    def parse(self, path: str, content: str) -> SourceModel:
        """Parse source text into a SourceModel.

        Args:
            path: File path, used for reporting only
            content: Source text

        Returns:
            The parsed SourceModel

        Raises:
            SourceParseError: If the text contains syntax errors
        """
        self._ensure_initialized()

        tree = self._parser.parse(content.encode("utf-8"))
        root = tree.root_node
        if root.has_error:
            line = self._first_error_line(root)
            raise SourceParseError(path, f"syntax error near line {line}")

        return SourceModel(path=path, content=content, root=root, adapter=self._adapter)

    @staticmethod
    def _first_error_line(root: Any) -> int:
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "ERROR" or node.is_missing:
                return node.start_point[0] + 1
            stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))
        return root.start_point[0] + 1
