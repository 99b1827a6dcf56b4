"""Code quality agent.

Structure metrics are computed over NodeCategory only, so they are the
same for any grammar an adapter maps onto the source model.
"""

import hashlib
import time

from multiaudit.agents.base import AnalysisAgent, AnalysisContext
from multiaudit.models import DimensionReport, Issue, Severity
from multiaudit.source import (
    DECISION_CATEGORIES,
    SCOPE_CATEGORIES,
    NodeCategory,
    SourceModel,
    SourceNode,
)

MAX_FUNCTION_LINES = 50
MAX_NESTING_DEPTH = 4
FILE_SIZE_WARNING = 500
FILE_SIZE_CRITICAL = 1000

# Functions smaller than this are too generic to count as duplicates
DUPLICATE_MIN_LINES = 6
DUPLICATE_MIN_NODES = 30

_TRIVIAL_HANDLER_BODY = frozenset({"pass_statement", "ellipsis"})


def named_functions(model: SourceModel) -> list[SourceNode]:
    """Function definitions that have a name (lambdas excluded)."""
    return [node for node in model.find(NodeCategory.FUNCTION) if node.name]


def cyclomatic_complexity(func: SourceNode) -> int:
    """1 + decision points, not counting nested functions or classes."""
    return 1 + sum(
        1 for node in func.descendants(stop_at=SCOPE_CATEGORIES) if node.category in DECISION_CATEGORIES
    )


def nesting_depth(func: SourceNode) -> int:
    """Deepest block nesting inside a function body (0 for a flat body)."""
    deepest = 0
    stack = [(child, 0) for child in func.children]
    while stack:
        node, blocks = stack.pop()
        if node.category in SCOPE_CATEGORIES:
            continue
        if node.category == NodeCategory.BLOCK:
            blocks += 1
            deepest = max(deepest, blocks)
        stack.extend((child, blocks) for child in node.children)
    return max(deepest - 1, 0)


def is_bare_handler(handler: SourceNode) -> bool:
    """An exception handler that names no exception type."""
    return all(c.category in (NodeCategory.BLOCK, NodeCategory.COMMENT) for c in handler.children)


def structure_fingerprint(func: SourceNode) -> tuple[str, int]:
    """Hash of the body's node kinds, ignoring names and literals."""
    body = func.field("body") or func
    kinds = [node.kind for node, _ in body.walk() if node.category != NodeCategory.COMMENT]
    digest = hashlib.sha1(" ".join(kinds).encode("utf-8")).hexdigest()
    return digest, len(kinds)


class CodeQualityAgent(AnalysisAgent):
    """Complexity, size, error handling and duplication checks."""

    name = "CodeQuality"
    dimensions = (
        "complexity",
        "functionLength",
        "nestingDepth",
        "fileSize",
        "bareExcept",
        "emptyHandlers",
        "duplication",
    )

    async def collect(self, file: str, model: SourceModel, context: AnalysisContext) -> None:
        """Record function fingerprints for cross-file duplication."""
        state = self.state(context)
        fingerprints = state.setdefault("fingerprints", {})
        by_file = state.setdefault("by_file", {})

        entries = []
        for func in named_functions(model):
            if func.line_span < DUPLICATE_MIN_LINES:
                continue
            digest, size = structure_fingerprint(func)
            if size < DUPLICATE_MIN_NODES:
                continue
            entry = (file, func.start_line, func.name)
            fingerprints.setdefault(digest, []).append(entry)
            entries.append((digest, func))
        by_file[file] = entries

    async def analyze(
        self,
        file: str,
        model: SourceModel,
        context: AnalysisContext,
    ) -> list[DimensionReport]:
        started = time.perf_counter()
        functions = named_functions(model)

        return [
            self._complexity(file, functions, context, started),
            self._function_length(file, functions, started),
            self._nesting(file, functions, started),
            self._file_size(file, model, started),
            *self._handlers(file, model, started),
            self._duplication(file, context, started),
        ]

    def _complexity(
        self,
        file: str,
        functions: list[SourceNode],
        context: AnalysisContext,
        started: float,
    ) -> DimensionReport:
        warning = context.settings.complexity_warning
        critical = context.settings.complexity_critical
        issues: list[Issue] = []
        scores = []

        for func in functions:
            score = cyclomatic_complexity(func)
            scores.append(score)
            if score <= warning:
                continue
            severity = Severity.HIGH if score > critical else Severity.MEDIUM
            limit = critical if score > critical else warning
            issues.append(
                self.create_issue(
                    "complexity",
                    file,
                    f"Function '{func.name}' has cyclomatic complexity {score} (limit {limit})",
                    node=func,
                    severity=severity,
                    suggestion="Split the function or replace branches with a lookup table",
                    fixable=False,
                )
            )

        metrics = {
            "maxComplexity": float(max(scores, default=0)),
            "averageComplexity": round(sum(scores) / len(scores), 2) if scores else 0.0,
        }
        return self.build_report("complexity", issues, metrics=metrics, started=started)

    def _function_length(self, file: str, functions: list[SourceNode], started: float) -> DimensionReport:
        issues = [
            self.create_issue(
                "functionLength",
                file,
                f"Function '{func.name}' is {func.line_span} lines long (limit {MAX_FUNCTION_LINES})",
                node=func,
                suggestion="Extract helper functions",
            )
            for func in functions
            if func.line_span > MAX_FUNCTION_LINES
        ]
        return self.build_report("functionLength", issues, started=started)

    def _nesting(self, file: str, functions: list[SourceNode], started: float) -> DimensionReport:
        issues = []
        deepest = 0
        for func in functions:
            depth = nesting_depth(func)
            deepest = max(deepest, depth)
            if depth > MAX_NESTING_DEPTH:
                issues.append(
                    self.create_issue(
                        "nestingDepth",
                        file,
                        f"Function '{func.name}' nests blocks {depth} levels deep (limit {MAX_NESTING_DEPTH})",
                        node=func,
                        suggestion="Use guard clauses or extract the inner loop",
                    )
                )
        return self.build_report("nestingDepth", issues, metrics={"maxDepth": float(deepest)}, started=started)

    def _file_size(self, file: str, model: SourceModel, started: float) -> DimensionReport:
        lines = model.line_count
        issues = []
        if lines > FILE_SIZE_WARNING:
            severity = Severity.MEDIUM if lines > FILE_SIZE_CRITICAL else Severity.LOW
            issues.append(
                self.create_issue(
                    "fileSize",
                    file,
                    f"Module has {lines} lines (limit {FILE_SIZE_WARNING})",
                    severity=severity,
                    suggestion="Split the module by responsibility",
                )
            )
        return self.build_report("fileSize", issues, metrics={"lines": float(lines)}, started=started)

    def _handlers(self, file: str, model: SourceModel, started: float) -> list[DimensionReport]:
        bare: list[Issue] = []
        empty: list[Issue] = []

        for handler in model.find(NodeCategory.HANDLER):
            children = [c for c in handler.children if c.category != NodeCategory.COMMENT]
            body = next((c for c in children if c.category == NodeCategory.BLOCK), None)
            if is_bare_handler(handler):
                bare.append(
                    self.create_issue(
                        "bareExcept",
                        file,
                        "Bare 'except:' also catches KeyboardInterrupt and SystemExit",
                        node=handler,
                        suggestion="Catch Exception or a narrower type",
                        fixable=True,
                    )
                )
            if body is not None and self._is_trivial(body):
                empty.append(
                    self.create_issue(
                        "emptyHandlers",
                        file,
                        "Exception handler silently discards the error",
                        node=handler,
                        suggestion="Log the exception or re-raise it",
                    )
                )

        return [
            self.build_report("bareExcept", bare, started=started),
            self.build_report("emptyHandlers", empty, started=started),
        ]

    @staticmethod
    def _is_trivial(body: SourceNode) -> bool:
        statements = [c for c in body.children if c.category != NodeCategory.COMMENT]
        if not statements:
            return True
        for statement in statements:
            if statement.kind in _TRIVIAL_HANDLER_BODY:
                continue
            inner = statement.children
            if statement.kind == "expression_statement" and len(inner) == 1 and inner[0].kind == "ellipsis":
                continue
            return False
        return True

    def _duplication(self, file: str, context: AnalysisContext, started: float) -> DimensionReport:
        state = self.state(context)
        fingerprints = state.get("fingerprints", {})
        issues = []

        for digest, func in state.get("by_file", {}).get(file, []):
            others = sorted(e for e in fingerprints.get(digest, []) if (e[0], e[1]) != (file, func.start_line))
            if not others:
                continue
            where = ", ".join(f"{name} ({path}:{line})" for path, line, name in others)
            issues.append(
                self.create_issue(
                    "duplication",
                    file,
                    f"Function '{func.name}' has the same structure as {where}",
                    node=func,
                    suggestion="Extract the shared logic into one function",
                    related_files=sorted({path for path, _, _ in others}),
                )
            )
        return self.build_report("duplication", issues, started=started)
