"""Type-safety agent.

Surface-level checks only: no inference is performed, so every finding is
a property of the annotations and comments as written.
"""

import re
import time

from multiaudit.agents.base import AnalysisAgent, AnalysisContext
from multiaudit.models import DimensionReport, Issue
from multiaudit.source import NodeCategory, SourceModel, SourceNode

_ANY = re.compile(r"\bAny\b")
_BARE_TYPE_IGNORE = re.compile(r"#\s*type:\s*ignore(?!\[)")
_NONE_RIGHT = re.compile(r"(==|!=)\s*None\b")
_NONE_LEFT = re.compile(r"\bNone\s*(==|!=)")

_UNTYPED_PARAMS = frozenset({"identifier", "default_parameter", "list_splat_pattern", "dictionary_splat_pattern"})
_IMPLICIT_FIRST = frozenset({"self", "cls"})
_PUBLIC_DUNDERS = frozenset({"__init__", "__call__"})


def _param_name(param: SourceNode) -> str:
    if param.kind == "identifier":
        return param.text
    if param.kind == "default_parameter":
        name = param.field("name")
        return name.text if name else param.text
    return param.text


class TypeSafetyAgent(AnalysisAgent):
    """Reports weak or missing typing."""

    name = "TypeSafety"
    dimensions = ("anyTypes", "missingAnnotations", "typeIgnores", "noneComparison")

    async def analyze(
        self,
        file: str,
        model: SourceModel,
        context: AnalysisContext,
    ) -> list[DimensionReport]:
        started = time.perf_counter()
        any_types: dict[int, Issue] = {}
        missing: list[Issue] = []
        ignores: list[Issue] = []
        none_checks: dict[int, Issue] = {}

        for node, _ in model.walk():
            match node.kind:
                case "type":
                    if node.start_line not in any_types and _ANY.search(node.text):
                        any_types[node.start_line] = self.create_issue(
                            "anyTypes",
                            file,
                            f"Annotation '{node.text}' uses Any",
                            node=node,
                            suggestion="Use a concrete type, a Protocol or a TypeVar",
                        )
                case "function_definition":
                    issue = self._check_annotations(file, node)
                    if issue:
                        missing.append(issue)
                case "comparison_operator":
                    if node.start_line not in none_checks:
                        issue = self._check_none_comparison(file, node)
                        if issue:
                            none_checks[node.start_line] = issue
                case _ if node.category == NodeCategory.COMMENT:
                    if _BARE_TYPE_IGNORE.search(node.text):
                        ignores.append(
                            self.create_issue(
                                "typeIgnores",
                                file,
                                "type: ignore without an error code",
                                node=node,
                                suggestion="Add the specific code, e.g. # type: ignore[arg-type]",
                            )
                        )

        metrics = {"functions": float(len(model.find(NodeCategory.FUNCTION)))}
        return [
            self.build_report("anyTypes", list(any_types.values()), started=started),
            self.build_report("missingAnnotations", missing, metrics=metrics, started=started),
            self.build_report("typeIgnores", ignores, started=started),
            self.build_report("noneComparison", list(none_checks.values()), started=started),
        ]

    def _check_annotations(self, file: str, func: SourceNode) -> Issue | None:
        name = func.name
        if name.startswith("_") and name not in _PUBLIC_DUNDERS:
            return None

        missing = []
        parameters = func.field("parameters")
        for index, param in enumerate(parameters.children if parameters else []):
            if param.kind not in _UNTYPED_PARAMS:
                continue
            param_name = _param_name(param)
            if index == 0 and param_name in _IMPLICIT_FIRST:
                continue
            missing.append(param_name)
        if func.field("return_type") is None and name != "__init__":
            missing.append("return")

        if not missing:
            return None
        return self.create_issue(
            "missingAnnotations",
            file,
            f"Function '{name}' is missing annotations for: {', '.join(missing)}",
            node=func,
        )

    def _check_none_comparison(self, file: str, node: SourceNode) -> Issue | None:
        text = node.text
        if _NONE_RIGHT.search(text):
            fixable = True
        elif _NONE_LEFT.search(text):
            fixable = False
        else:
            return None
        # Anchor on the None literal so the fixer finds the operator on that line
        anchor = next((c for c in node.children if c.kind == "none"), node)
        return self.create_issue(
            "noneComparison",
            file,
            f"Comparison to None with an equality operator: {text}",
            node=anchor,
            suggestion="Use 'is None' / 'is not None'",
            fixable=fixable,
        )
