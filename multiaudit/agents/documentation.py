"""Documentation agent."""

import time

from multiaudit.agents.base import AnalysisAgent, AnalysisContext
from multiaudit.models import DimensionReport, Issue
from multiaudit.source import NodeCategory, SourceModel, SourceNode


def has_docstring(body: SourceNode | None) -> bool:
    """True if the first statement of a body is a bare string literal."""
    if body is None:
        return False
    statements = [c for c in body.children if c.category != NodeCategory.COMMENT]
    if not statements or statements[0].kind != "expression_statement":
        return False
    inner = statements[0].children
    return bool(inner) and inner[0].category == NodeCategory.STRING


def definition_scope(node: SourceNode) -> NodeCategory | None:
    """Category of the scope a definition lives in (module, class, function)."""
    parent = node.parent
    if parent is not None and parent.kind == "decorated_definition":
        parent = parent.parent
    if parent is None:
        return None
    if parent.category == NodeCategory.MODULE:
        return NodeCategory.MODULE
    if parent.category == NodeCategory.BLOCK and parent.parent is not None:
        return parent.parent.category
    return None


class DocumentationAgent(AnalysisAgent):
    name = "Documentation"
    dimensions = ("missingDocs", "moduleDocstring")

    async def analyze(
        self,
        file: str,
        model: SourceModel,
        context: AnalysisContext,
    ) -> list[DimensionReport]:
        started = time.perf_counter()
        missing: list[Issue] = []
        documented = 0
        candidates = 0

        for node in model.find(NodeCategory.FUNCTION, NodeCategory.CLASS):
            if not node.name or node.name.startswith("_"):
                continue
            if definition_scope(node) not in (NodeCategory.MODULE, NodeCategory.CLASS):
                continue
            candidates += 1
            if has_docstring(node.field("body")):
                documented += 1
                continue
            kind = "Class" if node.category == NodeCategory.CLASS else "Function"
            missing.append(
                self.create_issue(
                    "missingDocs",
                    file,
                    f"{kind} '{node.name}' has no docstring",
                    node=node,
                    suggestion="Add a one-line docstring describing its purpose",
                )
            )

        module_issues = []
        statements = [c for c in model.root.children if c.category != NodeCategory.COMMENT]
        if statements and not has_docstring(model.root):
            module_issues.append(
                self.create_issue(
                    "moduleDocstring",
                    file,
                    "Module has no docstring",
                    line=1,
                    column=1,
                )
            )

        coverage = documented / candidates if candidates else 1.0
        return [
            self.build_report("missingDocs", missing, metrics={"docCoverage": round(coverage, 3)}, started=started),
            self.build_report("moduleDocstring", module_issues, started=started),
        ]
