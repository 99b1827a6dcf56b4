"""Reconciliation policy.

Every table the resolver and validator consult lives here, so a change in
precedence is a reviewable diff with a version bump. ``POLICY_VERSION`` is
stamped on each Report.
"""

from dataclasses import dataclass
from typing import Callable

from multiaudit.agents.dimensions import AGENT_FAILURE
from multiaudit.source.paths import is_generated_path, is_stub_path, is_test_path

POLICY_VERSION = "2026.2"

STRATEGY_NAME = f"severity-specificity-priority/v{POLICY_VERSION}"

# Lower value wins ties between equally severe, equally specific findings
AGENT_PRIORITY: dict[str, int] = {
    "Security": 0,
    "TypeSafety": 1,
    "CodeQuality": 2,
    "Testing": 3,
    "Consistency": 4,
    "PatternRecognition": 5,
    "Documentation": 6,
}
UNKNOWN_AGENT_PRIORITY = 100

# Higher value means a narrower, more actionable statement about the code
DIMENSION_SPECIFICITY: dict[str, int] = {
    "agentFailure": 100,
    "hardcodedSecrets": 90,
    "shellInjection": 85,
    "unsafeEval": 85,
    "bareExcept": 70,
    "noneComparison": 70,
    "emptyHandlers": 65,
    "unusedImports": 60,
    "duplicateImports": 60,
    "typeIgnores": 60,
    "anyTypes": 55,
    "complexity": 50,
    "importOrdering": 50,
    "missingAnnotations": 45,
    "nestingDepth": 45,
    "duplication": 40,
    "namingConventions": 40,
    "handlerPattern": 38,
    "namingPattern": 36,
    "coverageGaps": 35,
    "errorPattern": 34,
    "functionLength": 30,
    "missingDocs": 30,
    "moduleDocstring": 25,
    "fileSize": 20,
}
DEFAULT_SPECIFICITY = 10

# Dimensions in one group may describe the same defect
RELATED_DIMENSION_GROUPS: dict[str, frozenset[str]] = {
    "structure": frozenset({"complexity", "nestingDepth", "functionLength", "fileSize", "duplication"}),
    "imports": frozenset({"unusedImports", "duplicateImports", "importOrdering"}),
    "typing": frozenset({"anyTypes", "missingAnnotations", "typeIgnores", "noneComparison"}),
    "errorHandling": frozenset({"bareExcept", "emptyHandlers", "errorPattern"}),
    "naming": frozenset({"namingConventions", "handlerPattern", "namingPattern"}),
    "security": frozenset({"hardcodedSecrets", "shellInjection", "unsafeEval"}),
    "docs": frozenset({"missingDocs", "moduleDocstring"}),
}

# One record per failing agent; never folded into another finding
UNMERGED_DIMENSIONS = frozenset({AGENT_FAILURE})


def agent_priority(agent: str) -> int:
    return AGENT_PRIORITY.get(agent, UNKNOWN_AGENT_PRIORITY)


def specificity(dimension: str) -> int:
    return DIMENSION_SPECIFICITY.get(dimension, DEFAULT_SPECIFICITY)


def dimensions_related(a: str, b: str) -> bool:
    """True if two dimensions are equal or share a related group."""
    if a == b:
        return True
    return any(a in group and b in group for group in RELATED_DIMENSION_GROUPS.values())


@dataclass(frozen=True)
class FalsePositiveRule:
    """Lowers confidence for dimensions when a path predicate holds."""

    name: str
    dimensions: frozenset[str]
    applies: Callable[[str], bool]
    confidence: float
    reason: str


FALSE_POSITIVE_RULES: tuple[FalsePositiveRule, ...] = (
    FalsePositiveRule(
        name="secret-in-test",
        dimensions=frozenset({"hardcodedSecrets"}),
        applies=is_test_path,
        confidence=0.3,
        reason="Secret-like literals in tests are usually fixtures",
    ),
    FalsePositiveRule(
        name="secret-in-stub",
        dimensions=frozenset({"hardcodedSecrets"}),
        applies=is_stub_path,
        confidence=0.3,
        reason="Stub files carry no runtime values",
    ),
    FalsePositiveRule(
        name="typing-in-test",
        dimensions=frozenset({"anyTypes", "missingAnnotations", "typeIgnores"}),
        applies=is_test_path,
        confidence=0.4,
        reason="Test code is commonly left unannotated",
    ),
    FalsePositiveRule(
        name="any-in-stub",
        dimensions=frozenset({"anyTypes"}),
        applies=is_stub_path,
        confidence=0.4,
        reason="Stubs use Any to mirror untyped upstream APIs",
    ),
    FalsePositiveRule(
        name="structure-in-generated",
        dimensions=frozenset({"complexity", "fileSize", "duplication", "functionLength", "nestingDepth"}),
        applies=is_generated_path,
        confidence=0.2,
        reason="Generated code is not maintained by hand",
    ),
    FalsePositiveRule(
        name="docs-in-test",
        dimensions=frozenset({"missingDocs", "moduleDocstring"}),
        applies=is_test_path,
        confidence=0.3,
        reason="Test functions are documented by their names",
    ),
)
