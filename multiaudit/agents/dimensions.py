"""Dimension catalog.

Each dimension an agent can report on is described once here. The
``fail_severity`` decides when a DimensionReport flips from ``warning``
to ``fail``.
"""

from pydantic import BaseModel, ConfigDict

from multiaudit.models import Severity


class DimensionSpec(BaseModel):
    """Static description of one dimension."""

    model_config = ConfigDict(frozen=True)

    name: str
    title: str
    description: str
    default_severity: Severity
    fail_severity: Severity = Severity.CRITICAL
    automated: bool = True
    effort: str = "minutes"


_SPECS = [
    # Security
    DimensionSpec(
        name="hardcodedSecrets",
        title="Hardcoded secrets",
        description="Credentials or tokens assigned as string literals",
        default_severity=Severity.CRITICAL,
        effort="30 minutes",
    ),
    DimensionSpec(
        name="shellInjection",
        title="Shell injection",
        description="Commands run through a shell (os.system, shell=True)",
        default_severity=Severity.HIGH,
        fail_severity=Severity.HIGH,
        effort="30 minutes",
    ),
    DimensionSpec(
        name="unsafeEval",
        title="Dynamic code evaluation",
        description="Calls to eval() or exec()",
        default_severity=Severity.HIGH,
        fail_severity=Severity.HIGH,
        effort="1 hour",
    ),
    # Type safety
    DimensionSpec(
        name="anyTypes",
        title="Any in annotations",
        description="Annotations that fall back to typing.Any",
        default_severity=Severity.MEDIUM,
        effort="15 minutes",
    ),
    DimensionSpec(
        name="missingAnnotations",
        title="Missing annotations",
        description="Public functions without parameter or return annotations",
        default_severity=Severity.LOW,
        effort="5 minutes",
    ),
    DimensionSpec(
        name="typeIgnores",
        title="Bare type: ignore",
        description="type: ignore comments without an error code",
        default_severity=Severity.LOW,
        effort="5 minutes",
    ),
    DimensionSpec(
        name="noneComparison",
        title="Equality comparison with None",
        description="== None / != None instead of identity checks",
        default_severity=Severity.LOW,
        effort="1 minute",
    ),
    # Code quality
    DimensionSpec(
        name="complexity",
        title="Cyclomatic complexity",
        description="Functions with too many decision points",
        default_severity=Severity.MEDIUM,
        fail_severity=Severity.HIGH,
        effort="1 hour",
    ),
    DimensionSpec(
        name="functionLength",
        title="Function length",
        description="Functions longer than 50 lines",
        default_severity=Severity.LOW,
        effort="30 minutes",
    ),
    DimensionSpec(
        name="nestingDepth",
        title="Nesting depth",
        description="Blocks nested more than 4 levels deep",
        default_severity=Severity.MEDIUM,
        effort="30 minutes",
    ),
    DimensionSpec(
        name="fileSize",
        title="File size",
        description="Modules over 500 lines",
        default_severity=Severity.LOW,
        effort="2 hours",
    ),
    DimensionSpec(
        name="bareExcept",
        title="Bare except",
        description="except: clauses that also catch KeyboardInterrupt and SystemExit",
        default_severity=Severity.MEDIUM,
        effort="1 minute",
    ),
    DimensionSpec(
        name="emptyHandlers",
        title="Swallowed exceptions",
        description="Exception handlers whose body is only pass or ...",
        default_severity=Severity.MEDIUM,
        effort="10 minutes",
    ),
    DimensionSpec(
        name="duplication",
        title="Duplicated code",
        description="Functions with identical structure across the run",
        default_severity=Severity.MEDIUM,
        effort="1 hour",
    ),
    # Consistency
    DimensionSpec(
        name="importOrdering",
        title="Import ordering",
        description="Imports not grouped future/stdlib/third-party/first-party/local",
        default_severity=Severity.LOW,
        effort="1 minute",
    ),
    DimensionSpec(
        name="unusedImports",
        title="Unused imports",
        description="Imported names never referenced",
        default_severity=Severity.LOW,
        effort="1 minute",
    ),
    DimensionSpec(
        name="duplicateImports",
        title="Duplicate imports",
        description="The same module imported by more than one statement",
        default_severity=Severity.LOW,
        effort="1 minute",
    ),
    DimensionSpec(
        name="namingConventions",
        title="Naming conventions",
        description="Function names deviating from the project's dominant style",
        default_severity=Severity.LOW,
        automated=False,
        effort="15 minutes",
    ),
    # Pattern recognition
    DimensionSpec(
        name="handlerPattern",
        title="Handler method pattern",
        description="Handler methods whose prefix differs from the run's dominant execute/handle/process/run",
        default_severity=Severity.MEDIUM,
        automated=False,
        effort="15 minutes",
    ),
    DimensionSpec(
        name="errorPattern",
        title="Error handling pattern",
        description="Exception handlers that return where the project re-raises, or the reverse",
        default_severity=Severity.LOW,
        automated=False,
        effort="15 minutes",
    ),
    DimensionSpec(
        name="namingPattern",
        title="Class naming pattern",
        description="Class names deviating from the project's dominant style",
        default_severity=Severity.LOW,
        automated=False,
        effort="15 minutes",
    ),
    # Documentation
    DimensionSpec(
        name="missingDocs",
        title="Missing docstrings",
        description="Public functions and classes without a docstring",
        default_severity=Severity.LOW,
        effort="5 minutes",
    ),
    DimensionSpec(
        name="moduleDocstring",
        title="Module docstring",
        description="Modules without a leading docstring",
        default_severity=Severity.INFO,
        effort="5 minutes",
    ),
    # Testing
    DimensionSpec(
        name="coverageGaps",
        title="Untested functions",
        description="Public functions never referenced by a test file",
        default_severity=Severity.MEDIUM,
        effort="30 minutes",
    ),
    # Synthetic
    DimensionSpec(
        name="agentFailure",
        title="Agent failure",
        description="An agent raised while analyzing a file",
        default_severity=Severity.CRITICAL,
        automated=False,
        effort="unknown",
    ),
]

DIMENSIONS: dict[str, DimensionSpec] = {spec.name: spec for spec in _SPECS}

AGENT_FAILURE = "agentFailure"


def get_dimension(name: str) -> DimensionSpec:
    """Look up a dimension, falling back to a generic spec for unknown names."""
    spec = DIMENSIONS.get(name)
    if spec is None:
        return DimensionSpec(
            name=name,
            title=name,
            description="Custom dimension",
            default_severity=Severity.MEDIUM,
        )
    return spec
