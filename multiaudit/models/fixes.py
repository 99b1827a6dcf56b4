"""Auto-fix result models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from multiaudit.models.findings import Issue


class FixOutcome(str, Enum):
    """What happened when a fix was attempted."""

    APPLIED = "applied"  # file rewritten
    ALREADY_FIXED = "already_fixed"  # idempotent no-op
    MANUAL_REVIEW = "manual_review"  # deliberately never auto-applied
    UNSUPPORTED = "unsupported"  # no fixer registered for the category
    FAILED = "failed"  # rewrite judged unsafe or raised


class FixResult(BaseModel):
    """Outcome of fixing one issue."""

    model_config = ConfigDict(frozen=True)

    success: bool
    outcome: FixOutcome
    issue: Issue
    message: str | None = None
    reason: str | None = None
    changes: list[str] = Field(default_factory=list)


class FixSummary(BaseModel):
    """Aggregate outcome of a fix batch.

    ``fixed`` counts only results that persisted a file mutation, ``failed``
    counts unsafe or erroring fixes, and ``skipped`` is everything else
    (not attempted, already fixed, manual review, unsupported).
    """

    model_config = ConfigDict(frozen=True)

    total: int = 0
    fixed: int = 0
    failed: int = 0
    skipped: int = 0
    results: list[FixResult] = Field(default_factory=list)
    duration_ms: float = 0.0

    @classmethod
    def from_results(
        cls, total: int, results: list[FixResult], duration_ms: float
    ) -> "FixSummary":
        fixed = sum(1 for r in results if r.outcome == FixOutcome.APPLIED)
        failed = sum(1 for r in results if r.outcome == FixOutcome.FAILED)
        return cls(
            total=total,
            fixed=fixed,
            failed=failed,
            skipped=total - fixed - failed,
            results=results,
            duration_ms=duration_ms,
        )
