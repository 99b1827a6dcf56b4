"""False-positive validation of resolved findings."""

import structlog

from multiaudit.audit.policy import FALSE_POSITIVE_RULES, FalsePositiveRule
from multiaudit.audit.resolver import Survivor
from multiaudit.models import ValidatedFinding

logger = structlog.get_logger()


class FindingValidator:
    """Scores each surviving finding and flags likely false positives.

    Confidence starts at 1.0 and drops to the lowest confidence of any
    matching rule. Findings below ``min_confidence`` are kept but flagged.
    """

    def __init__(
        self,
        min_confidence: float = 0.5,
        rules: tuple[FalsePositiveRule, ...] = FALSE_POSITIVE_RULES,
    ):
        self.min_confidence = min_confidence
        self.rules = rules
        self._logger = logger.bind(component="FindingValidator")

    def validate(self, survivor: Survivor) -> ValidatedFinding:
        issue = survivor.candidate.issue
        confidence = 1.0
        reasons = []
        for rule in self.rules:
            if issue.dimension in rule.dimensions and rule.applies(issue.file):
                confidence = min(confidence, rule.confidence)
                reasons.append(f"{rule.name}: {rule.reason}")

        return ValidatedFinding(
            issue=issue,
            agent=survivor.candidate.agent,
            confidence=confidence,
            is_false_positive=confidence < self.min_confidence,
            validated_by=survivor.validated_by,
            reasons=reasons,
        )

    def validate_all(self, survivors: list[Survivor]) -> list[ValidatedFinding]:
        findings = [self.validate(s) for s in survivors]
        flagged = sum(1 for f in findings if f.is_false_positive)
        if flagged:
            self._logger.debug("Flagged false positives", count=flagged, total=len(findings))
        return findings
