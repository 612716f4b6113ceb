"""
Use Case: Decide Disposition

Pure mapping from a forensic report to a binding disposition:

    overall >= 85        → APPROVED  (issue immediately)
    70 <= overall < 85   → REVIEW    (human audit queue)
    overall < 70         → REJECTED  (resubmit a clearer copy)

Tamper override: tampering_detected with risk HIGH/CRITICAL forces
REJECTED whatever the score. The override is isolated on the policy and
can be switched off or retuned from settings.

The report's own recommended_action is ignored. Never touches the store.
"""

from dataclasses import dataclass

from govdoc.core.entities.decision import Decision, Disposition, RATIONALES
from govdoc.core.entities.forensic_report import ForensicReport, TamperRisk
from govdoc.core.errors import ValidationError


@dataclass(frozen=True)
class DecisionPolicy:
    approve_threshold: int = 85
    review_threshold: int = 70
    tamper_override: bool = True
    override_risks: frozenset = frozenset({TamperRisk.HIGH, TamperRisk.CRITICAL})

    def __post_init__(self):
        if not 0 <= self.review_threshold <= self.approve_threshold <= 100:
            raise ValidationError(
                "Decision thresholds must satisfy 0 <= review <= approve <= 100 "
                f"(review={self.review_threshold}, approve={self.approve_threshold})"
            )
        object.__setattr__(
            self, "override_risks", frozenset(TamperRisk(r) for r in self.override_risks)
        )

    @classmethod
    def from_settings(cls, settings) -> "DecisionPolicy":
        return cls(
            approve_threshold=settings.auto_approve_threshold,
            review_threshold=settings.review_threshold,
            tamper_override=settings.tamper_override_enabled,
            override_risks=frozenset(settings.tamper_override_risks),
        )

    def is_tamper_override(self, report: ForensicReport) -> bool:
        return (
            self.tamper_override
            and report.tampering_detected
            and report.tamper_risk in self.override_risks
        )

    def decide(self, report: ForensicReport) -> Decision:
        score = report.overall_score

        if self.is_tamper_override(report):
            return Decision(
                disposition=Disposition.REJECTED,
                rationale=f"tampering detected ({report.tamper_risk.value} risk); rejected regardless of score",
                overall_score=score,
                tamper_override=True,
            )

        if score >= self.approve_threshold:
            disposition = Disposition.APPROVED
        elif score >= self.review_threshold:
            disposition = Disposition.REVIEW
        else:
            disposition = Disposition.REJECTED

        return Decision(disposition=disposition, rationale=RATIONALES[disposition], overall_score=score)


DEFAULT_POLICY = DecisionPolicy()


def decide(report: ForensicReport, policy: DecisionPolicy = DEFAULT_POLICY) -> Decision:
    """Disposition for `report` under `policy` (defaults: 85 / 70, tamper override on)."""
    return policy.decide(report)
