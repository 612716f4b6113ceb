"""
Entity: Decision

Output of the Decision Policy. REVIEW is a routing decision, not a
terminal disposition: the document stays PENDING until a maker resolves
it.
"""

from dataclasses import dataclass
from enum import Enum


class Disposition(str, Enum):
    APPROVED = "APPROVED"
    REVIEW = "REVIEW"
    REJECTED = "REJECTED"


RATIONALES = {
    Disposition.APPROVED: "auto-approved; issue immediately",
    Disposition.REVIEW: "routed to human audit queue",
    Disposition.REJECTED: "user must resubmit a clearer copy",
}

USER_MESSAGES = {
    Disposition.APPROVED: "Document verified and approved. It will be written to the blockchain.",
    Disposition.REVIEW: "Document is under review by government staff. This usually takes 1-2 hours.",
    Disposition.REJECTED: (
        "Document quality is too low. Please upload a clearer copy "
        "(better lighting, less glare, fully visible)."
    ),
}

TAMPER_USER_MESSAGE = (
    "Document shows signs of tampering and cannot be accepted. "
    "Please upload an original, unaltered copy."
)

# Public labels used by the status lookup contract
STATUS_DECISIONS = {
    Disposition.APPROVED: "APPROVED",
    Disposition.REVIEW: "UNDER_REVIEW",
    Disposition.REJECTED: "REJECTED",
}

BLOCKCHAIN_STATUSES = {
    Disposition.APPROVED: "APPROVED",
    Disposition.REVIEW: "PENDING_HUMAN_REVIEW",
    Disposition.REJECTED: "REJECTED",
}


@dataclass(frozen=True)
class Decision:
    disposition: Disposition
    rationale: str
    overall_score: int
    tamper_override: bool = False

    @property
    def user_message(self) -> str:
        if self.tamper_override:
            return TAMPER_USER_MESSAGE
        return USER_MESSAGES[self.disposition]

    @property
    def status_decision(self) -> str:
        return STATUS_DECISIONS[self.disposition]

    @property
    def blockchain_status(self) -> str:
        return BLOCKCHAIN_STATUSES[self.disposition]
