"""
Use Case: Forensic Status

Builds the status-lookup contract for one document:
{decision, overallScore, userMessage, blockchainStatus, breakdown,
tamperingDetected, ...}. The decision comes from the Decision Policy;
once a maker has resolved the document its actual status wins.
"""

from govdoc.core.entities.document import DocStatus
from govdoc.core.entities.user import Actor
from govdoc.core.errors import AuthorizationError, NotFoundError
from govdoc.core.interfaces.document_repository import IDocumentRepository
from govdoc.core.use_cases.decide_disposition import DecisionPolicy

RESOLVED_STATUS = {
    DocStatus.VERIFIED: ("APPROVED", "Document verified and approved."),
    DocStatus.REJECTED: ("REJECTED", "Document was rejected. Please upload a clearer copy."),
    DocStatus.EXPIRED: ("EXPIRED", "Document has expired. Please renew it with the issuing authority."),
}


class ForensicStatusUseCase:

    def __init__(self, repository: IDocumentRepository, policy: DecisionPolicy):
        self._repo = repository
        self._policy = policy

    def get_status(self, document_id: str, actor: Actor) -> dict:
        document = self._repo.get(document_id)
        if document is None:
            raise NotFoundError("Document", document_id)
        if document.user_id != actor.user_id and not actor.is_staff:
            raise AuthorizationError("Forbidden")

        report = self._repo.get_report(document_id)
        if report is None:
            return {
                "documentId": document_id,
                "status": "PENDING",
                "message": "Forensic analysis not started",
            }

        decision = self._policy.decide(report)
        decision_label = decision.status_decision
        user_message = decision.user_message
        blockchain_status = decision.blockchain_status

        if document.status in RESOLVED_STATUS and not decision.tamper_override:
            decision_label, user_message = RESOLVED_STATUS[document.status]
        if document.status == DocStatus.VERIFIED:
            blockchain_status = "ISSUED" if document.issuance_reference else "ISSUANCE_PENDING"
        elif document.status == DocStatus.REJECTED:
            blockchain_status = "REJECTED"
        elif document.status == DocStatus.EXPIRED:
            blockchain_status = "EXPIRED"

        return {
            "documentId": document_id,
            "status": "COMPLETED",
            "documentStatus": document.status.value,
            "decision": decision_label,
            "overallScore": report.overall_score,
            "userMessage": user_message,
            "blockchainStatus": blockchain_status,
            "blockchainReference": document.issuance_reference,
            "breakdown": report.breakdown.to_dict(),
            "tamperingDetected": report.tampering_detected,
            "tamperRisk": report.tamper_risk.value,
            "extractedText": report.extracted_text,
            "ocrConfidence": report.ocr_confidence,
            "hasFaceImage": report.has_face_image,
            "faceConfidence": report.face_confidence,
            "analyzedAt": report.created_at.isoformat(),
        }
