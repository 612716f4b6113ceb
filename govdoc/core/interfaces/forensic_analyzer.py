"""
Contract: Forensic Analyzer

External collaborator that turns document bytes into a ForensicReport.
The pipeline treats its output as untrusted beyond the typed fields and
never re-derives scores.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from govdoc.core.entities.forensic_report import ForensicReport


@dataclass
class AnalysisInput:
    """Input for one analysis run."""
    document_id: str
    file_bytes: bytes
    mime_type: str
    document_type: str
    options: dict = field(default_factory=dict)   # performBiometricAnalysis, strictMode, ...


class IForensicAnalyzer(ABC):
    """
    Port: Forensic Analyzer

    Implementation can be Gemini multimodal, an in-house model, or a
    remote service.
    """

    @abstractmethod
    def analyze(self, request: AnalysisInput) -> ForensicReport:
        """
        Analyze a document.

        Args:
            request: Document bytes plus type and options.

        Returns:
            ForensicReport for request.document_id.

        Raises:
            AnalysisFailed: the collaborator could not produce a report.
        """
        ...

    def health_check(self) -> dict:
        """Cheap reachability probe. Override where the backend supports it."""
        return {"status": "UNKNOWN"}
