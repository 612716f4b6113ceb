"""
Entity: Forensic Report

Typed result of the external forensic analysis (scores, tamper
indicators, OCR and biometric findings). Pure data, immutable once
created. The binding decision is always recomputed from these fields;
`recommended_action` is advisory only.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum

from govdoc.core.errors import ValidationError


class TamperRisk(str, Enum):
    NONE = "NONE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-category scores, each 0-100."""
    integrity: int = 0
    authenticity: int = 0
    metadata: int = 0
    ocr: int = 0
    biometric: int = 0
    security: int = 0

    def to_dict(self) -> dict:
        return {
            "integrityScore": self.integrity,
            "authenticityScore": self.authenticity,
            "metadataScore": self.metadata,
            "ocrScore": self.ocr,
            "biometricScore": self.biometric,
            "securityScore": self.security,
        }


@dataclass(frozen=True)
class TamperIndicator:
    type: str                 # CLONE_ARTIFACT, FONT_INCONSISTENCY, PIXEL_ANOMALY, ...
    severity: str             # LOW, MEDIUM, HIGH, CRITICAL
    confidence: float = 0.0   # 0-1
    description: str = ""


@dataclass(frozen=True)
class Findings:
    strengths: tuple[str, ...] = ()
    weaknesses: tuple[str, ...] = ()
    anomalies: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "anomalies": list(self.anomalies),
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class ForensicReport:
    """Forensic analysis of one uploaded document."""
    document_id: str
    analysis_id: str
    overall_score: int
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    tampering_detected: bool = False
    tamper_risk: TamperRisk = TamperRisk.NONE
    tamper_indicators: tuple[TamperIndicator, ...] = ()
    has_face_image: bool = False
    face_confidence: float = 0.0
    face_quality: str | None = None           # EXCELLENT, GOOD, FAIR, POOR
    facial_features: dict | None = None
    extracted_text: str = ""
    ocr_confidence: float = 0.0
    findings: Findings = field(default_factory=Findings)
    recommended_action: str | None = None     # advisory, never trusted
    ai_model: str = ""
    created_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if isinstance(self.overall_score, bool) or not isinstance(self.overall_score, int):
            raise ValidationError(f"overall_score must be an integer, got {self.overall_score!r}")
        if not 0 <= self.overall_score <= 100:
            raise ValidationError(f"overall_score must be within 0-100, got {self.overall_score}")
        if not 0.0 <= self.face_confidence <= 1.0:
            raise ValidationError(f"face_confidence must be within 0-1, got {self.face_confidence}")
        if not isinstance(self.tamper_risk, TamperRisk):
            object.__setattr__(self, "tamper_risk", TamperRisk(self.tamper_risk))

    def to_dict(self) -> dict:
        data = asdict(self)
        data["tamper_risk"] = self.tamper_risk.value
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ForensicReport":
        """Rebuild a report from `to_dict()` output."""
        findings = data.get("findings") or {}
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return cls(
            document_id=data["document_id"],
            analysis_id=data["analysis_id"],
            overall_score=int(data["overall_score"]),
            breakdown=ScoreBreakdown(**(data.get("breakdown") or {})),
            tampering_detected=bool(data.get("tampering_detected", False)),
            tamper_risk=TamperRisk(data.get("tamper_risk", "NONE")),
            tamper_indicators=tuple(
                TamperIndicator(**i) for i in data.get("tamper_indicators") or ()
            ),
            has_face_image=bool(data.get("has_face_image", False)),
            face_confidence=float(data.get("face_confidence", 0.0)),
            face_quality=data.get("face_quality"),
            facial_features=data.get("facial_features"),
            extracted_text=data.get("extracted_text", ""),
            ocr_confidence=float(data.get("ocr_confidence", 0.0)),
            findings=Findings(**{k: tuple(v) for k, v in findings.items()}),
            recommended_action=data.get("recommended_action"),
            ai_model=data.get("ai_model", ""),
            created_at=created_at or datetime.utcnow(),
        )
