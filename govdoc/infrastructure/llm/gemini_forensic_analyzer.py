"""
Gemini Forensic Analyzer — multimodal document analysis.

Sends the document image plus its declared type to Gemini and parses a
structured JSON forensic report (compliance scores, tampering,
biometric findings).

Uses the `google-genai` SDK.
"""
import json
import logging
import time
import uuid

from google import genai
from google.genai import types

from govdoc.core.entities.forensic_report import (
    Findings,
    ForensicReport,
    ScoreBreakdown,
    TamperIndicator,
    TamperRisk,
)
from govdoc.core.errors import AnalysisFailed, ValidationError
from govdoc.core.interfaces.forensic_analyzer import AnalysisInput, IForensicAnalyzer

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are a forensic document examiner for a government identity registry. You analyze an image of an official document and report on its authenticity.

IMPORTANT: Respond ONLY with a JSON object, no markdown, no backticks, no extra text.

Output JSON format:
{
    "compliance": {
        "overall": 0-100, "integrity": 0-100, "authenticity": 0-100, "metadata": 0-100,
        "ocr": 0-100, "biometric": 0-100, "security": 0-100,
        "recommendedAction": "APPROVED" | "REVIEW" | "REJECTED"
    },
    "tampering": {
        "detected": true | false,
        "overallTamperRisk": "NONE" | "LOW" | "MEDIUM" | "HIGH" | "CRITICAL",
        "indicators": [{"type": "...", "severity": "LOW|MEDIUM|HIGH|CRITICAL", "confidence": 0-1, "description": "..."}]
    },
    "ocrAnalysis": {"extractedText": "...", "confidence": 0-1},
    "biometric": {
        "hasFaceImage": true | false, "faceConfidence": 0-1,
        "faceQuality": "EXCELLENT" | "GOOD" | "FAIR" | "POOR",
        "facialFeatures": {"hasGlasses": bool, "hasMask": bool, "facialHairPresent": bool, "lighting": "GOOD|FAIR|POOR"}
    },
    "findings": {"strengths": [], "weaknesses": [], "anomalies": [], "recommendations": []}
}

Rules:
- Score each category independently; overall is your weighted judgement
- Flag clone artifacts, font inconsistencies, compression artifacts, signature and watermark anomalies
- Only report hasFaceImage=true when a portrait photo is visible
"""


def _clamp_score(value) -> int:
    try:
        return max(0, min(100, int(round(float(value)))))
    except (TypeError, ValueError):
        return 0


def _clamp_unit(value) -> float:
    try:
        return max(0.0, min(1.0, float(value)))
    except (TypeError, ValueError):
        return 0.0


def strip_code_fence(raw: str) -> str:
    """Handle markdown code blocks around the JSON."""
    raw = raw.strip()
    if raw.startswith("```"):
        lines = raw.split("\n")
        raw = "\n".join(lines[1:])  # remove first line
        if raw.rstrip().endswith("```"):
            raw = raw.rstrip()[:-3]
        raw = raw.strip()
    return raw


def parse_forensic_json(data: dict, document_id: str, model: str = "") -> ForensicReport:
    """Map the model's JSON answer onto a ForensicReport."""
    compliance = data.get("compliance") or {}
    tampering = data.get("tampering") or {}
    ocr = data.get("ocrAnalysis") or {}
    biometric = data.get("biometric") or {}
    findings = data.get("findings") or {}

    try:
        tamper_risk = TamperRisk(str(tampering.get("overallTamperRisk", "NONE")).upper())
    except ValueError:
        tamper_risk = TamperRisk.NONE

    indicators = tuple(
        TamperIndicator(
            type=str(i.get("type", "UNKNOWN")),
            severity=str(i.get("severity", "LOW")),
            confidence=_clamp_unit(i.get("confidence", 0)),
            description=str(i.get("description", "")),
        )
        for i in tampering.get("indicators") or []
        if isinstance(i, dict)
    )

    return ForensicReport(
        document_id=document_id,
        analysis_id=str(uuid.uuid4()),
        overall_score=_clamp_score(compliance.get("overall", 0)),
        breakdown=ScoreBreakdown(
            integrity=_clamp_score(compliance.get("integrity", 0)),
            authenticity=_clamp_score(compliance.get("authenticity", 0)),
            metadata=_clamp_score(compliance.get("metadata", 0)),
            ocr=_clamp_score(compliance.get("ocr", 0)),
            biometric=_clamp_score(compliance.get("biometric", 0)),
            security=_clamp_score(compliance.get("security", 0)),
        ),
        tampering_detected=bool(tampering.get("detected", False)),
        tamper_risk=tamper_risk,
        tamper_indicators=indicators,
        has_face_image=bool(biometric.get("hasFaceImage", False)),
        face_confidence=_clamp_unit(biometric.get("faceConfidence", 0)),
        face_quality=biometric.get("faceQuality"),
        facial_features=biometric.get("facialFeatures"),
        extracted_text=str(ocr.get("extractedText", "")),
        ocr_confidence=_clamp_unit(ocr.get("confidence", 0)),
        findings=Findings(
            strengths=tuple(findings.get("strengths") or ()),
            weaknesses=tuple(findings.get("weaknesses") or ()),
            anomalies=tuple(findings.get("anomalies") or ()),
            recommendations=tuple(findings.get("recommendations") or ()),
        ),
        recommended_action=compliance.get("recommendedAction"),
        ai_model=model,
    )


class GeminiForensicAnalyzer(IForensicAnalyzer):
    """Gemini-powered forensic analysis for government documents."""

    def __init__(self, api_key: str, model_name: str = "gemini-2.0-flash"):
        self.model_name = model_name
        self.client = genai.Client(api_key=api_key)

    def analyze(self, request: AnalysisInput) -> ForensicReport:
        t0 = time.perf_counter()
        raw = ""
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Part.from_bytes(data=request.file_bytes, mime_type=request.mime_type),
                    SYSTEM_PROMPT + "\n\n" + self._build_prompt(request),
                ],
                config={
                    "temperature": 0.1,
                    "max_output_tokens": 2048,
                },
            )
            raw = strip_code_fence(response.text or "")
            report = parse_forensic_json(json.loads(raw), request.document_id, self.model_name)
        except json.JSONDecodeError as e:
            raise AnalysisFailed(f"JSON parse error: {e}. Raw: {raw[:200]}")
        except ValidationError as e:
            raise AnalysisFailed(f"Invalid forensic report: {e.message}")
        except Exception as e:
            raise AnalysisFailed(f"LLM error: {e}")

        latency = (time.perf_counter() - t0) * 1000
        logger.info(f"Gemini analysis for {request.document_id}: score={report.overall_score} ({latency:.0f}ms)")
        return report

    def health_check(self) -> dict:
        t0 = time.perf_counter()
        try:
            self.client.models.get(model=self.model_name)
        except Exception as e:
            logger.warning(f"Gemini health check failed: {e}")
            return {"status": "UNAVAILABLE", "apiConnected": False}
        return {
            "status": "HEALTHY",
            "apiConnected": True,
            "avgResponseTimeMs": round((time.perf_counter() - t0) * 1000, 1),
        }

    def _build_prompt(self, request: AnalysisInput) -> str:
        """Build the user prompt with document context."""
        parts = [f"Analyze this {request.document_type} document for forgery and tampering.\n"]
        if request.options.get("performBiometricAnalysis", True):
            parts.append("Include biometric (portrait) analysis.")
        if request.options.get("performMRZAnalysis"):
            parts.append("Validate the machine readable zone (MRZ) if present.")
        if request.options.get("strictMode"):
            parts.append("Strict mode: penalise any uncertainty heavily.")
        expected = request.options.get("expectedMetadata")
        if expected:
            parts.append("\n## Expected metadata")
            for name, value in sorted(expected.items()):
                parts.append(f"  {name}: {value}")
        return "\n".join(parts)
