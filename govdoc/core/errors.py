"""
Error taxonomy for the verification pipeline.

Every failure the core can raise is a PipelineError subclass with a
stable error_code and the HTTP status the API renders it with, so
callers can always tell the kinds apart.
"""

from typing import Any


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "pipeline_error",
        status_code: int = 500,
        details: list[dict] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(PipelineError):
    """Malformed input. Raised before any state change."""

    def __init__(self, message: str, details: list[dict] | None = None):
        super().__init__(
            message=message,
            error_code="validation_error",
            status_code=400,
            details=details,
        )


class AuthenticationError(PipelineError):
    """No actor identity on the request."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            error_code="unauthorized",
            status_code=401,
        )


class AuthorizationError(PipelineError):
    """Actor is known but lacks the required role."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(
            message=message,
            error_code="forbidden",
            status_code=403,
        )


class NotFoundError(PipelineError):
    """Unknown document, user or batch item."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} '{identifier}' not found"
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            message=message,
            error_code="not_found",
            status_code=404,
        )


class InvalidTransition(PipelineError):
    """Document is not in the state the requested transition expects."""

    def __init__(self, document_id: str, current_status: str, target: str):
        self.document_id = document_id
        self.current_status = current_status
        self.target = target
        super().__init__(
            message=f"Document '{document_id}' is {current_status}; cannot apply {target}",
            error_code="invalid_transition",
            status_code=409,
            details=[{"documentId": document_id, "currentStatus": current_status, "target": target}],
        )


class DuplicateIdentity(PipelineError):
    """Biometric hash already belongs to another account."""

    def __init__(self, biometric_hash: str, existing_owner=None):
        self.biometric_hash = biometric_hash
        self.existing_owner = existing_owner
        contact = getattr(existing_owner, "phone_number", None) or "Unknown"
        super().__init__(
            message=(
                "An identity is already linked to this biometric data. "
                f"If this is your document, please contact support. Existing account: {contact}"
            ),
            error_code="duplicate_identity",
            status_code=409,
            details=[{
                "existingUserId": getattr(existing_owner, "id", None),
                "existingAccountPhone": contact,
            }],
        )


class AnalysisFailed(PipelineError):
    """Analysis collaborator could not produce a report."""

    def __init__(self, message: str = "Forensic analysis failed"):
        super().__init__(
            message=message,
            error_code="analysis_failed",
            status_code=502,
        )


class IssuanceFailed(PipelineError):
    """Attestation or mint request was refused or errored."""

    def __init__(self, message: str = "Issuance failed", document_id: str | None = None):
        self.document_id = document_id
        super().__init__(
            message=message,
            error_code="issuance_failed",
            status_code=502,
        )


class CollaboratorTimeout(PipelineError):
    """An external call exceeded its deadline."""

    def __init__(self, operation: str, timeout_seconds: float):
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(
            message=f"{operation} timed out after {timeout_seconds:.1f}s",
            error_code="timeout",
            status_code=504,
        )


__all__ = [
    "PipelineError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "InvalidTransition",
    "DuplicateIdentity",
    "AnalysisFailed",
    "IssuanceFailed",
    "CollaboratorTimeout",
]
