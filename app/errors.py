"""Error taxonomy for the report pipeline.

Every error carries a client-facing message, optional structured details and
the HTTP status it maps to at the request boundary.
"""

from typing import Any, Dict, Optional


class ReportParserError(Exception):
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(ReportParserError):
    """Missing file, disallowed type, oversized payload or unknown language."""

    status_code = 400


class ProviderError(ReportParserError):
    """Failure talking to S3, Textract, OpenAI or Translate."""


class AnalysisFailed(ReportParserError):
    """The analysis provider reported the job as failed."""

    def __init__(self, job_id: str, reason: str) -> None:
        super().__init__(
            f"Document analysis failed: {reason}",
            {"reason": "failed", "jobId": job_id, "providerMessage": reason},
        )
        self.job_id = job_id
        self.reason = reason


class AnalysisTimedOut(ReportParserError):
    """Polling gave up before the job reached a terminal state."""

    def __init__(self, job_id: str, attempts: int) -> None:
        super().__init__(
            "Document analysis is still in progress; try again later",
            {"reason": "timeout", "jobId": job_id, "attempts": attempts},
        )
        self.job_id = job_id
        self.attempts = attempts


class TransformError(ReportParserError):
    """Summarization or translation provider failure."""
