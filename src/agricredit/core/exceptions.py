"""
Error taxonomy for the submission pipeline.

- SubmissionRejectedError: user-correctable rejection (nothing persisted)
- DependencyError: an external AI service failed
- AudioAnalysisError: the uploaded audio could not be inspected
"""

from typing import Optional


class AgriCreditError(Exception):
    """Base class for all application errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class SubmissionRejectedError(AgriCreditError):
    """Submission refused; the caller can correct and resubmit."""

    status_code = 400

    def __init__(
        self,
        message: str,
        reasons: Optional[list[str]] = None,
        fraud_score: Optional[int] = None,
    ):
        super().__init__(message)
        self.reasons = list(reasons or [])
        self.fraud_score = fraud_score


class InvalidLocationError(SubmissionRejectedError):
    """Coordinates outside physical latitude/longitude bounds."""


class DependencyError(AgriCreditError):
    """An external collaborator (speech-to-text, extraction) failed."""

    status_code = 502


class TranscriptionError(DependencyError):
    """Speech-to-text returned an error or no usable transcript."""


class ExtractionError(DependencyError):
    """Structured extraction could not produce a record."""


class AudioAnalysisError(AgriCreditError):
    """Audio file missing or unreadable."""
