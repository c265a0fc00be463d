"""Business services for activity verification and crediting."""

from agricredit.services.submission_pipeline import SubmissionPipeline

__all__ = ["SubmissionPipeline"]
