"""Submission and confirmation."""

from deflex_swap.features.submission.service import SubmissionPipeline

__all__ = ["SubmissionPipeline"]
