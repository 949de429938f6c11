"""
Error types raised inside the support pipeline.

Not-found results are not errors; they are carried as ResultStatus.NOT_FOUND.
"""


class PipelineError(Exception):
    """Base class for pipeline errors."""


class ClassificationFailure(PipelineError):
    """The optional AI classification step failed or returned malformed output."""


class LookupFailure(PipelineError):
    """An external capability call errored or timed out."""

    def __init__(self, message: str, capability: str = "unknown"):
        super().__init__(message)
        self.capability = capability


class SearchUnavailable(LookupFailure):
    """The order-number search capability is not available for this store."""


class PipelineFailure(PipelineError):
    """Unrecoverable inconsistency inside the classify/plan/dispatch/format chain."""
