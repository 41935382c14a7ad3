from __future__ import annotations

from typing import List, Optional


class ReleaseNotesError(RuntimeError):
    pass


class RequestValidationError(ReleaseNotesError):
    """Carries every validation problem found, not just the first one."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid request")


class SourceFetchError(ReleaseNotesError):
    """Raised when the issue source fails (network, auth, bad payload)."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class RateLimitError(SourceFetchError):
    def __init__(self, message: str, *, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message, status=429)


class AggregationAbortedError(SourceFetchError):
    """A page fetch timed out; the aggregation was abandoned."""


class TemplateParseError(ReleaseNotesError):
    pass


class EmptyResultError(ReleaseNotesError):
    DEFAULT_SUGGESTIONS = [
        "Check that selected teams have completed issues in the specified date range",
        "Verify that issue filters (labels, priority, state) are not too restrictive",
        "Consider expanding the date range or removing some filters",
    ]

    def __init__(self, message: str = "No issues found matching the selected criteria",
                 *, details: Optional[str] = None, suggestions: Optional[List[str]] = None):
        self.details = details
        self.suggestions = list(suggestions) if suggestions is not None else list(self.DEFAULT_SUGGESTIONS)
        super().__init__(message)
