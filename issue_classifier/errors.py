"""
Exception hierarchy for the issue classifier.

Every error raised deliberately by the package derives from
`IssueClassifierError`, so command-line entry points can catch one type
and report a diagnostic instead of a traceback.
"""

from __future__ import annotations

from typing import Optional


class IssueClassifierError(Exception):
    """Base class for all issue classifier errors."""


class SchemaError(IssueClassifierError):
    """The header of an input file does not match the expected columns."""


class ParseError(IssueClassifierError):
    """A data row could not be parsed into a record."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class EmptyTrainingSetError(IssueClassifierError):
    """Training was requested on zero examples."""


class DegenerateLabelSetError(IssueClassifierError):
    """Fewer than two distinct labels are present in the training data."""


class UnknownLabelError(IssueClassifierError, LookupError):
    """A label is not part of the fitted label map."""


class NotFittedError(IssueClassifierError):
    """A component was used before `fit` was called."""


class NotFoundError(IssueClassifierError, FileNotFoundError):
    """A file required by the pipeline does not exist."""


class CorruptArtifactError(IssueClassifierError):
    """A model artifact is unreadable, truncated or fails validation."""
