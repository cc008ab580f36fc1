"""
Issue Classifier Package

This package trains a linear text classifier that assigns GitHub issues
(title and description) to an area label.  Modules are organised by
stage: `data_processing` reads and normalises issues, `classification`
featurizes, trains, validates, evaluates, persists and predicts, and
`pipelines` orchestrates the whole batch workflow.
"""

from . import config  # noqa: F401
from . import pipelines  # noqa: F401

__all__ = [
    "config",
    "pipelines",
]
