"""
Subpackage for supervised issue classification.

The modules follow the life of a model: `featurizer` and
`label_encoder` prepare the data, `trainers` fit the weights,
`pipeline` composes the three, `cross_validation` and `evaluation`
measure quality, `persistence` saves and restores fitted models and
`prediction` applies them to new issues.
"""

from .cross_validation import CrossValidationResult, cross_validate
from .evaluation import Metrics, evaluate, format_metrics
from .persistence import load_model, save_model
from .pipeline import IssueClassificationPipeline, IssueClassifierModel
from .prediction import IssuePrediction, PredictionEngine

__all__ = [
    "CrossValidationResult",
    "IssueClassificationPipeline",
    "IssueClassifierModel",
    "IssuePrediction",
    "Metrics",
    "PredictionEngine",
    "cross_validate",
    "evaluate",
    "format_metrics",
    "load_model",
    "save_model",
]
