"""
Composition of the featurizer, label encoder and trainer.

`IssueClassificationPipeline.fit` runs the steps in order on labeled
records and returns an `IssueClassifierModel`, the complete fitted state
(frozen vocabularies, label map and weights) needed for evaluation,
persistence and prediction.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

import numpy as np

from ..config import PipelineConfig
from ..data_processing.loader import Record
from ..errors import DegenerateLabelSetError, EmptyTrainingSetError
from .featurizer import IssueFeaturizer
from .label_encoder import IssueLabelEncoder
from .trainers import LinearModel, make_trainer

LOG = logging.getLogger(__name__)


class IssueClassifierModel:
    """A fitted pipeline: featurizer, label map and linear model."""

    def __init__(
        self,
        config: PipelineConfig,
        featurizer: IssueFeaturizer,
        label_encoder: IssueLabelEncoder,
        linear_model: LinearModel,
    ):
        if linear_model.n_classes != label_encoder.n_classes:
            raise ValueError(
                f"model has {linear_model.n_classes} classes, label map has {label_encoder.n_classes}"
            )
        if linear_model.n_features != featurizer.dimension:
            raise ValueError(
                f"model expects {linear_model.n_features} features, featurizer yields {featurizer.dimension}"
            )
        self.config = config
        self.featurizer = featurizer
        self.label_encoder = label_encoder
        self.linear_model = linear_model

    @property
    def classes(self) -> List[str]:
        return self.label_encoder.classes

    def transform(self, records: Sequence[Record]):
        return self.featurizer.transform(records)

    def decision_function(self, records: Sequence[Record]) -> np.ndarray:
        """Raw class scores, columns ordered like `classes`."""
        records = list(records)
        if not records:
            return np.zeros((0, len(self.classes)))
        return self.linear_model.decision_function(self.transform(records))

    def predict_proba(self, records: Sequence[Record]) -> np.ndarray:
        """Class probabilities, columns ordered like `classes`."""
        scores = self.decision_function(records)
        if not len(scores):
            return scores
        return self.linear_model.probabilities(scores)

    def predict(self, records: Sequence[Record]) -> List[str]:
        scores = self.decision_function(records)
        return self.label_encoder.inverse_transform(np.argmax(scores, axis=1))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(trainer={self.config.trainer.kind.value}, "
            f"classes={len(self.classes)}, features={self.featurizer.dimension})"
        )


class IssueClassificationPipeline:
    """Featurize -> encode labels -> train, configured by one `PipelineConfig`."""

    def __init__(self, config: PipelineConfig = None):
        self.config = config if config is not None else PipelineConfig()

    def fit(self, records: Iterable[Record]) -> IssueClassifierModel:
        records = list(records)
        if not records:
            raise EmptyTrainingSetError("cannot fit a pipeline on zero records")
        unlabeled = sum(1 for r in records if r.label is None)
        if unlabeled:
            raise ValueError(f"{unlabeled} training records have no label")

        label_encoder = IssueLabelEncoder().fit(r.label for r in records)
        if label_encoder.n_classes < 2:
            raise DegenerateLabelSetError(
                f"training data has a single label {label_encoder.classes[0]!r}; "
                "at least two are required"
            )
        y = label_encoder.transform(r.label for r in records)

        featurizer = IssueFeaturizer(self.config.featurizer)
        X = featurizer.fit_transform(records)
        LOG.info(
            "Training %s on %d records, %d features, %d classes",
            self.config.trainer.kind.value, X.shape[0], X.shape[1], label_encoder.n_classes,
        )

        trainer = make_trainer(self.config.trainer)
        linear_model = trainer.fit(X, y, label_encoder.n_classes)
        return IssueClassifierModel(self.config, featurizer, label_encoder, linear_model)
