"""Single-record and batch prediction on a fitted or loaded model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

import numpy as np

from ..data_processing.loader import Record
from .pipeline import IssueClassifierModel


@dataclass(frozen=True)
class IssuePrediction:
    label: str
    probabilities: Dict[str, float]

    @property
    def confidence(self) -> float:
        return self.probabilities[self.label]


class PredictionEngine:
    """Applies a model to raw records.

    The engine keeps no state besides the model, so calls are independent
    and may be made in any order.  A record's `label` is ignored.
    """

    def __init__(self, model: IssueClassifierModel):
        self.model = model

    def _predictions(self, records: List[Record]) -> List[IssuePrediction]:
        classes = self.model.classes
        scores = self.model.decision_function(records)
        if not len(scores):
            return []
        probabilities = self.model.linear_model.probabilities(scores)
        return [
            IssuePrediction(
                label=classes[int(np.argmax(row_scores))],
                probabilities={label: float(p) for label, p in zip(classes, row)},
            )
            for row_scores, row in zip(scores, probabilities)
        ]

    def predict(
        self, record: Record, return_probabilities: bool = False
    ) -> Union[str, IssuePrediction]:
        """Predict the label of one record.

        Returns the label string, or an `IssuePrediction` carrying the full
        probability distribution when `return_probabilities` is true.
        """
        prediction = self._predictions([record])[0]
        return prediction if return_probabilities else prediction.label

    def predict_many(self, records: Iterable[Record]) -> List[IssuePrediction]:
        return self._predictions(list(records))

    def predict_text(self, title: str, description: str = "", issue_id: Optional[str] = None) -> str:
        return self.predict(Record(title=title, description=description, id=issue_id))
