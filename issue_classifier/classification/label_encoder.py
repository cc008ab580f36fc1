"""Bidirectional mapping between label strings and dense class indices."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from ..errors import NotFittedError, UnknownLabelError


class IssueLabelEncoder:
    """Assigns class indices ``0..K-1`` in first-seen order.

    Unlike scikit-learn's `LabelEncoder` the classes are not sorted, so the
    index of a label depends only on where it first appears in the
    training data.
    """

    def __init__(self, classes: Optional[Sequence[str]] = None):
        self._classes: Optional[List[str]] = None
        self._index: Dict[str, int] = {}
        if classes is not None:
            self._set_classes(list(classes))

    def _set_classes(self, classes: List[str]) -> None:
        if len(set(classes)) != len(classes):
            raise ValueError("label classes must be unique")
        self._classes = classes
        self._index = {label: i for i, label in enumerate(classes)}

    def fit(self, labels: Iterable[str]) -> "IssueLabelEncoder":
        self._set_classes(list(dict.fromkeys(labels)))
        return self

    @property
    def classes(self) -> List[str]:
        if self._classes is None:
            raise NotFittedError("label encoder must be fitted before use")
        return list(self._classes)

    @property
    def n_classes(self) -> int:
        return len(self.classes)

    def __contains__(self, label: str) -> bool:
        return label in self._index

    def encode(self, label: str) -> int:
        if self._classes is None:
            raise NotFittedError("label encoder must be fitted before use")
        try:
            return self._index[label]
        except KeyError:
            raise UnknownLabelError(f"label {label!r} was not seen during training") from None

    def transform(self, labels: Iterable[str]) -> np.ndarray:
        return np.fromiter((self.encode(label) for label in labels), dtype=np.int64)

    def fit_transform(self, labels: Sequence[str]) -> np.ndarray:
        return self.fit(labels).transform(labels)

    def decode(self, index: int) -> str:
        classes = self.classes
        if not 0 <= index < len(classes):
            raise UnknownLabelError(f"class index {index} is outside 0..{len(classes) - 1}")
        return classes[index]

    def inverse_transform(self, indices: Iterable[int]) -> List[str]:
        return [self.decode(int(i)) for i in indices]
