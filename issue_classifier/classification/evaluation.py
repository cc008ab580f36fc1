"""
Multiclass quality metrics.

`evaluate` scores a fitted model on labeled records and returns an
immutable `Metrics` value.  Classes that have no examples in the batch
never cause a division by zero: their recall is reported as ``None``
and they do not count towards macro-accuracy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from ..data_processing.loader import Record

LOG = logging.getLogger(__name__)

# Probabilities are clipped to this floor before taking logs
LOG_LOSS_EPSILON = 1e-15

SCALAR_METRICS = ("macro_accuracy", "micro_accuracy", "log_loss", "log_loss_reduction")


@dataclass(frozen=True)
class ClassMetrics:
    label: str
    support: int
    true_positives: int
    false_positives: int
    false_negatives: int
    precision: Optional[float]
    recall: Optional[float]


@dataclass(frozen=True)
class Metrics:
    """Result of one evaluation call.

    `confusion_matrix[i, j]` counts examples of `labels[i]` predicted as
    `labels[j]`.
    """

    n_examples: int
    macro_accuracy: float
    micro_accuracy: float
    log_loss: float
    log_loss_reduction: float
    per_class: Tuple[ClassMetrics, ...]
    labels: Tuple[str, ...]
    confusion_matrix: np.ndarray

    def scalars(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in SCALAR_METRICS}

    def per_class_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame([vars(c) for c in self.per_class])
        return frame.set_index("label")

    def class_metrics(self, label: str) -> ClassMetrics:
        for entry in self.per_class:
            if entry.label == label:
                return entry
        raise KeyError(label)


def compute_metrics(
    true_labels: Sequence[str],
    probabilities: np.ndarray,
    classes: Sequence[str],
    predicted_indices: Optional[Sequence[int]] = None,
) -> Metrics:
    """Build `Metrics` from true labels and per-class probabilities.

    Parameters
    ----------
    true_labels : sequence of str
        Ground truth; may contain labels outside `classes`.
    probabilities : array of shape (n, K)
        Model probabilities, columns ordered like `classes`.
    classes : sequence of str
        The model's label map, index order.
    predicted_indices : sequence of int, optional
        Predicted class per example.  Defaults to the argmax of
        `probabilities`.
    """
    n = len(true_labels)
    if n == 0:
        raise ValueError("cannot evaluate on zero examples")
    probabilities = np.asarray(probabilities, dtype=np.float64)
    if probabilities.shape != (n, len(classes)):
        raise ValueError(f"probabilities shape {probabilities.shape} != ({n}, {len(classes)})")

    class_index = {label: i for i, label in enumerate(classes)}
    if predicted_indices is None:
        predicted_indices = np.argmax(probabilities, axis=1)
    elif len(predicted_indices) != n:
        raise ValueError(f"{len(predicted_indices)} predictions for {n} examples")
    predicted = [classes[int(i)] for i in predicted_indices]
    # Labels unknown to the model still get a row so their misses are counted
    labels = list(classes) + [
        label for label in dict.fromkeys(true_labels) if label not in class_index
    ]
    matrix = confusion_matrix(list(true_labels), predicted, labels=labels)

    support = matrix.sum(axis=1)
    true_pos = np.diag(matrix)
    false_pos = matrix.sum(axis=0) - true_pos
    false_neg = support - true_pos

    present = support > 0
    macro = float(np.mean(true_pos[present] / support[present]))
    micro = float(true_pos.sum() / n)

    p_true = np.array(
        [probabilities[i, class_index[label]] if label in class_index else 0.0
         for i, label in enumerate(true_labels)]
    )
    log_loss = float(np.mean(-np.log(np.clip(p_true, LOG_LOSS_EPSILON, 1.0))))

    prior = support[present] / n
    prior_log_loss = float(-np.sum(prior * np.log(prior)))
    reduction = (prior_log_loss - log_loss) / prior_log_loss if prior_log_loss > 0 else 0.0

    per_class: List[ClassMetrics] = []
    for i, label in enumerate(labels):
        predicted_count = int(true_pos[i] + false_pos[i])
        per_class.append(
            ClassMetrics(
                label=label,
                support=int(support[i]),
                true_positives=int(true_pos[i]),
                false_positives=int(false_pos[i]),
                false_negatives=int(false_neg[i]),
                precision=float(true_pos[i] / predicted_count) if predicted_count else None,
                recall=float(true_pos[i] / support[i]) if support[i] else None,
            )
        )

    return Metrics(
        n_examples=n,
        macro_accuracy=macro,
        micro_accuracy=micro,
        log_loss=log_loss,
        log_loss_reduction=float(reduction),
        per_class=tuple(per_class),
        labels=tuple(labels),
        confusion_matrix=matrix,
    )


def evaluate(model, records: Sequence[Record]) -> Metrics:
    """Predict `records` with `model` and compare against their labels."""
    records = list(records)
    if not records:
        raise ValueError("cannot evaluate on zero examples")
    missing = sum(1 for r in records if r.label is None)
    if missing:
        raise ValueError(f"{missing} evaluation records have no label")
    scores = model.decision_function(records)
    probabilities = model.linear_model.probabilities(scores)
    metrics = compute_metrics(
        [r.label for r in records], probabilities, model.classes, np.argmax(scores, axis=1)
    )
    LOG.info(
        "Evaluated %d records: macro=%.4f micro=%.4f log-loss=%.4f",
        metrics.n_examples, metrics.macro_accuracy, metrics.micro_accuracy, metrics.log_loss,
    )
    return metrics


def _fmt(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.4f}"


def format_metrics(metrics: Metrics, name: str = "model") -> str:
    """Render metrics as a console report."""
    lines = [
        "*" * 78,
        f"*    Metrics for {name} multi-class classification",
        "*" + "-" * 77,
        f"*    MacroAccuracy:    {metrics.macro_accuracy:.4f}  (closer to 1 is better)",
        f"*    MicroAccuracy:    {metrics.micro_accuracy:.4f}  (closer to 1 is better)",
        f"*    LogLoss:          {metrics.log_loss:.4f}  (closer to 0 is better)",
        f"*    LogLossReduction: {metrics.log_loss_reduction:.4f}  (closer to 1 is better)",
        "*" * 78,
        f"{'label':<24} {'support':>8} {'precision':>10} {'recall':>10}",
    ]
    for entry in metrics.per_class:
        note = "" if entry.support else "  (no examples)"
        lines.append(
            f"{entry.label:<24} {entry.support:>8} {_fmt(entry.precision):>10} "
            f"{_fmt(entry.recall):>10}{note}"
        )
    return "\n".join(lines)
