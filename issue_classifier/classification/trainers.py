"""
Multiclass linear trainers.

Two strategies produce the same `LinearModel` (a K x D weight matrix plus
a bias vector):

* `SdcaMaximumEntropyTrainer` minimises L2-regularised softmax
  cross-entropy with stochastic dual coordinate ascent.
* `OneVsAllPerceptronTrainer` fits K averaged perceptrons, each
  separating one class from the rest.

`make_trainer` picks the strategy from `TrainerConfig.kind`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Type

import numpy as np
import scipy.sparse as sp
from scipy.special import log_expit, logsumexp, softmax
from tqdm import tqdm

from ..config import TrainerConfig, TrainerKind
from ..errors import DegenerateLabelSetError, EmptyTrainingSetError

LOG = logging.getLogger(__name__)

SOFTMAX = "softmax"
NORMALIZED_SIGMOID = "normalized_sigmoid"
LINKS = (SOFTMAX, NORMALIZED_SIGMOID)


@dataclass
class LinearModel:
    """Weights and bias of a fitted multiclass linear classifier.

    `link` names the mapping from raw class scores to probabilities:
    ``softmax`` for maximum-entropy models, ``normalized_sigmoid`` for
    one-vs-all models (per-class sigmoid confidences rescaled to sum to
    one).
    """

    weights: np.ndarray
    bias: np.ndarray
    link: str = SOFTMAX

    def __post_init__(self) -> None:
        self.weights = np.asarray(self.weights, dtype=np.float64)
        self.bias = np.asarray(self.bias, dtype=np.float64)
        if self.weights.ndim != 2:
            raise ValueError("weights must be a 2-D matrix")
        if self.bias.shape != (self.weights.shape[0],):
            raise ValueError(
                f"bias shape {self.bias.shape} does not match {self.weights.shape[0]} classes"
            )
        if self.link not in LINKS:
            raise ValueError(f"unknown link {self.link!r}")

    @property
    def n_classes(self) -> int:
        return self.weights.shape[0]

    @property
    def n_features(self) -> int:
        return self.weights.shape[1]

    def decision_function(self, X) -> np.ndarray:
        """Raw class scores ``X . W^T + b`` with shape (n, K)."""
        if X.shape[1] != self.n_features:
            raise ValueError(f"expected {self.n_features} features, got {X.shape[1]}")
        scores = X @ self.weights.T
        return np.asarray(scores, dtype=np.float64) + self.bias

    def probabilities(self, scores: np.ndarray) -> np.ndarray:
        """Apply the link to raw scores of shape (n, K)."""
        if self.link == SOFTMAX:
            return softmax(scores, axis=1)
        # sigmoid(s_k) / sum_j sigmoid(s_j), computed in log space
        return softmax(log_expit(scores), axis=1)

    def predict_proba(self, X) -> np.ndarray:
        return self.probabilities(self.decision_function(X))

    def predict(self, X) -> np.ndarray:
        # Both links are monotone, so the raw scores decide; saturated
        # probabilities can tie where the scores do not.  argmax returns the
        # first maximum, i.e. the lowest class index on ties.
        return np.argmax(self.decision_function(X), axis=1)


def _check_training_set(X, y: np.ndarray, n_classes: int) -> None:
    if X.shape[0] == 0 or len(y) == 0:
        raise EmptyTrainingSetError("cannot train on zero examples")
    if X.shape[0] != len(y):
        raise ValueError(f"{X.shape[0]} feature rows but {len(y)} labels")
    distinct = np.unique(y)
    if n_classes < 2 or len(distinct) < 2:
        raise DegenerateLabelSetError(
            f"at least two distinct labels are required, found {len(distinct)}"
        )
    if distinct.min() < 0 or distinct.max() >= n_classes:
        raise ValueError(f"label indices must lie in 0..{n_classes - 1}")


class LinearTrainer:
    """Common entry point; subclasses implement `_fit`."""

    link = SOFTMAX

    def __init__(self, config: TrainerConfig):
        self.config = config
        self.history_: List[Dict[str, float]] = []

    def fit(self, X, y, n_classes: int) -> LinearModel:
        """Fit on sparse features `X` (n x D) and class indices `y`."""
        y = np.asarray(y, dtype=np.int64)
        _check_training_set(X, y, n_classes)
        X = sp.csr_matrix(X, dtype=np.float64)
        X.sort_indices()
        self.history_ = []
        weights, bias = self._fit(X, y, n_classes)
        return LinearModel(weights=weights, bias=bias, link=self.link)

    def _epochs(self, desc: str):
        return tqdm(range(self.config.max_epochs), desc=desc, disable=not self.config.show_progress)

    def _fit(self, X: sp.csr_matrix, y: np.ndarray, n_classes: int):
        raise NotImplementedError


class SdcaMaximumEntropyTrainer(LinearTrainer):
    """Softmax regression trained by stochastic dual coordinate ascent.

    Objective (the bias acts as the weight of a constant feature of 1)::

        P(W) = mean_i [logsumexp(W x_i) - (W x_i)_{y_i}] + (l2 / 2) ||W||^2

    Every example owns a dual vector ``alpha_i`` with ``e_{y_i} - alpha_i``
    on the probability simplex and ``W = sum_i alpha_i x_i^T / (l2 * n)``.
    A visit moves ``alpha_i`` toward ``e_{y_i} - softmax(W x_i)`` by a step
    that lower-bounds the dual increase, so the dual never decreases.  The
    relative duality gap is checked after every epoch.
    """

    link = SOFTMAX

    def _fit(self, X: sp.csr_matrix, y: np.ndarray, n_classes: int):
        n, d = X.shape
        lam = self.config.l2_regularization
        scale = 1.0 / (lam * n)
        weights = np.zeros((n_classes, d))
        bias = np.zeros(n_classes)
        alpha = np.zeros((n, n_classes))
        sq_norms = np.asarray(X.multiply(X).sum(axis=1)).ravel() + 1.0
        rng = np.random.default_rng(self.config.seed)
        indptr, indices, data = X.indptr, X.indices, X.data

        for epoch in self._epochs("sdca"):
            for i in rng.permutation(n):
                cols = indices[indptr[i] : indptr[i + 1]]
                vals = data[indptr[i] : indptr[i + 1]]
                label = y[i]
                scores = weights[:, cols] @ vals + bias
                target = -softmax(scores)
                target[label] += 1.0
                current = alpha[i]
                delta = target - current
                delta_sq = float(delta @ delta)
                if delta_sq <= 1e-24:
                    continue
                # Local Fenchel-Young gap: loss + conjugate + alpha . scores
                simplex = -current
                simplex[label] += 1.0
                local_gap = (
                    logsumexp(scores) - scores[label]
                    + _neg_entropy(simplex)
                    + float(current @ scores)
                )
                step = (local_gap + 0.5 * delta_sq) / (delta_sq * (1.0 + sq_norms[i] * scale))
                step = min(1.0, max(0.0, step))
                if step == 0.0:
                    continue
                update = step * delta
                alpha[i] += update
                weights[:, cols] += np.outer(update * scale, vals)
                bias += update * scale

            primal, dual = _objectives(X, y, weights, bias, alpha, lam)
            gap = primal - dual
            relative_gap = gap / max(abs(primal), 1e-12)
            self.history_.append(
                {"epoch": epoch + 1, "primal": primal, "dual": dual, "relative_gap": relative_gap}
            )
            LOG.debug("SDCA epoch %d: primal=%.6f dual=%.6f gap=%.3g", epoch + 1, primal, dual, relative_gap)
            if relative_gap <= self.config.convergence_tolerance:
                LOG.info("SDCA converged after %d epochs (relative gap %.3g)", epoch + 1, relative_gap)
                break
        else:
            LOG.info(
                "SDCA stopped at the %d epoch budget (relative gap %.3g)",
                self.config.max_epochs, self.history_[-1]["relative_gap"],
            )
        return weights, bias


def _neg_entropy(p: np.ndarray) -> float:
    p = np.clip(p, 0.0, 1.0)
    safe = np.where(p > 0, p, 1.0)
    return float(np.sum(p * np.log(safe)))


def _objectives(X, y, weights, bias, alpha, lam):
    """Primal and dual objective values for the current iterate."""
    n = X.shape[0]
    scores = np.asarray(X @ weights.T) + bias
    loss = float(np.mean(logsumexp(scores, axis=1) - scores[np.arange(n), y]))
    regulariser = 0.5 * lam * (float(np.sum(weights * weights)) + float(bias @ bias))
    simplex = np.clip(-alpha, 0.0, 1.0)
    simplex[np.arange(n), y] = np.clip(1.0 - alpha[np.arange(n), y], 0.0, 1.0)
    safe = np.where(simplex > 0, simplex, 1.0)
    entropy = -np.sum(simplex * np.log(safe), axis=1)
    return loss + regulariser, float(np.mean(entropy)) - regulariser


class OneVsAllPerceptronTrainer(LinearTrainer):
    """K binary averaged perceptrons, class k against the rest.

    The binary problems are independent; they are advanced in lockstep
    over the same shuffled example order.  A classifier is updated when
    its margin ``y * score`` is not positive.  Training stops after an
    epoch without mistakes or at the epoch budget.
    """

    link = NORMALIZED_SIGMOID

    def _fit(self, X: sp.csr_matrix, y: np.ndarray, n_classes: int):
        n, d = X.shape
        lr = self.config.learning_rate
        weights = np.zeros((n_classes, d))
        bias = np.zeros(n_classes)
        # Running sums for the averaged weights (w_avg = w - u / c)
        weighted_updates = np.zeros((n_classes, d))
        weighted_bias = np.zeros(n_classes)
        counter = 1.0
        rng = np.random.default_rng(self.config.seed)
        indptr, indices, data = X.indptr, X.indices, X.data

        for epoch in self._epochs("perceptron"):
            mistakes = 0
            for i in rng.permutation(n):
                cols = indices[indptr[i] : indptr[i + 1]]
                vals = data[indptr[i] : indptr[i + 1]]
                targets = np.full(n_classes, -1.0)
                targets[y[i]] = 1.0
                scores = weights[:, cols] @ vals + bias
                wrong = np.flatnonzero(targets * scores <= 0)
                if wrong.size:
                    mistakes += wrong.size
                    update = lr * targets[wrong]
                    block = np.ix_(wrong, cols)
                    weights[block] += np.outer(update, vals)
                    bias[wrong] += update
                    weighted_updates[block] += counter * np.outer(update, vals)
                    weighted_bias[wrong] += counter * update
                counter += 1.0
            self.history_.append({"epoch": epoch + 1, "mistakes": mistakes})
            LOG.debug("Perceptron epoch %d: %d mistakes", epoch + 1, mistakes)
            if mistakes == 0:
                LOG.info("Perceptrons separated the training data after %d epochs", epoch + 1)
                break

        return weights - weighted_updates / counter, bias - weighted_bias / counter


TRAINERS: Dict[TrainerKind, Type[LinearTrainer]] = {
    TrainerKind.SDCA_SOFTMAX: SdcaMaximumEntropyTrainer,
    TrainerKind.ONE_VS_ALL_PERCEPTRON: OneVsAllPerceptronTrainer,
}


def make_trainer(config: TrainerConfig) -> LinearTrainer:
    """Instantiate the trainer selected by ``config.kind``."""
    return TRAINERS[config.kind](config)
