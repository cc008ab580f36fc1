"""
K-fold cross-validation.

Every fold fits a brand-new `IssueClassificationPipeline` on its
training partition only, so vocabularies, label maps and weights never
leak between folds or from a validation partition.  Folds are
independent and may run on a thread pool.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np
from sklearn.model_selection import KFold, StratifiedKFold
from tqdm import tqdm

from ..config import PipelineConfig
from ..data_processing.loader import Record
from ..errors import EmptyTrainingSetError
from .evaluation import SCALAR_METRICS, Metrics, evaluate
from .pipeline import IssueClassificationPipeline, IssueClassifierModel

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricSummary:
    mean: float
    std: float
    confidence_interval_95: float


@dataclass(frozen=True)
class FoldResult:
    fold: int
    train_indices: np.ndarray
    validation_indices: np.ndarray
    model: IssueClassifierModel
    metrics: Metrics


@dataclass(frozen=True)
class CrossValidationResult:
    folds: Tuple[FoldResult, ...]
    summary: Dict[str, MetricSummary]

    @property
    def n_folds(self) -> int:
        return len(self.folds)

    def metric_values(self, name: str) -> List[float]:
        return [getattr(f.metrics, name) for f in self.folds]


def summarize(values: Sequence[float]) -> MetricSummary:
    """Mean, sample standard deviation and 95% confidence half-width."""
    values = np.asarray(values, dtype=np.float64)
    mean = float(values.mean())
    if len(values) < 2:
        return MetricSummary(mean=mean, std=0.0, confidence_interval_95=0.0)
    std = float(values.std(ddof=1))
    return MetricSummary(
        mean=mean, std=std, confidence_interval_95=1.96 * std / math.sqrt(len(values) - 1)
    )


def fold_indices(
    records: Sequence[Record], n_folds: int, seed: int, stratified: bool = False
) -> List[Tuple[np.ndarray, np.ndarray]]:
    """Deterministic (train, validation) index pairs for each fold."""
    if len(records) < n_folds:
        raise ValueError(f"{len(records)} records cannot be split into {n_folds} folds")
    positions = np.arange(len(records))
    if stratified:
        splitter = StratifiedKFold(n_splits=n_folds, shuffle=True, random_state=seed)
        return list(splitter.split(positions, [r.label for r in records]))
    splitter = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
    return list(splitter.split(positions))


def _run_fold(
    fold: int,
    records: Sequence[Record],
    train_idx: np.ndarray,
    val_idx: np.ndarray,
    config: PipelineConfig,
) -> FoldResult:
    train = [records[i] for i in train_idx]
    validation = [records[i] for i in val_idx]
    model = IssueClassificationPipeline(config).fit(train)
    metrics = evaluate(model, validation)
    LOG.info(
        "Fold %d: %d train / %d validation, macro-accuracy %.4f",
        fold, len(train), len(validation), metrics.macro_accuracy,
    )
    return FoldResult(fold, train_idx, val_idx, model, metrics)


def cross_validate(
    records: Sequence[Record], config: PipelineConfig = None, n_folds: int = None
) -> CrossValidationResult:
    """Fit and score one pipeline per fold and aggregate the metrics.

    `n_folds` defaults to ``config.n_folds``; ``config.n_jobs > 1`` runs
    folds on a thread pool.  Fit errors in any fold propagate.
    """
    config = config if config is not None else PipelineConfig()
    n_folds = n_folds if n_folds is not None else config.n_folds
    records = list(records)
    if not records:
        raise EmptyTrainingSetError("cannot cross-validate on zero records")
    if n_folds < 2:
        raise ValueError("n_folds must be >= 2")

    splits = fold_indices(records, n_folds, config.seed, config.stratified)
    LOG.info("Cross-validating %d records in %d folds", len(records), n_folds)

    if config.n_jobs > 1:
        with ThreadPoolExecutor(max_workers=config.n_jobs) as pool:
            futures = [
                pool.submit(_run_fold, fold, records, train_idx, val_idx, config)
                for fold, (train_idx, val_idx) in enumerate(splits)
            ]
            folds = [f.result() for f in tqdm(futures, desc="folds", disable=not config.trainer.show_progress)]
    else:
        folds = [
            _run_fold(fold, records, train_idx, val_idx, config)
            for fold, (train_idx, val_idx) in tqdm(
                list(enumerate(splits)), desc="folds", disable=not config.trainer.show_progress
            )
        ]

    summary = {
        name: summarize([getattr(f.metrics, name) for f in folds]) for name in SCALAR_METRICS
    }
    return CrossValidationResult(folds=tuple(folds), summary=summary)


def format_cross_validation(result: CrossValidationResult, name: str = "model") -> str:
    """Render averaged fold metrics as a console report."""
    lines = [
        "*" * 78,
        f"*    Metrics for {name} multi-class classification, {result.n_folds} folds",
        "*" + "-" * 77,
    ]
    for metric in SCALAR_METRICS:
        s = result.summary[metric]
        lines.append(
            f"*    Average {metric + ':':<20} {s.mean:.4f}  - std: ({s.std:.4f}), "
            f"ci95: ({s.confidence_interval_95:.4f})"
        )
    lines.append("*" * 78)
    return "\n".join(lines)
