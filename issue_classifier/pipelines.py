"""
High‑level pipeline orchestration functions.

`run_training_workflow` performs the full batch sequence on a training
and a test file: load, peek at the features, cross-validate, fit, try a
single prediction, evaluate on the test set, save the model, reload it
and predict again.  `predict_file` applies a saved model to an
unlabeled file.  Use these functions from the command line (see
`issue_classifier.cli`) or import them into your own scripts/notebooks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from . import config as settings
from .classification.cross_validation import (
    CrossValidationResult,
    cross_validate,
    format_cross_validation,
)
from .classification.evaluation import Metrics, evaluate, format_metrics
from .classification.persistence import load_model, save_model
from .classification.pipeline import IssueClassificationPipeline, IssueClassifierModel
from .classification.prediction import PredictionEngine
from .config import PipelineConfig
from .data_processing.loader import Record, label_distribution, read_records, records_to_frame
from .utils.file_io import write_csv, write_records_json

LOG = logging.getLogger(__name__)

SAMPLE_ISSUE = Record(
    title="WebSockets communication is slow in my machine",
    description=(
        "The WebSockets communication used under the covers by SignalR looks like "
        "is going slow in my development machine.."
    ),
)

RELOADED_SAMPLE_ISSUE = Record(
    title="Entity Framework crashes",
    description="When connecting to the database, EF is crashing",
)


@dataclass
class WorkflowResult:
    model: IssueClassifierModel
    cross_validation: CrossValidationResult
    test_metrics: Metrics
    model_path: Path
    sample_prediction: str
    reloaded_prediction: str


def peek_features(
    model: IssueClassifierModel, records: Sequence[Record], n: int = 2
) -> List[Dict[str, float]]:
    """Log and return the non-zero features of the first `n` records."""
    sample = list(records)[:n]
    if not sample:
        return []
    names = model.featurizer.feature_names()
    matrix = model.transform(sample)
    peeked = []
    for i, record in enumerate(sample):
        start, end = matrix.indptr[i], matrix.indptr[i + 1]
        features = {
            names[j]: float(v) for j, v in zip(matrix.indices[start:end], matrix.data[start:end])
        }
        peeked.append(features)
        LOG.info(
            "Peek record %s (%s): %d active features %s",
            record.id or i, record.label, len(features), sorted(features)[:10],
        )
    return peeked


def run_training_workflow(
    train_path: Path = settings.TRAIN_DATA_PATH,
    test_path: Path = settings.TEST_DATA_PATH,
    model_path: Path = settings.MODEL_PATH,
    config: Optional[PipelineConfig] = None,
) -> WorkflowResult:
    """Train, validate, evaluate and persist an issue classifier.

    Any loader, featurizer or trainer error aborts the workflow and
    propagates to the caller.
    """
    config = config if config is not None else PipelineConfig()

    LOG.info("=============== Loading dataset ===============")
    train_records = read_records(train_path)
    test_records = read_records(test_path)
    LOG.info("Training label distribution:\n%s", label_distribution(train_records).to_string())

    LOG.info("=============== Cross-validating to get model's accuracy metrics ===============")
    cv_result = cross_validate(train_records, config)
    LOG.info("\n%s", format_cross_validation(cv_result, config.trainer.kind.value))

    LOG.info("=============== Training the model ===============")
    model = IssueClassificationPipeline(config).fit(train_records)
    peek_features(model, train_records, n=2)

    engine = PredictionEngine(model)
    sample_prediction = engine.predict(SAMPLE_ISSUE)
    LOG.info("Single prediction with the just-trained model: %s", sample_prediction)

    LOG.info("=============== Evaluating on the test set ===============")
    test_metrics = evaluate(model, test_records)
    LOG.info("\n%s", format_metrics(test_metrics, config.trainer.kind.value))

    LOG.info("=============== Saving the model to %s ===============", model_path)
    model_path = save_model(model, model_path)

    LOG.info("=============== Loading the model from %s ===============", model_path)
    reloaded = load_model(model_path)
    reloaded_prediction = PredictionEngine(reloaded).predict(RELOADED_SAMPLE_ISSUE)
    LOG.info("Single prediction with the reloaded model: %s", reloaded_prediction)

    return WorkflowResult(
        model=model,
        cross_validation=cv_result,
        test_metrics=test_metrics,
        model_path=model_path,
        sample_prediction=sample_prediction,
        reloaded_prediction=reloaded_prediction,
    )


def label_unlabeled(model: IssueClassifierModel, records: Sequence[Record]) -> pd.DataFrame:
    """Predict labels for records and return an augmented DataFrame."""
    records = list(records)
    predictions = PredictionEngine(model).predict_many(records)
    frame = records_to_frame(records)
    frame["predicted_label"] = [p.label for p in predictions]
    frame["confidence"] = [p.confidence for p in predictions]
    return frame


def save_predictions(predictions: pd.DataFrame, output_path: Path) -> None:
    """Save predictions to CSV and JSON formats."""
    output_path = Path(output_path)
    write_csv(predictions, output_path.with_suffix(".csv"))
    write_records_json(predictions, output_path.with_suffix(".json"))


def predict_file(model_path: Path, input_path: Path, output_path: Optional[Path] = None) -> pd.DataFrame:
    """Classify every record of `input_path` with the model at `model_path`.

    Labels in the input are optional and ignored.  When `output_path` is
    given the predictions are written next to it as CSV and JSON.
    """
    model = load_model(model_path)
    records = read_records(input_path, require_label=False)
    predictions = label_unlabeled(model, records)
    if output_path is not None:
        save_predictions(predictions, output_path)
        LOG.info("Wrote %d predictions to %s.{csv,json}", len(predictions), Path(output_path).with_suffix(""))
    return predictions
