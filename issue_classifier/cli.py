r"""Command-line entry point for training and applying the issue classifier.

Usage examples:

    # full workflow on the default data/ files, model written to models/
    issue-classifier train

    # explicit files, one-vs-all perceptrons, 6 folds on 3 threads
    issue-classifier train --train data\issues_train.tsv --test data\issues_test.tsv \
        --model models\ova.json.gz --trainer one_vs_all_perceptron --folds 6 --jobs 3

    # classify a file of new issues (labels optional) and write CSV + JSON
    issue-classifier predict --model models\model.json.gz --input data\new_issues.tsv --output results\predictions

    # classify one issue
    issue-classifier predict --title "EF crashes" --description "When connecting to the database"

Exit status is 0 on success and 1 when the pipeline reports an error.
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from . import config as settings
from .classification.persistence import load_model
from .classification.prediction import PredictionEngine
from .config import FeaturizerConfig, PipelineConfig, TrainerConfig, TrainerKind
from .data_processing.loader import Record
from .errors import IssueClassifierError
from .pipelines import predict_file, run_training_workflow

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="issue-classifier", description="Train and apply a GitHub issue classifier.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")
    sub = parser.add_subparsers(dest="command", required=True)

    train = sub.add_parser("train", help="Cross-validate, train, evaluate and save a model")
    train.add_argument("--train", type=Path, default=settings.TRAIN_DATA_PATH, help="Training TSV file")
    train.add_argument("--test", type=Path, default=settings.TEST_DATA_PATH, help="Test TSV file")
    train.add_argument("--model", type=Path, default=settings.MODEL_PATH, help="Where to write the model artifact")
    train.add_argument(
        "--trainer",
        choices=[kind.value for kind in TrainerKind],
        default=TrainerKind.SDCA_SOFTMAX.value,
        help="Training strategy",
    )
    train.add_argument("--folds", type=int, default=5, help="Number of cross-validation folds")
    train.add_argument("--stratified", action="store_true", help="Stratify folds by label")
    train.add_argument("--jobs", type=int, default=1, help="Folds to run concurrently")
    train.add_argument("--epochs", type=int, default=TrainerConfig.max_epochs, help="Maximum training epochs")
    train.add_argument("--l2", type=float, default=TrainerConfig.l2_regularization, help="L2 regularization strength")
    train.add_argument("--seed", type=int, default=settings.DEFAULT_SEED, help="Random seed")
    train.add_argument("--word-ngrams", type=int, nargs="+", default=[1, 2], help="Word n-gram sizes")
    train.add_argument("--char-ngrams", type=int, nargs="*", default=[], help="Character n-gram sizes")
    train.add_argument("--min-frequency", type=int, default=1, help="Minimum document frequency per feature")
    train.add_argument("--weighting", choices=["tf", "binary", "tfidf"], default="tf", help="Term weighting")
    train.add_argument("--progress", action="store_true", help="Show progress bars")

    predict = sub.add_parser("predict", help="Classify issues with a saved model")
    predict.add_argument("--model", type=Path, default=settings.MODEL_PATH, help="Model artifact to load")
    predict.add_argument("--input", type=Path, help="TSV file of issues to classify")
    predict.add_argument("--output", type=Path, help="Write predictions to <output>.csv and <output>.json")
    predict.add_argument("--title", help="Title of a single issue")
    predict.add_argument("--description", default="", help="Description of a single issue")
    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    featurizer = FeaturizerConfig(
        word_ngrams=tuple(args.word_ngrams),
        char_ngrams=tuple(args.char_ngrams),
        min_frequency=args.min_frequency,
        weighting=args.weighting,
    )
    trainer = TrainerConfig(
        kind=TrainerKind(args.trainer),
        l2_regularization=args.l2,
        max_epochs=args.epochs,
        seed=args.seed,
        show_progress=args.progress,
    )
    return PipelineConfig(featurizer=featurizer, trainer=trainer, n_folds=args.folds, stratified=args.stratified, n_jobs=args.jobs)


def _train(args: argparse.Namespace) -> int:
    result = run_training_workflow(args.train, args.test, args.model, config_from_args(args))
    summary = result.cross_validation.summary["macro_accuracy"]
    print(
        f"Cross-validated macro-accuracy {summary.mean:.4f} (std {summary.std:.4f}); "
        f"test macro-accuracy {result.test_metrics.macro_accuracy:.4f}; model saved to {result.model_path}"
    )
    return 0


def _predict(args: argparse.Namespace) -> int:
    if args.input is None and args.title is None:
        logger.error("Either --input or --title is required.")
        return 2
    if args.input is not None:
        predictions = predict_file(args.model, args.input, args.output)
        print(predictions[["id", "predicted_label", "confidence"]].to_string(index=False))
    if args.title is not None:
        engine = PredictionEngine(load_model(args.model))
        prediction = engine.predict(Record(title=args.title, description=args.description), return_probabilities=True)
        print(f"{prediction.label}\t{prediction.confidence:.4f}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        if args.command == "train":
            return _train(args)
        return _predict(args)
    except (IssueClassifierError, ValueError) as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
