r"""Thin wrapper for running the full training workflow.

Usage examples (PowerShell):
# train on data\issues_train.tsv / data\issues_test.tsv, write models\model.json.gz
# & .\venv\Scripts\python.exe .\scripts\1.train_classifier.py

# one-vs-all perceptrons, 6 folds in parallel
# & .\venv\Scripts\python.exe .\scripts\1.train_classifier.py --trainer one_vs_all_perceptron --folds 6 --jobs 6
"""
from __future__ import annotations

import sys
import argparse
import logging
import subprocess
from pathlib import Path

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def build_cmd(train: Path, test: Path, model: Path, trainer: str, folds: int, jobs: int, progress: bool) -> list:
    cmd = [
        sys.executable,
        "-m",
        "issue_classifier.cli",
        "train",
        "--train",
        str(train),
        "--test",
        str(test),
        "--model",
        str(model),
        "--trainer",
        trainer,
        "--folds",
        str(folds),
        "--jobs",
        str(jobs),
    ]
    if progress:
        cmd.append("--progress")
    return cmd


def main(argv: list[str] | None = None) -> int:
    repo_root = Path(__file__).resolve().parents[1]
    parser = argparse.ArgumentParser(description="Train the issue classifier (thin wrapper).")
    parser.add_argument("--train", type=Path, default=repo_root / "data" / "issues_train.tsv", help="Training TSV")
    parser.add_argument("--test", type=Path, default=repo_root / "data" / "issues_test.tsv", help="Test TSV")
    parser.add_argument("--model", type=Path, default=repo_root / "models" / "model.json.gz", help="Model output path")
    parser.add_argument("--trainer", choices=["sdca_softmax", "one_vs_all_perceptron"], default="sdca_softmax")
    parser.add_argument("--folds", type=int, default=5, help="Cross-validation folds")
    parser.add_argument("--jobs", type=int, default=1, help="Folds to run concurrently")
    parser.add_argument("--progress", action="store_true", help="Show progress bars")
    args = parser.parse_args(argv)

    for path in (args.train, args.test):
        if not path.exists():
            logger.error("Input file not found: %s", path)
            return 2

    cmd = build_cmd(args.train.resolve(), args.test.resolve(), args.model.resolve(), args.trainer, args.folds, args.jobs, args.progress)
    logger.info("Running training: %s", " ".join(map(str, cmd)))

    try:
        res = subprocess.run(cmd, check=False)
        return res.returncode
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception:
        logger.exception("Failed to run training subprocess")
        return 3


if __name__ == "__main__":
    raise SystemExit(main())
