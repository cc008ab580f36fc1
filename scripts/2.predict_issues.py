r"""Thin wrapper to classify a file of new issues with a saved model.

Usage examples (PowerShell):
# classify data\new_issues.tsv with the most recently written model
# & .\venv\Scripts\python.exe .\scripts\2.predict_issues.py --input data\new_issues.tsv --preset last

# explicit model and output location
# & .\venv\Scripts\python.exe .\scripts\2.predict_issues.py --model models\model.json.gz --input data\new_issues.tsv --output results\predictions
"""
from __future__ import annotations

import sys
import argparse
import logging
import subprocess
from pathlib import Path

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def find_most_recent_model(base: Path) -> Path | None:
    if not base.exists():
        return None
    models = [p for p in base.iterdir() if p.is_file() and p.name.endswith((".json", ".json.gz"))]
    if not models:
        return None
    return max(models, key=lambda p: p.stat().st_mtime)


def build_cmd(model: Path, input_path: Path, output: Path) -> list:
    return [
        sys.executable,
        "-m",
        "issue_classifier.cli",
        "predict",
        "--model",
        str(model),
        "--input",
        str(input_path),
        "--output",
        str(output),
    ]


def main(argv: list[str] | None = None) -> int:
    repo_root = Path(__file__).resolve().parents[1]
    default_models = repo_root / "models"
    parser = argparse.ArgumentParser(description="Classify issues with a saved model (thin wrapper).")
    parser.add_argument("--model", type=Path, help="Model artifact")
    parser.add_argument("--input", type=Path, required=True, help="TSV file of issues")
    parser.add_argument("--output", type=Path, help="Prefix for the CSV/JSON prediction files")
    parser.add_argument("--preset", choices=["last"], help="Use the most recent model in models/")
    args = parser.parse_args(argv)

    model = args.model
    if args.preset == "last" and not model:
        model = find_most_recent_model(default_models)
        if not model:
            logger.error("No model artifacts found in %s", default_models)
            return 2
        logger.info("Auto-detected most recent model: %s", model)
    if not model:
        model = default_models / "model.json.gz"

    output = args.output or (repo_root / "results" / f"predictions_{args.input.stem}")
    cmd = build_cmd(model.resolve(), args.input.resolve(), output.resolve())
    logger.info("Running prediction: %s", " ".join(map(str, cmd)))

    try:
        res = subprocess.run(cmd, check=False)
        return res.returncode
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception:
        logger.exception("Failed to run prediction subprocess")
        return 3


if __name__ == "__main__":
    raise SystemExit(main())
