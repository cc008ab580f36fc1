"""
Project configuration settings.

Directory paths are resolved once at import time and may be overridden
through environment variables (or a `.env` file in the working
directory).  The model configuration is a set of dataclasses that is
passed explicitly into every component that needs it; nothing in the
package reads configuration from module globals at fit or predict time.
"""

from __future__ import annotations

import enum
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

# Base directory for storing input and output data.
BASE_DIR: Path = Path(__file__).resolve().parents[1]

###############################################################################
# Directory paths
###############################################################################

# Training and test TSV files live here
DATA_DIR: Path = Path(os.getenv("ISSUE_CLASSIFIER_DATA_DIR", BASE_DIR / "data"))

# Persisted model artifacts
MODELS_DIR: Path = Path(os.getenv("ISSUE_CLASSIFIER_MODELS_DIR", BASE_DIR / "models"))

TRAIN_DATA_PATH: Path = DATA_DIR / "issues_train.tsv"
TEST_DATA_PATH: Path = DATA_DIR / "issues_test.tsv"
MODEL_PATH: Path = MODELS_DIR / "model.json.gz"

# Seed shared by shuffling, fold assignment and the optimizers
DEFAULT_SEED: int = int(os.getenv("ISSUE_CLASSIFIER_SEED", "0"))

###############################################################################
# Model configuration
###############################################################################

WEIGHTINGS = ("tf", "binary", "tfidf")
NORMS = ("l2", "none")


class TrainerKind(str, enum.Enum):
    """Training strategy used to fit the weight matrix."""

    SDCA_SOFTMAX = "sdca_softmax"
    ONE_VS_ALL_PERCEPTRON = "one_vs_all_perceptron"


@dataclass(frozen=True)
class FeaturizerConfig:
    """How free text is turned into feature vectors."""

    word_ngrams: Tuple[int, ...] = (1, 2)
    char_ngrams: Tuple[int, ...] = ()
    min_frequency: int = 1
    max_features: Optional[int] = None
    weighting: str = "tf"
    norm: str = "l2"
    remove_stopwords: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "word_ngrams", tuple(int(n) for n in self.word_ngrams))
        object.__setattr__(self, "char_ngrams", tuple(int(n) for n in self.char_ngrams))
        if not self.word_ngrams and not self.char_ngrams:
            raise ValueError("at least one word or character n-gram size is required")
        if any(n < 1 for n in self.word_ngrams + self.char_ngrams):
            raise ValueError("n-gram sizes must be positive")
        if self.min_frequency < 1:
            raise ValueError("min_frequency must be >= 1")
        if self.max_features is not None and self.max_features < 1:
            raise ValueError("max_features must be >= 1 when set")
        if self.weighting not in WEIGHTINGS:
            raise ValueError(f"weighting must be one of {WEIGHTINGS}, got {self.weighting!r}")
        if self.norm not in NORMS:
            raise ValueError(f"norm must be one of {NORMS}, got {self.norm!r}")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["word_ngrams"] = list(self.word_ngrams)
        data["char_ngrams"] = list(self.char_ngrams)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeaturizerConfig":
        return cls(**data)


@dataclass(frozen=True)
class TrainerConfig:
    """Optimizer settings for both training strategies.

    `l2_regularization`, `convergence_tolerance` and `max_epochs` drive the
    SDCA optimizer; `learning_rate` and `max_epochs` drive the averaged
    perceptron.
    """

    kind: TrainerKind = TrainerKind.SDCA_SOFTMAX
    l2_regularization: float = 1e-4
    max_epochs: int = 20
    convergence_tolerance: float = 1e-2
    learning_rate: float = 1.0
    seed: int = DEFAULT_SEED
    show_progress: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", TrainerKind(self.kind))
        if self.l2_regularization <= 0:
            raise ValueError("l2_regularization must be positive")
        if self.max_epochs < 1:
            raise ValueError("max_epochs must be >= 1")
        if self.convergence_tolerance < 0:
            raise ValueError("convergence_tolerance must be >= 0")
        if self.learning_rate <= 0:
            raise ValueError("learning_rate must be positive")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrainerConfig":
        return cls(**data)


@dataclass(frozen=True)
class PipelineConfig:
    featurizer: FeaturizerConfig = field(default_factory=FeaturizerConfig)
    trainer: TrainerConfig = field(default_factory=TrainerConfig)
    n_folds: int = 5
    stratified: bool = False
    n_jobs: int = 1

    def __post_init__(self) -> None:
        if self.n_folds < 2:
            raise ValueError("n_folds must be >= 2")
        if self.n_jobs < 1:
            raise ValueError("n_jobs must be >= 1")

    @property
    def seed(self) -> int:
        return self.trainer.seed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "featurizer": self.featurizer.to_dict(),
            "trainer": self.trainer.to_dict(),
            "n_folds": self.n_folds,
            "stratified": self.stratified,
            "n_jobs": self.n_jobs,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        data = dict(data)
        featurizer = FeaturizerConfig.from_dict(data.pop("featurizer", {}))
        trainer = TrainerConfig.from_dict(data.pop("trainer", {}))
        return cls(featurizer=featurizer, trainer=trainer, **data)
