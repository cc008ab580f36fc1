"""Shared pytest fixtures: a small deterministic corpus of synthetic issues."""

from __future__ import annotations

import random
from pathlib import Path
from typing import Callable, Dict, List, Sequence

import pytest

from issue_classifier.config import FeaturizerConfig, PipelineConfig, TrainerConfig, TrainerKind
from issue_classifier.data_processing.loader import Record

# ============================================================================
# Corpus vocabulary per label
# ============================================================================

VOCABULARY: Dict[str, Dict[str, List[str]]] = {
    "performance": {
        "components": ["WebSockets", "SignalR hub", "Kestrel server", "HttpClient", "JSON serializer"],
        "titles": ["communication is slow", "is slow in my machine", "has high latency", "uses too much memory"],
        "details": [
            "is going slow in my development machine",
            "takes seconds to respond under load",
            "latency spikes when many clients connect",
            "the benchmark shows a throughput regression",
        ],
    },
    "bug": {
        "components": ["Entity Framework", "database migration", "login page", "model binder", "DbContext"],
        "titles": ["crashes", "throws NullReferenceException", "fails with an exception", "returns wrong result"],
        "details": [
            "when connecting to the database it is crashing",
            "an unhandled exception is thrown on startup",
            "the stack trace points to a null reference",
            "the query returns an error instead of rows",
        ],
    },
    "documentation": {
        "components": ["getting started guide", "README", "API reference", "tutorial", "docs sample"],
        "titles": ["has a typo", "is outdated", "link is broken", "is missing an example"],
        "details": [
            "the documentation page has a typo in the second paragraph",
            "the sample code in the docs no longer compiles",
            "please update the tutorial text for the new version",
            "the link in the article points to a missing page",
        ],
    },
    "enhancement": {
        "components": ["configuration API", "CLI tool", "logging options", "dependency injection", "routing"],
        "titles": ["add support for options", "feature request", "would be nice to customize", "allow configuring"],
        "details": [
            "it would be great to add a new option for this",
            "please consider adding a feature to customize the behaviour",
            "a new extension point would allow configuring defaults",
            "proposal to support a builder overload",
        ],
    },
}


def make_issue(rng: random.Random, label: str, issue_id: str) -> Record:
    words = VOCABULARY[label]
    component = rng.choice(words["components"])
    title = f"{component} {rng.choice(words['titles'])}"
    description = f"The {component} {rng.choice(words['details'])}, {rng.choice(words['details'])}."
    return Record(title=title, description=description, label=label, id=issue_id)


def build_corpus(labels: Sequence[str], per_label: int, seed: int = 7) -> List[Record]:
    """Interleaved records, `per_label` of each label."""
    rng = random.Random(seed)
    records = []
    for i in range(per_label):
        for label in labels:
            records.append(make_issue(rng, label, f"{label[:3]}-{i}"))
    return records


def write_tsv(path: Path, records: Sequence[Record], header: str = "ID\tArea\tTitle\tDescription") -> Path:
    lines = [header]
    for r in records:
        lines.append("\t".join([r.id or "", r.label or "", r.title, r.description]))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def corpus() -> List[Record]:
    return build_corpus(["performance", "bug", "documentation"], per_label=40)


@pytest.fixture
def held_out_corpus() -> List[Record]:
    return build_corpus(["performance", "bug", "documentation"], per_label=10, seed=99)


@pytest.fixture
def corpus_factory() -> Callable[..., List[Record]]:
    return build_corpus


@pytest.fixture
def tsv_writer() -> Callable[..., Path]:
    return write_tsv


@pytest.fixture
def fast_config() -> PipelineConfig:
    return PipelineConfig(trainer=TrainerConfig(max_epochs=10, seed=0), n_folds=5)


@pytest.fixture
def perceptron_config() -> PipelineConfig:
    return PipelineConfig(
        featurizer=FeaturizerConfig(word_ngrams=(1,), char_ngrams=(3,)),
        trainer=TrainerConfig(kind=TrainerKind.ONE_VS_ALL_PERCEPTRON, max_epochs=10, seed=0),
    )


@pytest.fixture
def train_tsv(tmp_path, corpus) -> Path:
    return write_tsv(tmp_path / "issues_train.tsv", corpus)


@pytest.fixture
def test_tsv(tmp_path, held_out_corpus) -> Path:
    return write_tsv(tmp_path / "issues_test.tsv", held_out_corpus)
