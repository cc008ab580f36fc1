"""Tests for fitting the composed classification pipeline."""

from __future__ import annotations

import numpy as np
import pytest

from issue_classifier.classification import pipeline as pipeline_module
from issue_classifier.classification.pipeline import IssueClassificationPipeline
from issue_classifier.config import PipelineConfig
from issue_classifier.data_processing.loader import Record, read_records
from issue_classifier.errors import DegenerateLabelSetError, EmptyTrainingSetError


def test_fit_produces_consistent_model(corpus, fast_config):
    model = IssueClassificationPipeline(fast_config).fit(corpus)
    assert model.classes == ["performance", "bug", "documentation"]
    assert model.linear_model.weights.shape == (3, model.featurizer.dimension)
    assert model.predict_proba(corpus).shape == (len(corpus), 3)


def test_fit_is_deterministic(corpus, fast_config):
    first = IssueClassificationPipeline(fast_config).fit(corpus)
    second = IssueClassificationPipeline(fast_config).fit(corpus)
    assert np.array_equal(first.linear_model.weights, second.linear_model.weights)
    assert first.predict(corpus) == second.predict(corpus)


def test_single_label_file_fails_before_training(tmp_path, tsv_writer, monkeypatch):
    records = [Record(title=f"issue {i}", description="text", label="bug", id=str(i)) for i in range(5)]
    path = tsv_writer(tmp_path / "one_label.tsv", records)

    def fail(*args, **kwargs):
        raise AssertionError("optimizer must not run")

    monkeypatch.setattr(pipeline_module, "make_trainer", fail)
    with pytest.raises(DegenerateLabelSetError):
        IssueClassificationPipeline().fit(read_records(path))


def test_empty_training_set():
    with pytest.raises(EmptyTrainingSetError):
        IssueClassificationPipeline().fit([])


def test_unlabeled_training_records_are_rejected(corpus):
    records = corpus[:4] + [Record(title="x", description="y")]
    with pytest.raises(ValueError):
        IssueClassificationPipeline().fit(records)


def test_default_config_is_sdca_with_unigrams_and_bigrams():
    config = PipelineConfig()
    assert config.trainer.kind.value == "sdca_softmax"
    assert config.featurizer.word_ngrams == (1, 2)
    assert config.featurizer.min_frequency == 1
    assert config.featurizer.weighting == "tf"


def test_config_round_trips_through_dict(perceptron_config):
    assert PipelineConfig.from_dict(perceptron_config.to_dict()) == perceptron_config


def test_training_accuracy_beats_majority_baseline(corpus, perceptron_config):
    model = IssueClassificationPipeline(perceptron_config).fit(corpus)
    predictions = model.predict(corpus)
    accuracy = np.mean([p == r.label for p, r in zip(predictions, corpus)])
    assert accuracy >= 1 / 3
