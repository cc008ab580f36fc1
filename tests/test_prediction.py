"""Tests for the prediction engine."""

from __future__ import annotations

import random

import numpy as np
import pytest

from issue_classifier.classification.pipeline import IssueClassificationPipeline
from issue_classifier.classification.prediction import IssuePrediction, PredictionEngine
from issue_classifier.data_processing.loader import Record

WEBSOCKETS = Record(
    title="WebSockets communication is slow",
    description=(
        "The WebSockets communication used under the covers by SignalR looks like "
        "is going slow in my development machine.."
    ),
)


@pytest.fixture
def engine(corpus, fast_config):
    return PredictionEngine(IssueClassificationPipeline(fast_config).fit(corpus))


def test_websockets_issue_is_a_performance_issue(engine):
    assert engine.predict(WEBSOCKETS) == "performance"


def test_database_crash_is_a_bug(engine):
    assert engine.predict_text("Entity Framework crashes", "When connecting to the database, EF is crashing") == "bug"


def test_probabilities_cover_every_class(engine):
    prediction = engine.predict(WEBSOCKETS, return_probabilities=True)
    assert isinstance(prediction, IssuePrediction)
    assert set(prediction.probabilities) == set(engine.model.classes)
    assert sum(prediction.probabilities.values()) == pytest.approx(1.0)
    assert prediction.confidence == max(prediction.probabilities.values())


def test_label_on_input_is_ignored(engine):
    labeled = Record(title=WEBSOCKETS.title, description=WEBSOCKETS.description, label="bug")
    assert engine.predict(labeled, return_probabilities=True) == engine.predict(
        WEBSOCKETS, return_probabilities=True
    )


def test_predictions_come_from_training_labels(engine):
    rng = random.Random(5)
    words = ["alpha", "slow", "crash", "docs", "quantum", "", "the", "feature"]
    records = [
        Record(title=" ".join(rng.choices(words, k=3)), description=" ".join(rng.choices(words, k=6)))
        for _ in range(50)
    ]
    labels = {p.label for p in engine.predict_many(records)}
    assert labels <= set(engine.model.classes)


def test_calls_are_independent(engine):
    other = Record(title="README has a typo", description="the documentation page has a typo")
    first = engine.predict(WEBSOCKETS, return_probabilities=True)
    engine.predict(other)
    assert engine.predict(WEBSOCKETS, return_probabilities=True) == first


def test_empty_text_still_predicts_a_known_label(engine):
    assert engine.predict(Record(title="", description="")) in engine.model.classes


def test_predict_many_matches_single_predictions(engine, held_out_corpus):
    batch = engine.predict_many(held_out_corpus)
    singles = [engine.predict(r, return_probabilities=True) for r in held_out_corpus]
    assert [p.label for p in batch] == [p.label for p in singles]
    for a, b in zip(batch, singles):
        assert np.allclose(list(a.probabilities.values()), list(b.probabilities.values()))


def test_perceptron_model_predicts_performance(corpus, perceptron_config):
    engine = PredictionEngine(IssueClassificationPipeline(perceptron_config).fit(corpus))
    assert engine.predict(WEBSOCKETS) == "performance"
