"""Tests for the label encoder."""

from __future__ import annotations

import pytest

from issue_classifier.classification.label_encoder import IssueLabelEncoder
from issue_classifier.errors import NotFittedError, UnknownLabelError


def test_indices_follow_first_appearance():
    encoder = IssueLabelEncoder().fit(["bug", "docs", "bug", "perf", "docs"])
    assert encoder.classes == ["bug", "docs", "perf"]
    assert encoder.transform(["perf", "bug"]).tolist() == [2, 0]


def test_inverse_transform_restores_labels():
    encoder = IssueLabelEncoder()
    indices = encoder.fit_transform(["b", "a", "c", "a"])
    assert encoder.inverse_transform(indices) == ["b", "a", "c", "a"]


def test_unknown_label_is_rejected():
    encoder = IssueLabelEncoder(["bug", "docs"])
    with pytest.raises(UnknownLabelError):
        encoder.encode("feature")
    with pytest.raises(UnknownLabelError):
        encoder.decode(2)
    assert isinstance(UnknownLabelError("x"), LookupError)


def test_use_before_fit():
    encoder = IssueLabelEncoder()
    with pytest.raises(NotFittedError):
        encoder.classes
    with pytest.raises(NotFittedError):
        encoder.encode("bug")


def test_duplicate_explicit_classes():
    with pytest.raises(ValueError):
        IssueLabelEncoder(["bug", "bug"])
