"""Tests for text normalisation and the field featurizers."""

from __future__ import annotations

import numpy as np
import pytest
from sklearn.feature_extraction.text import TfidfTransformer

from issue_classifier.classification.featurizer import (
    FieldFeaturizer,
    IssueFeaturizer,
    Vocabulary,
    build_vocabulary,
    extract_features,
)
from issue_classifier.config import FeaturizerConfig
from issue_classifier.data_processing.loader import Record
from issue_classifier.data_processing.utils import char_ngrams, normalise_text, tokenize, word_ngrams
from issue_classifier.errors import NotFittedError

UNIGRAMS = FeaturizerConfig(word_ngrams=(1,), norm="none")


def _records(*titles):
    return [Record(title=t, description="") for t in titles]


class TestNormalisation:
    def test_lowercases_and_strips_punctuation(self):
        assert normalise_text("Hello, World!! (EF_Core)") == "hello world ef core"

    def test_non_string_becomes_empty(self):
        assert normalise_text(None) == ""
        assert tokenize("   ") == []

    def test_word_bigrams(self):
        assert word_ngrams(["a", "b", "c"], 2) == ["w:a b", "w:b c"]
        assert word_ngrams(["a"], 2) == []

    def test_char_ngrams_pad_tokens(self):
        assert char_ngrams(["ab"], 3) == ["c:<ab", "c:ab>"]
        assert char_ngrams(["a"], 3) == ["c:<a>"]

    def test_extract_features_combines_sizes(self):
        config = FeaturizerConfig(word_ngrams=(1, 2), char_ngrams=())
        assert extract_features("Slow hub", config) == ["w:slow", "w:hub", "w:slow hub"]


class TestVocabulary:
    def test_indices_follow_discovery_order(self):
        vocab = build_vocabulary(["b a", "a c"], UNIGRAMS)
        assert vocab.features == ["w:b", "w:a", "w:c"]
        assert vocab.document_frequency == [1, 2, 1]
        assert vocab.n_documents == 2

    def test_document_frequency_counts_each_document_once(self):
        vocab = build_vocabulary(["a a a"], UNIGRAMS)
        assert vocab.document_frequency == [1]

    def test_min_frequency_drops_rare_features(self):
        config = FeaturizerConfig(word_ngrams=(1,), min_frequency=2)
        assert build_vocabulary(["b a", "a c"], config).features == ["w:a"]

    def test_max_features_keeps_most_frequent(self):
        config = FeaturizerConfig(word_ngrams=(1,), max_features=2)
        assert build_vocabulary(["b a", "a c"], config).features == ["w:b", "w:a"]

    def test_round_trips_through_dict(self):
        vocab = build_vocabulary(["b a", "a c"], UNIGRAMS)
        assert Vocabulary.from_dict(vocab.to_dict()).features == vocab.features

    def test_rejects_duplicates(self):
        with pytest.raises(ValueError):
            Vocabulary(features=["w:a", "w:a"], document_frequency=[1, 1], n_documents=1)


class TestFieldFeaturizer:
    def test_transform_before_fit_raises(self):
        with pytest.raises(NotFittedError):
            FieldFeaturizer("title", UNIGRAMS).transform(_records("x"))

    def test_counts_known_tokens_and_ignores_unseen(self):
        step = FieldFeaturizer("title", UNIGRAMS).fit(_records("hello world"))
        row = step.transform(_records("hello hello there")).toarray()
        assert row.tolist() == [[2.0, 0.0]]

    def test_l2_normalises_rows(self):
        step = FieldFeaturizer("title", FeaturizerConfig(word_ngrams=(1,))).fit(_records("a b c", "a"))
        matrix = step.transform(_records("a b c", "a a", "zzz")).toarray()
        norms = np.linalg.norm(matrix, axis=1)
        assert np.allclose(norms[:2], 1.0)
        assert norms[2] == 0.0

    def test_binary_weighting(self):
        config = FeaturizerConfig(word_ngrams=(1,), weighting="binary", norm="none")
        step = FieldFeaturizer("title", config).fit(_records("a b"))
        assert step.transform(_records("a a a")).toarray().tolist() == [[1.0, 0.0]]

    def test_tfidf_downweights_common_features(self):
        config = FeaturizerConfig(word_ngrams=(1,), weighting="tfidf", norm="none")
        step = FieldFeaturizer("title", config).fit(_records("common rare", "common"))
        common, rare = step.transform(_records("common rare")).toarray()[0]
        assert common == pytest.approx(1.0)
        assert rare > common

    def test_restored_idf_matches_a_fitted_tfidf_transformer(self, corpus):
        counts_config = FeaturizerConfig(word_ngrams=(1,), norm="none")
        counts = FieldFeaturizer("title", counts_config).fit(corpus).transform(corpus)
        tfidf_config = FeaturizerConfig(word_ngrams=(1,), weighting="tfidf")
        step = FieldFeaturizer("title", tfidf_config).fit(corpus)
        expected = TfidfTransformer(smooth_idf=True).fit(counts)
        assert np.allclose(step.idf_, expected.idf_)
        assert np.allclose(step.transform(corpus).toarray(), expected.transform(counts).toarray())

    def test_empty_vocabulary_gives_zero_width_block(self):
        config = FeaturizerConfig(word_ngrams=(1,), min_frequency=5)
        step = FieldFeaturizer("title", config).fit(_records("a", "b"))
        assert step.dimension == 0
        assert step.transform(_records("a", "c")).shape == (2, 0)

    def test_transform_is_deterministic(self, corpus):
        step = FieldFeaturizer("description", FeaturizerConfig()).fit(corpus)
        first = step.transform(corpus)
        second = step.transform(corpus)
        assert (first != second).nnz == 0

    def test_unknown_field_is_rejected(self):
        with pytest.raises(ValueError):
            FieldFeaturizer("body", UNIGRAMS).fit(_records("x"))


class TestIssueFeaturizer:
    def test_concatenates_title_and_description_blocks(self):
        records = [Record(title="crash", description="database crash")]
        featurizer = IssueFeaturizer(UNIGRAMS).fit(records)
        assert featurizer.feature_names() == [
            "title/w:crash",
            "description/w:database",
            "description/w:crash",
        ]
        assert featurizer.transform(records).toarray().tolist() == [[1.0, 1.0, 1.0]]

    def test_same_word_gets_separate_columns_per_field(self):
        featurizer = IssueFeaturizer(UNIGRAMS).fit([Record(title="slow", description="slow")])
        row = featurizer.transform_record(Record(title="slow", description="")).toarray()
        assert row.tolist() == [[1.0, 0.0]]

    def test_dimension_is_fixed_after_fit(self, corpus):
        featurizer = IssueFeaturizer(FeaturizerConfig()).fit(corpus)
        unseen = [Record(title="totally new words", description="nothing familiar here")]
        assert featurizer.transform(unseen).shape == (1, featurizer.dimension)

    def test_rebuilds_from_vocabularies(self, corpus):
        config = FeaturizerConfig(char_ngrams=(3,))
        featurizer = IssueFeaturizer(config).fit(corpus)
        restored = IssueFeaturizer.from_vocabularies(config, featurizer.vocabularies)
        assert (featurizer.transform(corpus) != restored.transform(corpus)).nnz == 0


class TestFeaturizerConfig:
    def test_rejects_unknown_weighting(self):
        with pytest.raises(ValueError):
            FeaturizerConfig(weighting="bm25")

    def test_requires_some_ngrams(self):
        with pytest.raises(ValueError):
            FeaturizerConfig(word_ngrams=(), char_ngrams=())

    def test_round_trips_through_dict(self):
        config = FeaturizerConfig(word_ngrams=(1, 2, 3), char_ngrams=(3,), max_features=50)
        assert FeaturizerConfig.from_dict(config.to_dict()) == config
