"""
Text featurization for issue titles and descriptions.

Each text field is handled by its own `FieldFeaturizer` step: `fit`
learns a frozen `Vocabulary` of word and character n-grams from the
training records, `transform` maps records to sparse count vectors over
that vocabulary.  `IssueFeaturizer` sequences the field steps and
concatenates their blocks, so title evidence and description evidence
get separate weights in the model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import scipy.sparse as sp
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.feature_extraction.text import CountVectorizer, TfidfTransformer
from sklearn.preprocessing import normalize

from ..config import FeaturizerConfig
from ..data_processing.loader import Record
from ..data_processing.utils import char_ngrams, remove_stopwords, tokenize, word_ngrams
from ..errors import NotFittedError

LOG = logging.getLogger(__name__)

TEXT_FIELDS = ("title", "description")


@dataclass
class Vocabulary:
    """Frozen feature-key to column-index table for one text field."""

    features: List[str]
    document_frequency: List[int]
    n_documents: int
    index: Dict[str, int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if len(self.features) != len(self.document_frequency):
            raise ValueError("features and document_frequency differ in length")
        self.index = {feat: i for i, feat in enumerate(self.features)}
        if len(self.index) != len(self.features):
            raise ValueError("vocabulary contains duplicate features")

    def __len__(self) -> int:
        return len(self.features)

    def __contains__(self, feature: str) -> bool:
        return feature in self.index

    def idf(self) -> np.ndarray:
        """Smoothed inverse document frequency, ``ln((1+N)/(1+df)) + 1``."""
        df = np.asarray(self.document_frequency, dtype=np.float64)
        return np.log((1.0 + self.n_documents) / (1.0 + df)) + 1.0

    def to_dict(self) -> dict:
        return {
            "features": list(self.features),
            "document_frequency": list(self.document_frequency),
            "n_documents": self.n_documents,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Vocabulary":
        return cls(
            features=list(data["features"]),
            document_frequency=[int(v) for v in data["document_frequency"]],
            n_documents=int(data["n_documents"]),
        )


def extract_features(text: str, config: FeaturizerConfig) -> List[str]:
    """Return the feature keys of `text` in order of appearance (with repeats)."""
    tokens = tokenize(text)
    if config.remove_stopwords:
        tokens = remove_stopwords(tokens)
    features: List[str] = []
    for n in config.word_ngrams:
        features.extend(word_ngrams(tokens, n))
    for n in config.char_ngrams:
        features.extend(char_ngrams(tokens, n))
    return features


def build_vocabulary(texts: Iterable[str], config: FeaturizerConfig) -> Vocabulary:
    """Count document frequencies and freeze the surviving features.

    Features are indexed in discovery order.  Features seen in fewer than
    `config.min_frequency` documents are dropped; if `config.max_features`
    is set only the most frequent ones are kept (ties resolved by
    discovery order).
    """
    doc_freq: Dict[str, int] = {}
    n_documents = 0
    for text in texts:
        n_documents += 1
        for feat in dict.fromkeys(extract_features(text, config)):
            doc_freq[feat] = doc_freq.get(feat, 0) + 1

    kept = [feat for feat, count in doc_freq.items() if count >= config.min_frequency]
    if config.max_features is not None and len(kept) > config.max_features:
        discovery = {feat: i for i, feat in enumerate(kept)}
        by_frequency = sorted(kept, key=lambda f: (-doc_freq[f], discovery[f]))
        selected = set(by_frequency[: config.max_features])
        kept = [feat for feat in kept if feat in selected]

    LOG.debug(
        "Vocabulary: %d of %d features kept from %d documents",
        len(kept), len(doc_freq), n_documents,
    )
    return Vocabulary(
        features=kept,
        document_frequency=[doc_freq[f] for f in kept],
        n_documents=n_documents,
    )


class FieldFeaturizer(BaseEstimator, TransformerMixin):
    """Fit/transform step for a single text field of a `Record`.

    Counting, idf weighting and row normalisation go through scikit-learn's
    `CountVectorizer`, `TfidfTransformer` and `normalize`; only the
    vocabulary itself is built here, because it is indexed in discovery
    order rather than sorted.
    """

    def __init__(self, field: str = "title", config: Optional[FeaturizerConfig] = None):
        self.field = field
        self.config = config

    @property
    def _config(self) -> FeaturizerConfig:
        return self.config if self.config is not None else FeaturizerConfig()

    def _texts(self, records: Iterable[Record]) -> List[str]:
        if self.field not in TEXT_FIELDS:
            raise ValueError(f"unknown text field {self.field!r}; expected one of {TEXT_FIELDS}")
        return [getattr(r, self.field) for r in records]

    def _set_vocabulary(self, vocabulary: Vocabulary) -> None:
        config = self._config
        self.vocabulary_ = vocabulary
        self.counter_ = CountVectorizer(
            analyzer=partial(extract_features, config=config),
            vocabulary=vocabulary.index,
            token_pattern=None,
            binary=config.weighting == "binary",
            dtype=np.float64,
        ) if len(vocabulary) else None
        self.tfidf_ = None
        if config.weighting == "tfidf" and len(vocabulary):
            self.tfidf_ = TfidfTransformer(norm=None, smooth_idf=True)
            self.tfidf_.idf_ = vocabulary.idf()

    def fit(self, records: Sequence[Record], y=None) -> "FieldFeaturizer":
        self._set_vocabulary(build_vocabulary(self._texts(records), self._config))
        return self

    @classmethod
    def from_vocabulary(
        cls, field: str, config: FeaturizerConfig, vocabulary: Vocabulary
    ) -> "FieldFeaturizer":
        step = cls(field=field, config=config)
        step._set_vocabulary(vocabulary)
        return step

    @property
    def vocabulary(self) -> Vocabulary:
        vocabulary = getattr(self, "vocabulary_", None)
        if vocabulary is None:
            raise NotFittedError(f"featurizer for {self.field!r} must be fitted before transform")
        return vocabulary

    @property
    def idf_(self) -> Optional[np.ndarray]:
        return None if self.tfidf_ is None else self.tfidf_.idf_

    @property
    def dimension(self) -> int:
        return len(self.vocabulary)

    def transform(self, records: Iterable[Record]) -> sp.csr_matrix:
        vocabulary = self.vocabulary
        texts = self._texts(records)
        if self.counter_ is None:
            return sp.csr_matrix((len(texts), 0), dtype=np.float64)
        matrix = self.counter_.transform(texts)
        if self.tfidf_ is not None:
            matrix = self.tfidf_.transform(matrix)
        if self._config.norm == "l2":
            matrix = normalize(matrix, norm="l2")
        return sp.csr_matrix(matrix, shape=(len(texts), len(vocabulary)))


class IssueFeaturizer:
    """Ordered feature steps whose outputs are concatenated column-wise."""

    def __init__(self, config: FeaturizerConfig, steps: Optional[List[FieldFeaturizer]] = None):
        self.config = config
        self.steps = steps if steps is not None else [
            FieldFeaturizer(field=name, config=config) for name in TEXT_FIELDS
        ]

    def fit(self, records: Sequence[Record]) -> "IssueFeaturizer":
        for step in self.steps:
            step.fit(records)
            LOG.info("Featurized %s: %d features", step.field, step.dimension)
        return self

    def transform(self, records: Sequence[Record]) -> sp.csr_matrix:
        blocks = [step.transform(records) for step in self.steps]
        return sp.hstack(blocks, format="csr")

    def fit_transform(self, records: Sequence[Record]) -> sp.csr_matrix:
        return self.fit(records).transform(records)

    def transform_record(self, record: Record) -> sp.csr_matrix:
        """Featurize one record into a 1 x D row."""
        return self.transform([record])

    @property
    def dimension(self) -> int:
        return sum(step.dimension for step in self.steps)

    @property
    def vocabularies(self) -> Dict[str, Vocabulary]:
        return {step.field: step.vocabulary for step in self.steps}

    def feature_names(self) -> List[str]:
        """Column names of the concatenated vector, ``<field>/<feature>``."""
        return [f"{step.field}/{feat}" for step in self.steps for feat in step.vocabulary.features]

    @classmethod
    def from_vocabularies(
        cls, config: FeaturizerConfig, vocabularies: Dict[str, Vocabulary]
    ) -> "IssueFeaturizer":
        steps = [
            FieldFeaturizer.from_vocabulary(name, config, vocabularies[name]) for name in TEXT_FIELDS
        ]
        return cls(config, steps=steps)
