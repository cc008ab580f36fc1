"""
Text normalisation helpers.

These functions turn a raw title or description into the token and
n-gram sequences consumed by the featurizer.  They are pure functions of
their input so that featurization stays deterministic.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import FrozenSet, Iterable, List, Sequence

from nltk.corpus import stopwords

_NON_WORD = re.compile(r"[\W_]+")

# Prefixes keep word and character n-grams apart in a shared vocabulary
WORD_PREFIX = "w:"
CHAR_PREFIX = "c:"


def normalise_text(text: str) -> str:
    """Lowercase and replace punctuation with single spaces."""
    if not isinstance(text, str):
        return ""
    lower = text.lower()
    cleaned = _NON_WORD.sub(" ", lower)
    return re.sub(r"\s+", " ", cleaned).strip()


def tokenize(text: str) -> List[str]:
    normalised = normalise_text(text)
    return normalised.split() if normalised else []


@lru_cache(maxsize=1)
def english_stopwords() -> FrozenSet[str]:
    return frozenset(stopwords.words("english"))


def remove_stopwords(tokens: Iterable[str]) -> List[str]:
    """Remove English stopwords from a list of tokens."""
    stops = english_stopwords()
    return [tok for tok in tokens if tok not in stops]


def word_ngrams(tokens: Sequence[str], n: int) -> List[str]:
    """Return the contiguous word n-grams of `tokens`, each prefixed with `w:`."""
    if n == 1:
        return [WORD_PREFIX + tok for tok in tokens]
    return [
        WORD_PREFIX + " ".join(tokens[i : i + n])
        for i in range(len(tokens) - n + 1)
    ]


def char_ngrams(tokens: Sequence[str], n: int) -> List[str]:
    """Return character n-grams of every token padded with `<` and `>`.

    Tokens shorter than `n` once padded contribute the whole padded token.
    """
    grams: List[str] = []
    for tok in tokens:
        padded = f"<{tok}>"
        if len(padded) <= n:
            grams.append(CHAR_PREFIX + padded)
            continue
        grams.extend(CHAR_PREFIX + padded[i : i + n] for i in range(len(padded) - n + 1))
    return grams
