# tests/conftest.py
from __future__ import annotations

from itertools import product

import pandas as pd
import pytest
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

from stance_ml.preprocessing import TextNormalizer

_PHRASES = {
    "favor_ios": (
        ["love ios", "iphone camera rocks", "apple ecosystem wins", "ios updates smooth"],
        ["best phone", "airdrop magic", "facetime daily"],
    ),
    "favor_android": (
        ["love android", "pixel screen rocks", "samsung battery wins", "android widgets flexible"],
        ["best phone", "custom launcher", "sideload apps"],
    ),
    "neutral": (
        ["both phones fine", "hate both equally", "brand irrelevant honestly", "phones similar nowadays"],
        ["meh", "price matters", "battery matters"],
    ),
}


def make_corpus() -> pd.DataFrame:
    """Three-stance corpus, 12 records per stance, ids 1..36."""
    rows = []
    for stance, (heads, tails) in _PHRASES.items():
        for head, tail in product(heads, tails):
            rows.append({"text": f"{head.capitalize()}, {tail}!", "stance": stance})
    df = pd.DataFrame(rows)
    df.insert(0, "id", range(1, len(df) + 1))
    return df


@pytest.fixture
def corpus() -> pd.DataFrame:
    return make_corpus()


@pytest.fixture
def normalizer() -> TextNormalizer:
    """Network-free normalizer: sklearn's stop-word list, no WordNet."""
    return TextNormalizer(stop_words=ENGLISH_STOP_WORDS, lemmatizer=None)


@pytest.fixture
def stop_words() -> tuple:
    return tuple(sorted(ENGLISH_STOP_WORDS))
