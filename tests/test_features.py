import dataclasses

import numpy as np
import pytest

from stance_ml.config import NormalizerConfig
from stance_ml.features import KEYWORD_PREFIX, LENGTH_FEATURE, FeatureBuilder
from stance_ml.preprocessing import Lemmatizer, TextNormalizer

TRAIN = ["I love iOS", "Android is great", "I hate both"]


def test_vocabulary_from_small_training_set(normalizer):
    builder = FeatureBuilder(normalizer, min_count=1)
    X = builder.fit_transform(TRAIN)

    assert set(builder.vocabulary_) == {"love", "ios", "android", "great", "hate"}
    assert builder.feature_names_ == ("android", "great", "hate", "ios", "love")
    assert X.shape == (3, 5)


def test_unseen_terms_are_ignored(normalizer):
    builder = FeatureBuilder(normalizer).fit(TRAIN)
    X = builder.transform(["I love Android and Windows Phone"])

    row = dict(zip(builder.feature_names_, X.toarray()[0]))
    assert row == {"android": 1, "great": 0, "hate": 0, "ios": 0, "love": 1}
    assert "windows" not in builder.vocabulary_
    assert X.shape[1] == 5


def test_rows_follow_input_order(normalizer):
    builder = FeatureBuilder(normalizer).fit(TRAIN)
    X = builder.transform(["hate hate", "ios"]).toarray()
    col = builder.vocabulary_
    assert X[0, col["hate"]] == 2
    assert X[1, col["ios"]] == 1


def test_min_count_prunes_rare_terms(normalizer):
    texts = ["ios ios android", "ios pixel", "android"]
    builder = FeatureBuilder(normalizer, min_count=2).fit(texts)
    assert list(builder.vocabulary_) == ["android", "ios"]


def test_min_doc_fraction_prunes_sparse_terms(normalizer):
    # "ios" occurs 3 times but only in one of four documents
    texts = ["ios ios ios", "android", "android pixel", "android"]
    builder = FeatureBuilder(normalizer, min_doc_fraction=0.5).fit(texts)
    assert list(builder.vocabulary_) == ["android"]


def test_tightening_thresholds_never_grows_vocabulary(normalizer, corpus):
    texts = corpus["text"].tolist()
    sizes = []
    for min_count, fraction in [(1, 0.0), (2, 0.0), (2, 0.05), (3, 0.1), (5, 0.2), (50, 0.9)]:
        builder = FeatureBuilder(normalizer, min_count=min_count, min_doc_fraction=fraction)
        sizes.append(len(builder.fit(texts).vocabulary_))
    assert sizes == sorted(sizes, reverse=True)
    assert sizes[-1] == 0


def test_empty_vocabulary_gives_zero_term_columns(normalizer):
    builder = FeatureBuilder(normalizer, min_count=10, include_length=True).fit(TRAIN)
    X = builder.transform(["I love iOS"])
    assert builder.vocabulary_ == {}
    assert X.shape == (1, 1)
    assert X[0, 0] == len("I love iOS")


def test_fit_is_write_once(normalizer):
    builder = FeatureBuilder(normalizer).fit(TRAIN)
    with pytest.raises(RuntimeError):
        builder.fit(["something else entirely"])


def test_transform_requires_fit(normalizer):
    with pytest.raises(RuntimeError):
        FeatureBuilder(normalizer).transform(TRAIN)


def test_empty_corpus_rejected(normalizer):
    with pytest.raises(ValueError):
        FeatureBuilder(normalizer).fit([])


def test_missing_text_is_an_empty_row(normalizer):
    builder = FeatureBuilder(normalizer).fit(TRAIN)
    X = builder.transform([None, float("nan")])
    assert X.shape == (2, 5)
    assert X.nnz == 0


def test_vocabulary_is_read_only(normalizer):
    builder = FeatureBuilder(normalizer).fit(TRAIN)
    with pytest.raises(TypeError):
        builder.vocabulary_["new"] = 99


def test_transforming_test_data_does_not_change_fitted_artifacts(normalizer):
    builder = FeatureBuilder(normalizer, weighting="tfidf").fit(TRAIN)
    vocab_before = dict(builder.vocabulary_)
    idf_before = builder._tfidf.idf_.copy()

    builder.transform(["android android pixel", "love windows", "great great great"])

    assert dict(builder.vocabulary_) == vocab_before
    np.testing.assert_array_equal(builder._tfidf.idf_, idf_before)


def test_tfidf_weighting_rows_are_normalized(normalizer):
    builder = FeatureBuilder(normalizer, weighting="tfidf")
    X = builder.fit_transform(TRAIN).toarray()
    np.testing.assert_allclose(np.linalg.norm(X, axis=1), 1.0)


def test_extra_columns_from_raw_text(normalizer):
    builder = FeatureBuilder(
        normalizer,
        include_length=True,
        keywords={"apple": r"\b(apple|iphone|ios)\b", "google": r"\bpixel\b"},
    )
    builder.fit(TRAIN)
    assert builder.feature_names_[-3:] == (
        LENGTH_FEATURE, KEYWORD_PREFIX + "apple", KEYWORD_PREFIX + "google")

    text = "iPhone or Pixel? iOS 17 wins"
    row = dict(zip(builder.feature_names_, builder.transform([text]).toarray()[0]))
    assert row[LENGTH_FEATURE] == len(text)
    assert row[KEYWORD_PREFIX + "apple"] == 2
    assert row[KEYWORD_PREFIX + "google"] == 1
    assert builder.get_feature_counts() == {"terms": 5, "extra": 3, "total": 8}


def test_unknown_weighting_rejected(normalizer):
    with pytest.raises(ValueError):
        FeatureBuilder(normalizer, weighting="bm25")


class StubWordNet:
    """WordNet's noun rule would turn "ios" into "io"."""

    def lemmatize(self, token, pos='n'):
        return {("ios", "n"): "io", ("apps", "n"): "app"}.get((token, pos), token)


@pytest.fixture
def stub_wordnet(monkeypatch):
    monkeypatch.setattr(Lemmatizer, "_wordnet_lemmatizer", lambda self: StubWordNet())


def test_default_normalizer_keeps_platform_names(stub_wordnet, stop_words):
    cfg = dataclasses.replace(NormalizerConfig(), stop_words=stop_words)
    builder = FeatureBuilder(TextNormalizer.from_config(cfg)).fit(TRAIN)
    assert set(builder.vocabulary_) == {"love", "ios", "android", "great", "hate"}


def test_lemma_overrides_shield_tokens_from_wordnet(stub_wordnet, stop_words):
    cfg = NormalizerConfig(stop_words=stop_words, use_wordnet=True, lemmas={"ios": "ios"})
    builder = FeatureBuilder(TextNormalizer.from_config(cfg)).fit(TRAIN + ["ios apps"])
    assert "ios" in builder.vocabulary_
    assert "app" in builder.vocabulary_
    assert "io" not in builder.vocabulary_


class CountingNormalizer:
    def __init__(self, inner):
        self.inner = inner
        self.calls = 0

    def __call__(self, text):
        self.calls += 1
        return self.inner(text)


def test_fit_transform_normalizes_each_text_once(normalizer):
    counting = CountingNormalizer(normalizer)
    X = FeatureBuilder(counting, weighting="tfidf", include_length=True).fit_transform(TRAIN)
    assert counting.calls == len(TRAIN)

    expected = FeatureBuilder(normalizer, weighting="tfidf", include_length=True).fit(TRAIN)
    np.testing.assert_allclose(X.toarray(), expected.transform(TRAIN).toarray())
