import pandas as pd

from stance_ml.config import NormalizerConfig
from stance_ml.preprocessing import Lemmatizer, TextNormalizer, load_stopwords


class FakeWordNet:
    """Stands in for nltk's WordNetLemmatizer: (token, pos) -> lemma."""

    def __init__(self, table):
        self.table = table
        self.calls = []

    def lemmatize(self, token, pos='n'):
        self.calls.append((token, pos))
        return self.table.get((token, pos), token)


def test_lowercases_and_strips_digits_and_punctuation(normalizer):
    assert normalizer("WOW!!! iOS17, rocks... 100%") == ["wow", "ios", "rocks"]


def test_removes_stop_words(normalizer):
    assert normalizer("I love iOS") == ["love", "ios"]
    assert normalizer("Android is great") == ["android", "great"]
    assert normalizer("I hate both") == ["hate"]


def test_empty_and_missing_text_give_no_tokens(normalizer):
    assert normalizer("") == []
    assert normalizer(None) == []
    assert normalizer(float("nan")) == []
    assert normalizer("!!! 123 ...") == []


def test_social_media_noise(normalizer):
    text = "@tim_cook check https://apple.com/iphone #iPhone sooooo good"
    assert normalizer(text) == ["check", "iphone", "soo", "good"]


def test_mentions_and_urls_can_be_kept():
    norm = TextNormalizer(stop_words=None, strip_urls=False, strip_mentions=False)
    assert norm("@pixel http://g.co") == ["pixel", "httpgco"]


def test_extra_stop_words_and_min_token_len():
    norm = TextNormalizer(stop_words={"the"}, extra_stop_words=["Phone"], min_token_len=3)
    assert norm("The phone is OK but the camera rocks") == ["but", "camera", "rocks"]


def test_lemma_dictionary_takes_precedence():
    lem = Lemmatizer({"running": "run", "iOS": "ios"}, use_wordnet=True)
    lem._wordnet = FakeWordNet({("running", "v"): "runn"})
    assert lem("running") == "run"
    assert lem("ios") == "ios"
    assert lem._wordnet.calls == []


def test_wordnet_first_changed_form_wins_in_pos_order():
    lem = Lemmatizer(use_wordnet=True)
    lem._wordnet = FakeWordNet({("better", "a"): "good", ("saw", "v"): "see", ("saw", "n"): "saw"})
    assert lem("saw") == "see"
    assert lem("better") == "good"
    assert lem._wordnet.calls[:1] == [("saw", "v")]


def test_wordnet_results_are_cached():
    lem = Lemmatizer(use_wordnet=True)
    lem._wordnet = FakeWordNet({("apps", "n"): "app"})
    assert lem("apps") == "app"
    n_calls = len(lem._wordnet.calls)
    assert lem("apps") == "app"
    assert len(lem._wordnet.calls) == n_calls


def test_lemmatizer_without_wordnet_is_identity_outside_dictionary():
    lem = Lemmatizer({"phones": "phone"}, use_wordnet=False)
    assert lem("phones") == "phone"
    assert lem("running") == "running"


def test_lemmatized_stop_words_are_dropped():
    norm = TextNormalizer(stop_words={"be"}, lemmatizer=Lemmatizer({"was": "be"}, use_wordnet=False))
    assert norm("It was fine") == ["it", "fine"]


def test_transform_series(normalizer):
    out = normalizer.transform_series(pd.Series(["Love iOS", None]))
    assert out.tolist() == [["love", "ios"], []]


def test_load_stopwords_from_iterable():
    assert load_stopwords(["a", "b"], extra=["C"]) == {"a", "b", "c"}
    assert load_stopwords(None) == set()


def test_stop_words_with_apostrophes_match_stripped_tokens():
    norm = TextNormalizer(stop_words={"don't", "isn't", "i", "it"}, lemmatizer=None)
    assert norm("I don't like it, it isn't good") == ["like", "good"]


def test_wordnet_is_opt_in():
    assert Lemmatizer().use_wordnet is False
    cfg = NormalizerConfig(stop_words=("i",))
    assert TextNormalizer.from_config(cfg).lemmatizer is None
    cfg = NormalizerConfig(stop_words=("i",), use_wordnet=True)
    assert TextNormalizer.from_config(cfg).lemmatizer.use_wordnet
