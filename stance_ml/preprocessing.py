"""
preprocessing.py
-----------------
Text normalization for social-media posts: lower-casing, noise removal,
stop-word filtering and lemmatization.
"""

import logging
import re
import string

import nltk

logger = logging.getLogger(__name__)

WORDNET_POS_ORDER = ('v', 'n', 'a', 'r')


def _ensure_nltk_resource(resource_path, package):
    """Download an NLTK data package the first time it is needed."""
    try:
        nltk.data.find(resource_path)
    except LookupError:
        logger.info("Downloading NLTK resource %r", package)
        nltk.download(package, quiet=True)


def load_stopwords(stop_words='english', extra=()):
    """Resolve a stop-word setting to a set.

    Parameters
    ----------
    stop_words : str, iterable of str or None
        A language name (loaded from NLTK's stopwords corpus), an explicit
        collection of words, or None for no stop words.
    extra : iterable of str
        Additional words unioned into the result.
    """
    if stop_words is None:
        words = set()
    elif isinstance(stop_words, str):
        _ensure_nltk_resource('corpora/stopwords', 'stopwords')
        from nltk.corpus import stopwords as nltk_stopwords
        words = set(nltk_stopwords.words(stop_words))
    else:
        words = set(stop_words)
    return words | {w.lower() for w in extra}


class Lemmatizer:
    """Map inflected tokens to a canonical root.

    The lemma dictionary is consulted first. Otherwise, with WordNet
    enabled, parts of speech are tried in the order verb, noun,
    adjective, adverb and the first lemma that differs from the token
    is used. Tokens with no candidate are returned unchanged.

    Parameters
    ----------
    lemmas : dict
        Explicit token -> lemma overrides.
    use_wordnet : bool
        Fall back to NLTK's WordNet lemmatizer (default: False). WordNet
        also rewrites words it does not know, e.g. the noun rule turns
        "ios" into "io", so list such tokens in ``lemmas`` when enabling it.
    """

    def __init__(self, lemmas=None, use_wordnet=False):
        self.lemmas = {k.lower(): v.lower() for k, v in (lemmas or {}).items()}
        self.use_wordnet = use_wordnet
        self._wordnet = None
        self._cache = {}

    def _wordnet_lemmatizer(self):
        if self._wordnet is None:
            _ensure_nltk_resource('corpora/wordnet', 'wordnet')
            from nltk.stem import WordNetLemmatizer
            self._wordnet = WordNetLemmatizer()
        return self._wordnet

    def __call__(self, token):
        if token in self.lemmas:
            return self.lemmas[token]
        if not self.use_wordnet:
            return token
        if token not in self._cache:
            wn = self._wordnet_lemmatizer()
            lemma = token
            for pos in WORDNET_POS_ORDER:
                candidate = wn.lemmatize(token, pos=pos)
                if candidate != token:
                    lemma = candidate
                    break
            self._cache[token] = lemma
        return self._cache[token]


class TextNormalizer:
    """Rule-based post cleaning pipeline.

    Calling an instance on a text returns its list of tokens, so it can
    be passed directly as a scikit-learn ``analyzer``.

    Parameters
    ----------
    stop_words : str, iterable of str or None
        See :func:`load_stopwords` (default: 'english').
    extra_stop_words : iterable of str
        Project-specific stop words added to the list.
    lemmatizer : Lemmatizer or None
        Applied to every surviving token; None disables lemmatization.
    strip_urls : bool
        Remove http(s) and www links (default: True).
    strip_mentions : bool
        Remove @mentions (default: True).
    min_token_len : int
        Minimum token length to keep (default: 1).
    """

    def __init__(self, stop_words='english', extra_stop_words=(),
                 lemmatizer=None, strip_urls=True, strip_mentions=True,
                 min_token_len=1):
        self.punct_translator = str.maketrans('', '', string.punctuation)
        # tokens lose their punctuation before the stop-word check ("don't" -> "dont")
        self.stopwords = {w.lower().translate(self.punct_translator)
                          for w in load_stopwords(stop_words, extra_stop_words)}
        self.lemmatizer = lemmatizer
        self.strip_urls = strip_urls
        self.strip_mentions = strip_mentions
        self.min_token_len = min_token_len

    @classmethod
    def from_config(cls, cfg):
        lemmatizer = None
        if cfg.lemmas or cfg.use_wordnet:
            lemmatizer = Lemmatizer(cfg.lemmas, use_wordnet=cfg.use_wordnet)
        return cls(stop_words=cfg.stop_words,
                   extra_stop_words=cfg.extra_stop_words,
                   lemmatizer=lemmatizer,
                   strip_urls=cfg.strip_urls,
                   strip_mentions=cfg.strip_mentions,
                   min_token_len=cfg.min_token_len)

    def __call__(self, text):
        """Normalize a single text into a list of tokens."""
        if not isinstance(text, str):
            return []

        text = text.lower()
        if self.strip_urls:
            text = re.sub(r'http\S+|www\S+|https\S+', ' ', text)
        if self.strip_mentions:
            text = re.sub(r'@\w+', ' ', text)
        text = re.sub(r'#(\w+)', r'\1', text)                  # #hashtag → hashtag
        text = re.sub(r'(.)\1{2,}', r'\1\1', text)            # elongated chars
        text = re.sub(r'\d+', ' ', text)
        text = text.translate(self.punct_translator)
        text = re.sub(r'[^\w\s]|_', '', text)                 # leftover unicode symbols

        tokens = [t for t in text.split()
                  if len(t) >= self.min_token_len and t not in self.stopwords]

        if self.lemmatizer is not None:
            tokens = [self.lemmatizer(t) for t in tokens]
            # a lemma can itself be a stop word ("was" -> "be")
            tokens = [t for t in tokens if t and t not in self.stopwords]
        return tokens

    def transform_series(self, series):
        """Apply normalization to a pandas Series, returning token lists."""
        return series.apply(self)
