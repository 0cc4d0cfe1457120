"""
features.py
------------
Bag-of-words term matrix with frequency/sparsity pruning and optional
hand-crafted columns (text length, keyword match counts).
"""

import logging
import re
from collections import Counter
from types import MappingProxyType

import numpy as np
from scipy import sparse
from sklearn.feature_extraction.text import CountVectorizer, TfidfTransformer

logger = logging.getLogger(__name__)

LENGTH_FEATURE = 'len_chars'
KEYWORD_PREFIX = 'kw_'


def _as_text_list(texts):
    return ['' if not isinstance(t, str) else t for t in texts]


def _pretokenized(tokens):
    return tokens


class FeatureBuilder:
    """Sparse term-count features fitted on Training texts only.

    The vocabulary is pruned by two successive filters: terms whose total
    count across the corpus is below ``min_count`` are dropped, then terms
    present in fewer than ``min_doc_fraction`` of the documents. Columns
    are ordered alphabetically by term, followed by the extra columns.

    Once fitted, the vocabulary (and the idf vector for TF-IDF weighting)
    is frozen: ``transform`` ignores unseen terms and a second ``fit`` is
    refused. Build a new instance to refit.

    Parameters
    ----------
    normalizer : callable
        Maps raw text to a list of tokens (e.g. TextNormalizer).
    min_count : int
        Minimum total occurrences across the corpus (default: 1).
    min_doc_fraction : float
        Minimum fraction of documents containing the term (default: 0.0).
    weighting : str
        'count' for raw counts or 'tfidf' (default: 'count').
    include_length : bool
        Append the raw text's character length as a column.
    keywords : dict
        name -> regular expression; appends one case-insensitive
        match-count column per entry, computed on the raw text.
    """

    def __init__(self, normalizer, min_count=1, min_doc_fraction=0.0,
                 weighting='count', include_length=False, keywords=None):
        if weighting not in ('count', 'tfidf'):
            raise ValueError(f"Unknown weighting {weighting!r}")
        self.normalizer = normalizer
        self.min_count = min_count
        self.min_doc_fraction = min_doc_fraction
        self.weighting = weighting
        self.include_length = include_length
        self.keywords = dict(keywords or {})
        self._keyword_patterns = {
            name: re.compile(pattern, re.IGNORECASE)
            for name, pattern in self.keywords.items()
        }
        self._vectorizer = None
        self._tfidf = None
        self._fitted = False

    @classmethod
    def from_config(cls, normalizer, cfg):
        return cls(normalizer,
                   min_count=cfg.min_count,
                   min_doc_fraction=cfg.min_doc_fraction,
                   weighting=cfg.weighting,
                   include_length=cfg.include_length,
                   keywords=cfg.keywords)

    # ── fitting ──────────────────────────────────────────

    def _prune(self, token_lists):
        totals = Counter()
        doc_freq = Counter()
        for tokens in token_lists:
            totals.update(tokens)
            doc_freq.update(set(tokens))

        n_docs = len(token_lists)
        frequent = {t for t, c in totals.items() if c >= self.min_count}
        dense_enough = {t for t in frequent
                        if doc_freq[t] / n_docs >= self.min_doc_fraction}
        return sorted(dense_enough)

    def _fit(self, texts):
        """Fit on Training texts and return their term-count matrix."""
        if self._fitted:
            raise RuntimeError("FeatureBuilder is already fitted; "
                               "create a new one to fit other data.")
        texts = _as_text_list(texts)
        if not texts:
            raise ValueError("Cannot fit features on an empty corpus.")

        token_lists = [self.normalizer(t) for t in texts]
        terms = self._prune(token_lists)
        if terms:
            self._vectorizer = CountVectorizer(analyzer=_pretokenized, vocabulary=terms)
        else:
            logger.warning("No terms survived pruning (min_count=%s, "
                           "min_doc_fraction=%s)", self.min_count,
                           self.min_doc_fraction)

        self.vocabulary_ = MappingProxyType({t: i for i, t in enumerate(terms)})
        self.feature_names_ = tuple(terms) + tuple(self._extra_names())

        counts = self._count(token_lists)
        if self.weighting == 'tfidf' and terms:
            self._tfidf = TfidfTransformer().fit(counts)

        self._fitted = True
        logger.info("Features: %d total (terms: %d, extra: %d)",
                    len(self.feature_names_), len(terms),
                    len(self.feature_names_) - len(terms))
        return texts, counts

    def fit(self, texts):
        """Learn the vocabulary (and idf weights) from Training texts."""
        self._fit(texts)
        return self

    def fit_transform(self, texts):
        texts, counts = self._fit(texts)
        return self._assemble(counts, texts)

    # ── transforming ─────────────────────────────────────

    def _extra_names(self):
        names = [LENGTH_FEATURE] if self.include_length else []
        return names + [KEYWORD_PREFIX + name for name in self._keyword_patterns]

    def _count(self, token_lists):
        if self._vectorizer is None:
            return sparse.csr_matrix((len(token_lists), 0), dtype=np.float64)
        return self._vectorizer.transform(token_lists).astype(np.float64)

    def _extra_columns(self, texts):
        columns = []
        if self.include_length:
            columns.append([len(t) for t in texts])
        for pattern in self._keyword_patterns.values():
            columns.append([len(pattern.findall(t)) for t in texts])
        if not columns:
            return None
        return sparse.csr_matrix(np.asarray(columns, dtype=np.float64).T)

    def _assemble(self, counts, texts):
        X = counts
        if self._tfidf is not None:
            X = self._tfidf.transform(X)

        extra = self._extra_columns(texts)
        if extra is not None:
            X = sparse.hstack([X, extra], format='csr') if X.shape[1] else extra
        return X.tocsr()

    def transform(self, texts):
        """Map texts onto the fitted columns; unseen terms are dropped.

        Returns
        -------
        X : scipy.sparse.csr_matrix, shape (n_texts, len(feature_names_))
        """
        if not self._fitted:
            raise RuntimeError("Call fit() or fit_transform() on training data first.")

        texts = _as_text_list(texts)
        return self._assemble(self._count([self.normalizer(t) for t in texts]), texts)

    def get_feature_counts(self):
        """Return dict with feature counts per column group."""
        if not self._fitted:
            raise RuntimeError("FeatureBuilder is not fitted.")
        n_terms = len(self.vocabulary_)
        return {
            'terms': n_terms,
            'extra': len(self.feature_names_) - n_terms,
            'total': len(self.feature_names_),
        }
