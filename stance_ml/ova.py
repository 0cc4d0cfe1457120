# stance_ml/ova.py
"""
One-vs-all dispatch: one balanced binary classifier per stance, combined
by taking the class whose model gives the highest positive probability.

Each class is fitted and scored independently. A class whose sub-model
cannot be fitted, or fails while scoring, contributes a score of zero
instead of aborting the whole prediction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from imblearn.over_sampling import SMOTE
from imblearn.under_sampling import RandomUnderSampler

from .errors import BalancingError
from .models import ClassifierFamily, ensure_probabilistic, make_model_pipeline
from .training import check_feature_names

logger = logging.getLogger(__name__)

POSITIVE = 1
NEGATIVE = 0


@dataclass(frozen=True)
class ClassOutcome:
    """Result of fitting one binary sub-problem."""
    label: Any
    model: Any = None
    balancing: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.model is not None


@dataclass(frozen=True)
class ClassScores:
    """P(pos) per row for one class, or the reason it could not be computed."""
    label: Any
    scores: np.ndarray
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def balance_binary(X, y, random_state: int = 42) -> Tuple[Any, np.ndarray, str]:
    """Balance a binary sub-problem with SMOTE, falling back to under-sampling.

    Returns
    -------
    X_res, y_res, method : method is 'smote' or 'undersample'

    Raises
    ------
    BalancingError
        If both strategies fail.
    """
    try:
        X_res, y_res = SMOTE(random_state=random_state).fit_resample(X, y)
        return X_res, y_res, 'smote'
    except ValueError as smote_exc:
        logger.warning("SMOTE failed (%s); falling back to random under-sampling", smote_exc)
        try:
            X_res, y_res = RandomUnderSampler(random_state=random_state).fit_resample(X, y)
            return X_res, y_res, 'undersample'
        except ValueError as under_exc:
            raise BalancingError(
                f"SMOTE failed ({smote_exc}) and under-sampling failed ({under_exc})"
            ) from under_exc


def _fit_one(label, family, params, scale, X, y, random_state) -> ClassOutcome:
    y_bin = np.where(y == label, POSITIVE, NEGATIVE)
    try:
        X_bal, y_bal, method = balance_binary(X, y_bin, random_state)
    except BalancingError as exc:
        return ClassOutcome(label, error=str(exc))

    try:
        model = ensure_probabilistic(
            make_model_pipeline(family, params, scale=scale, random_state=random_state))
        model.fit(X_bal, y_bal)
    except Exception as exc:
        return ClassOutcome(label, balancing=method, error=f"fit failed: {exc!r}")
    return ClassOutcome(label, model=model, balancing=method)


def _positive_scores(outcome: ClassOutcome, X) -> ClassScores:
    n = X.shape[0]
    if not outcome.ok:
        return ClassScores(outcome.label, np.zeros(n), error=outcome.error)
    try:
        proba = outcome.model.predict_proba(X)
        pos = list(outcome.model.classes_).index(POSITIVE)
        return ClassScores(outcome.label, np.asarray(proba[:, pos], dtype=float))
    except Exception as exc:
        logger.warning("Scoring failed for class %r: %r; using zero scores",
                       outcome.label, exc)
        return ClassScores(outcome.label, np.zeros(n), error=repr(exc))


class OneVsAllClassifier:
    """Multi-class prediction from one balanced binary model per class.

    Parameters
    ----------
    family : ClassifierFamily
        Family used for every binary sub-model.
    params : dict
        Hyperparameters for the family's estimator.
    scale : bool or None
        Scaling override (None = family default).
    random_state : int
    n_jobs : int or None
        Parallel workers for the per-class fits (joblib semantics).

    Ties in the final argmax go to the first class in sorted label order.
    """

    def __init__(self, family: ClassifierFamily, params: Optional[Dict[str, Any]] = None, *,
                 scale: Optional[bool] = None, random_state: int = 42,
                 n_jobs: Optional[int] = None):
        self.family = family
        self.params = dict(params or {})
        self.scale = scale
        self.random_state = random_state
        self.n_jobs = n_jobs

    def fit(self, X, y, feature_names: Optional[Sequence[str]] = None):
        y = np.asarray(y)
        self.classes_ = np.unique(y)
        self.n_features_ = X.shape[1]
        self.feature_names_ = None if feature_names is None else tuple(feature_names)

        outcomes = Parallel(n_jobs=self.n_jobs)(
            delayed(_fit_one)(label, self.family, self.params, self.scale,
                              X, y, self.random_state)
            for label in self.classes_
        )
        self.outcomes_: Dict[Any, ClassOutcome] = {o.label: o for o in outcomes}

        for o in outcomes:
            if o.ok:
                logger.info("OvA [%s] class %r fitted (balancing: %s)",
                            self.family.name, o.label, o.balancing)
            else:
                logger.warning("OvA [%s] class %r failed: %s",
                               self.family.name, o.label, o.error)

        if not any(o.ok for o in outcomes):
            raise RuntimeError(
                f"Every one-vs-all sub-model failed for family {self.family.name!r}")
        return self

    def class_scores(self, X, feature_names: Optional[Sequence[str]] = None) -> List[ClassScores]:
        if X.shape[1] != self.n_features_:
            raise ValueError(
                f"Model was trained on {self.n_features_} features but got {X.shape[1]}")
        check_feature_names(getattr(self, 'feature_names_', None), feature_names)
        return [_positive_scores(self.outcomes_[label], X) for label in self.classes_]

    def decision_scores(self, X, feature_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """Per-class P(pos) table, one column per class in sorted order."""
        return pd.DataFrame({s.label: s.scores for s in self.class_scores(X, feature_names)},
                            columns=list(self.classes_))

    def predict(self, X, feature_names: Optional[Sequence[str]] = None) -> np.ndarray:
        scores = np.column_stack([s.scores for s in self.class_scores(X, feature_names)])
        # argmax returns the first maximum, i.e. the earliest class on ties
        return self.classes_[np.argmax(scores, axis=1)]
