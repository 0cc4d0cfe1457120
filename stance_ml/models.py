# stance_ml/models.py
"""
models.py
----------
Classifier families, hyperparameter grids, balancing samplers and the
imbalanced-learn pipeline that wires them together.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
from scipy import sparse

from sklearn.calibration import CalibratedClassifierCV
from sklearn.neighbors import KNeighborsClassifier
from sklearn.preprocessing import FunctionTransformer, StandardScaler
from sklearn.svm import SVC
from sklearn.utils.validation import check_is_fitted
import xgboost as xgb

from imblearn.pipeline import Pipeline as ImbPipeline
from imblearn.over_sampling import RandomOverSampler, SMOTE
from imblearn.under_sampling import RandomUnderSampler

from .errors import ConfigError


# ──────────────────────────────────────────────────────────
# Hyperparameter grids
# ──────────────────────────────────────────────────────────

PARAM_GRIDS = {
    'knn': {
        'n_neighbors': [1, 3, 5, 7, 9],
    },
    'svm_linear': {
        'C': [0.01, 0.1, 0.5, 1.0, 5.0, 10.0],
    },
    'xgboost': {
        'n_estimators': [100, 200],
        'max_depth': [2, 4, 6],
        'learning_rate': [0.05, 0.1, 0.3],
        'colsample_bytree': [0.6, 1.0],
        'min_child_weight': [1],
        'subsample': [0.8, 1.0],
    },
}

BALANCE_METHODS = ('none', 'down', 'up', 'smote')


# ──────────────────────────────────────────────────────────
# k-nearest-neighbors with rank-sum tie breaking
# ──────────────────────────────────────────────────────────

class RankTieKNeighborsClassifier(KNeighborsClassifier):
    """Majority-vote k-NN with a deterministic tie rule.

    When two or more classes collect the same number of votes among the
    K nearest neighbors, the class whose neighbors have the smallest sum
    of distance ranks wins (rank 0 is the nearest neighbor). Remaining
    ties go to the first class in ``classes_`` order.

    Only uniform weighting is affected; other ``weights`` settings defer
    to scikit-learn's own vote.
    """

    def fit(self, X, y):
        super().fit(X, y)
        self.train_labels_ = np.asarray(y)
        return self

    def predict(self, X):
        if self.weights != 'uniform':
            return super().predict(X)
        check_is_fitted(self, 'train_labels_')

        _, indices = self.kneighbors(X)
        class_pos = {c: i for i, c in enumerate(self.classes_)}
        predictions = []
        for row in indices:
            votes = np.zeros(len(self.classes_), dtype=int)
            rank_sums = np.zeros(len(self.classes_), dtype=int)
            for rank, neighbor in enumerate(row):
                k = class_pos[self.train_labels_[neighbor]]
                votes[k] += 1
                rank_sums[k] += rank
            # lexsort keys are applied last-to-first
            order = np.lexsort((np.arange(len(votes)), rank_sums, -votes))
            predictions.append(self.classes_[order[0]])
        return np.asarray(predictions)


# ──────────────────────────────────────────────────────────
# Family registry
# ──────────────────────────────────────────────────────────

def _build_knn(params, random_state):
    return RankTieKNeighborsClassifier(**{'n_neighbors': 5, 'metric': 'euclidean', **params})


def _build_svm_linear(params, random_state):
    return SVC(**{'kernel': 'linear', 'C': 1.0, 'random_state': random_state, **params})


def _build_xgboost(params, random_state):
    defaults = {
        'n_estimators': 100,
        'max_depth': 3,
        'learning_rate': 0.1,
        'colsample_bytree': 1.0,
        'min_child_weight': 1,
        'subsample': 1.0,
        'random_state': random_state,
        'n_jobs': 1,
    }
    return xgb.XGBClassifier(**{**defaults, **params})


@dataclass(frozen=True)
class ClassifierFamily:
    """One classifier family: how to build it, what to tune, whether to scale."""
    name: str
    builder: Callable[[Dict[str, Any], int], Any]
    param_grid: Dict[str, List[Any]]
    scale_by_default: bool = False

    def build(self, params: Optional[Dict[str, Any]] = None, random_state: int = 42):
        return self.builder(dict(params or {}), random_state)

    def parameter_names(self) -> set:
        return set(self.build().get_params(deep=False))


FAMILIES: Dict[str, ClassifierFamily] = {
    'knn': ClassifierFamily('knn', _build_knn, PARAM_GRIDS['knn']),
    'svm_linear': ClassifierFamily('svm_linear', _build_svm_linear,
                                   PARAM_GRIDS['svm_linear'],
                                   scale_by_default=True),
    'xgboost': ClassifierFamily('xgboost', _build_xgboost, PARAM_GRIDS['xgboost']),
}


def get_family(name: str) -> ClassifierFamily:
    try:
        return FAMILIES[name]
    except KeyError:
        raise ConfigError(
            f"Unknown classifier family {name!r}; "
            f"expected one of {sorted(FAMILIES)}") from None


def validate_param_grid(family: ClassifierFamily, param_grid: Dict[str, Any]) -> Dict[str, List[Any]]:
    """Check a grid against the family's estimator and return it as lists.

    Raises
    ------
    ConfigError
        On an empty grid, an unknown parameter name, or an empty value list.
    """
    if not param_grid:
        raise ConfigError(f"Empty hyperparameter grid for {family.name!r}")

    known = family.parameter_names()
    checked = {}
    for key, values in param_grid.items():
        if key not in known:
            raise ConfigError(
                f"{key!r} is not a parameter of {family.name!r} "
                f"(known: {sorted(known)})")
        if isinstance(values, (str, bytes)) or not hasattr(values, '__iter__'):
            values = [values]
        values = list(values)
        if not values:
            raise ConfigError(f"No values given for {family.name}.{key}")
        checked[key] = values
    return checked


# ──────────────────────────────────────────────────────────
# Balancing
# ──────────────────────────────────────────────────────────

def make_sampler(method: str, random_state: int = 42):
    """Return the imbalanced-learn sampler for a balancing method (or None)."""
    if method == 'none':
        return None
    if method == 'down':
        return RandomUnderSampler(random_state=random_state)
    if method == 'up':
        return RandomOverSampler(random_state=random_state)
    if method == 'smote':
        return SMOTE(random_state=random_state)
    raise ConfigError(
        f"Unknown balancing method {method!r}; expected one of {BALANCE_METHODS}")


# ──────────────────────────────────────────────────────────
# Pipeline assembly
# ──────────────────────────────────────────────────────────

def _densify(X):
    return X.toarray() if sparse.issparse(X) else np.asarray(X)


def make_model_pipeline(family: ClassifierFamily, params: Optional[Dict[str, Any]] = None, *,
                        balance: str = 'none', scale: Optional[bool] = None,
                        random_state: int = 42) -> ImbPipeline:
    """
    Returns an imblearn Pipeline:
      (optional) sampler -> (optional) densify + scaler -> clf

    Samplers only run during fit, so balancing happens inside each CV
    fold and never touches validation or Test rows. The scaler's
    mean/std are likewise learned from the rows passed to fit.
    """
    if scale is None:
        scale = family.scale_by_default

    steps: List[Tuple[str, Any]] = []
    sampler = make_sampler(balance, random_state)
    if sampler is not None:
        steps.append(('sampler', sampler))
    if scale:
        steps += [
            ('densify', FunctionTransformer(_densify, accept_sparse=True)),
            ('scale', StandardScaler()),
        ]
    steps.append(('clf', family.build(params, random_state)))
    return ImbPipeline(steps)


def ensure_probabilistic(estimator, *, cv: int = 3):
    """
    Ensure we have predict_proba for one-vs-all scoring.
    - If estimator already exposes predict_proba, return as-is.
    - Otherwise wrap it in a sigmoid-calibrated classifier.
    """
    if hasattr(estimator, 'predict_proba'):
        return estimator
    return CalibratedClassifierCV(estimator, cv=cv, method='sigmoid')
