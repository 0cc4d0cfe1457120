# stance_ml/training.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import GridSearchCV
from sklearn.preprocessing import LabelEncoder

from .config import CVConfig
from .models import ClassifierFamily, make_model_pipeline, validate_param_grid
from .splitting import make_cv

logger = logging.getLogger(__name__)


@dataclass
class TrainedModel:
    """
    A fitted estimator bound to the feature schema it was trained on.
    Labels are encoded to 0..K-1 for fitting and decoded on prediction.
    """
    family: str
    estimator: Any
    label_encoder: LabelEncoder
    n_features: int
    params: Dict[str, Any] = field(default_factory=dict)
    cv_score: Optional[float] = None
    cv_results: Optional[pd.DataFrame] = None
    feature_names: Optional[Tuple[str, ...]] = None

    @property
    def classes_(self) -> np.ndarray:
        return self.label_encoder.classes_

    def _check_schema(self, X, feature_names=None):
        if X.shape[1] != self.n_features:
            raise ValueError(
                f"Model was trained on {self.n_features} features but got "
                f"{X.shape[1]}; transform with the same fitted FeatureBuilder.")
        check_feature_names(self.feature_names, feature_names)

    def predict(self, X, feature_names: Optional[Sequence[str]] = None) -> np.ndarray:
        self._check_schema(X, feature_names)
        return self.label_encoder.inverse_transform(self.estimator.predict(X))

    def predict_proba(self, X, feature_names: Optional[Sequence[str]] = None) -> np.ndarray:
        self._check_schema(X, feature_names)
        return self.estimator.predict_proba(X)


def check_feature_names(fitted, given):
    """Reject a matrix whose columns come from a different vocabulary.

    Only checked when both sides are known; names are compared in order.
    """
    if fitted is None or given is None:
        return
    given = tuple(given)
    if given != tuple(fitted):
        unexpected = sorted(set(given) - set(fitted))[:5]
        raise ValueError(
            "Feature columns differ from the ones the model was trained on "
            f"(unexpected: {unexpected}); transform with the same fitted FeatureBuilder.")


def _strip_prefix(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k.split('__', 1)[1]: v for k, v in params.items()}


def _names(feature_names):
    return None if feature_names is None else tuple(feature_names)


def train_classifier(family: ClassifierFamily, X, y, *, params: Optional[Dict[str, Any]] = None,
                     balance: str = 'none', scale: Optional[bool] = None,
                     random_state: int = 42,
                     feature_names: Optional[Sequence[str]] = None) -> TrainedModel:
    """Fit a single hyperparameter combination on the full Training matrix."""
    le = LabelEncoder().fit(y)
    pipe = make_model_pipeline(family, params, balance=balance, scale=scale,
                               random_state=random_state)
    pipe.fit(X, le.transform(y))
    return TrainedModel(family=family.name, estimator=pipe, label_encoder=le,
                        n_features=X.shape[1], params=dict(params or {}),
                        feature_names=_names(feature_names))


def tune_classifier(family: ClassifierFamily, X, y, *, param_grid: Optional[Dict[str, Any]] = None,
                    balance: str = 'none', scale: Optional[bool] = None,
                    cv_cfg: CVConfig = CVConfig(), random_state: int = 42,
                    feature_names: Optional[Sequence[str]] = None) -> TrainedModel:
    """
    Grid-search the family's hyperparameters with (repeated) k-fold CV on
    the Training matrix, then refit the best combination on all of it.

    Balancing and scaling are pipeline steps, so they are re-fitted inside
    every fold from that fold's training rows.
    """
    grid = validate_param_grid(family, family.param_grid if param_grid is None else param_grid)
    le = LabelEncoder().fit(y)
    pipe = make_model_pipeline(family, balance=balance, scale=scale,
                               random_state=random_state)

    gs = GridSearchCV(
        estimator=pipe,
        param_grid={f'clf__{k}': v for k, v in grid.items()},
        scoring=cv_cfg.scoring,
        cv=make_cv(cv_cfg),
        n_jobs=cv_cfg.n_jobs,
        refit=True,
    )
    gs.fit(X, le.transform(y))

    best_params = _strip_prefix(gs.best_params_)
    logger.info("GridSearch [%s] best params: %s | CV %s: %.4f",
                family.name, best_params, cv_cfg.scoring, gs.best_score_)

    return TrainedModel(
        family=family.name,
        estimator=gs.best_estimator_,
        label_encoder=le,
        n_features=X.shape[1],
        params=best_params,
        cv_score=float(gs.best_score_),
        cv_results=pd.DataFrame(gs.cv_results_),
        feature_names=_names(feature_names),
    )
