# stance_ml/config.py
"""
config.py
----------
Dataclass configuration for every pipeline stage, plus JSON loading.

Each dataclass validates itself in ``__post_init__`` so a bad value is
reported before any data is read or any model is fitted.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .errors import ConfigError
from .models import BALANCE_METHODS, get_family, validate_param_grid

WEIGHTINGS = ('count', 'tfidf')
SCORINGS = ('accuracy', 'balanced_accuracy')


def _check_fraction(name, value, *, low_inclusive=False):
    ok = (0 <= value < 1) if low_inclusive else (0 < value < 1)
    if not ok:
        bound = '[0, 1)' if low_inclusive else '(0, 1)'
        raise ConfigError(f"{name} must be in {bound}, got {value!r}")


@dataclass(frozen=True)
class NormalizerConfig:
    stop_words: Union[str, Tuple[str, ...], None] = 'english'
    extra_stop_words: Tuple[str, ...] = ()
    lemmas: Dict[str, str] = field(default_factory=dict)
    use_wordnet: bool = False
    strip_urls: bool = True
    strip_mentions: bool = True
    min_token_len: int = 1

    def __post_init__(self):
        if self.stop_words is not None and not isinstance(self.stop_words, str):
            object.__setattr__(self, 'stop_words', tuple(self.stop_words))
        object.__setattr__(self, 'extra_stop_words', tuple(self.extra_stop_words))
        if self.min_token_len < 1:
            raise ConfigError(f"min_token_len must be >= 1, got {self.min_token_len}")


@dataclass(frozen=True)
class FeatureConfig:
    min_count: int = 1
    min_doc_fraction: float = 0.0
    weighting: str = 'count'
    include_length: bool = False
    keywords: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.min_count < 1:
            raise ConfigError(f"min_count must be >= 1, got {self.min_count}")
        _check_fraction('min_doc_fraction', self.min_doc_fraction, low_inclusive=True)
        if self.weighting not in WEIGHTINGS:
            raise ConfigError(f"weighting must be one of {WEIGHTINGS}, got {self.weighting!r}")
        for name, pattern in self.keywords.items():
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ConfigError(f"keyword {name!r} has an invalid pattern: {exc}") from exc


@dataclass(frozen=True)
class SplitConfig:
    """Holdout split. ``seed`` only decides which records land in Test."""
    test_size: float = 0.3
    stratify: bool = True
    seed: int = 42

    def __post_init__(self):
        _check_fraction('test_size', self.test_size)


@dataclass(frozen=True)
class CVConfig:
    """Grid-search folds. ``random_state`` shuffles the folds and ``n_jobs``
    sets GridSearchCV's workers."""
    n_splits: int = 5
    n_repeats: int = 1
    stratified: bool = True
    scoring: str = 'accuracy'
    random_state: int = 42
    n_jobs: Optional[int] = None

    def __post_init__(self):
        if self.n_splits < 2:
            raise ConfigError(f"n_splits must be >= 2, got {self.n_splits}")
        if self.n_repeats < 1:
            raise ConfigError(f"n_repeats must be >= 1, got {self.n_repeats}")
        if self.scoring not in SCORINGS:
            raise ConfigError(f"scoring must be one of {SCORINGS}, got {self.scoring!r}")


@dataclass(frozen=True)
class ModelConfig:
    """One classifier family to tune. ``param_grid`` defaults to the family's grid."""
    family: str
    param_grid: Optional[Dict[str, List[Any]]] = None
    scale: Optional[bool] = None
    balance: str = 'none'

    def __post_init__(self):
        family = get_family(self.family)
        grid = family.param_grid if self.param_grid is None else self.param_grid
        object.__setattr__(self, 'param_grid', validate_param_grid(family, grid))
        if self.balance not in BALANCE_METHODS:
            raise ConfigError(
                f"balance must be one of {BALANCE_METHODS}, got {self.balance!r}")


def _default_models():
    return [ModelConfig('knn'), ModelConfig('svm_linear'), ModelConfig('xgboost')]


@dataclass(frozen=True)
class PipelineConfig:
    """Whole run.

    ``seed`` is the random_state of every sampler, classifier and
    one-vs-all sub-model, and of the annotation export sample; the split
    and the CV folds keep their own seeds. ``n_jobs`` sets the workers for
    the per-class one-vs-all fits.
    """
    id_col: str = 'id'
    text_col: str = 'text'
    label_col: str = 'stance'
    normalizer: NormalizerConfig = field(default_factory=NormalizerConfig)
    features: FeatureConfig = field(default_factory=FeatureConfig)
    split: SplitConfig = field(default_factory=SplitConfig)
    cv: CVConfig = field(default_factory=CVConfig)
    models: Tuple[ModelConfig, ...] = field(default_factory=_default_models)
    one_vs_all: Tuple[str, ...] = ()
    seed: int = 42
    n_jobs: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'models', tuple(self.models))
        object.__setattr__(self, 'one_vs_all', tuple(self.one_vs_all))
        if not self.models and not self.one_vs_all:
            raise ConfigError("At least one model or one-vs-all family is required")
        for name in self.one_vs_all:
            get_family(name)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'PipelineConfig':
        """Build a config from plain JSON-style data; unknown keys are rejected."""
        _reject_unknown(cls, data, 'pipeline')
        kwargs = dict(data)
        sections = {'normalizer': NormalizerConfig, 'features': FeatureConfig,
                    'split': SplitConfig, 'cv': CVConfig}
        for key, section_cls in sections.items():
            if key in kwargs:
                _reject_unknown(section_cls, kwargs[key], key)
                kwargs[key] = section_cls(**kwargs[key])
        if 'models' in kwargs:
            models = []
            for entry in kwargs['models']:
                if isinstance(entry, str):
                    entry = {'family': entry}
                _reject_unknown(ModelConfig, entry, 'models')
                models.append(ModelConfig(**entry))
            kwargs['models'] = models
        return cls(**kwargs)


def _reject_unknown(cls, data, section):
    if not isinstance(data, Mapping):
        raise ConfigError(f"Section {section!r} must be a mapping, got {type(data).__name__}")
    allowed = {f.name for f in fields(cls)}
    unknown = set(data) - allowed
    if unknown:
        raise ConfigError(f"Unknown keys in {section!r}: {sorted(unknown)}")


def load_config(path: Union[str, Path]) -> PipelineConfig:
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc
    return PipelineConfig.from_dict(data)
