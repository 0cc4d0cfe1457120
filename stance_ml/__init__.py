"""
stance_ml
==========
Modular pipeline for stance classification of social-media posts.

Modules
-------
- corpus        : Loading hand-coded records, exporting posts to annotate
- preprocessing : Post cleaning, stop words, lemmatization
- features      : Pruned bag-of-words term matrix + extra columns
- splitting     : Seeded holdout split and CV splitters
- models        : Classifier families, grids, balancing, pipelines
- training      : Grid-searched training of a single family
- ova           : One-vs-all dispatcher
- evaluation    : Confusion matrix, accuracy, precision/recall
- pipeline      : End-to-end orchestration
"""

from .errors import BalancingError, ConfigError
from .config import (CVConfig, FeatureConfig, ModelConfig, NormalizerConfig,
                     PipelineConfig, SplitConfig, load_config)
from .corpus import (class_distribution, export_for_annotation, labeled,
                     load_records, unlabeled)
from .preprocessing import Lemmatizer, TextNormalizer
from .features import FeatureBuilder
from .splitting import SplitAssignment, make_cv, split_records
from .models import (FAMILIES, PARAM_GRIDS, RankTieKNeighborsClassifier,
                     get_family, make_model_pipeline)
from .training import TrainedModel, train_classifier, tune_classifier
from .ova import OneVsAllClassifier, balance_binary
from .evaluation import EvaluationReport, evaluate_predictions
from .pipeline import run_stance_classification

__all__ = [
    'BalancingError',
    'ConfigError',
    'CVConfig',
    'FeatureConfig',
    'ModelConfig',
    'NormalizerConfig',
    'PipelineConfig',
    'SplitConfig',
    'load_config',
    'load_records',
    'labeled',
    'unlabeled',
    'class_distribution',
    'export_for_annotation',
    'Lemmatizer',
    'TextNormalizer',
    'FeatureBuilder',
    'SplitAssignment',
    'split_records',
    'make_cv',
    'FAMILIES',
    'PARAM_GRIDS',
    'RankTieKNeighborsClassifier',
    'get_family',
    'make_model_pipeline',
    'TrainedModel',
    'train_classifier',
    'tune_classifier',
    'OneVsAllClassifier',
    'balance_binary',
    'EvaluationReport',
    'evaluate_predictions',
    'run_stance_classification',
]
