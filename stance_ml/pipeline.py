"""
pipeline.py
------------
High-level pipeline that orchestrates:
  - holdout split and Training-only feature fitting
  - tuned classifiers per configured family
  - one-vs-all dispatch per configured family
  - evaluation on the Test partition
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import PipelineConfig
from .corpus import ID_COL, LABEL_COL, TEXT_COL, labeled
from .evaluation import EvaluationReport, evaluate_predictions, print_report, print_summary
from .features import FeatureBuilder
from .models import get_family
from .ova import OneVsAllClassifier
from .preprocessing import TextNormalizer
from .splitting import SplitAssignment, split_records
from .training import tune_classifier

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    name: str
    family: str
    model: Any
    report: EvaluationReport
    params: Dict[str, Any] = field(default_factory=dict)
    cv_score: Optional[float] = None


@dataclass
class PipelineResult:
    split: SplitAssignment
    features: FeatureBuilder
    labels: List[Any]
    runs: List[RunResult]

    def best(self):
        return max(self.runs, key=lambda r: r.report.balanced_accuracy)


def _format_model_name(family, params):
    """Create descriptive model name from the chosen params."""
    params = get_family(family).build(params).get_params()
    if family == 'knn':
        return f"k-NN (k={params.get('n_neighbors')})"
    if family == 'svm_linear':
        return f"SVM-Linear (C={params.get('C')})"
    if family == 'xgboost':
        return (f"XGBoost (n={params.get('n_estimators')}, "
                f"d={params.get('max_depth')}, lr={params.get('learning_rate')})")
    return family


def run_stance_classification(records, config=None, *, verbose=True):
    """Run the full split → features → train → evaluate pipeline.

    Parameters
    ----------
    records : pandas.DataFrame
        Canonical ``id``, ``text``, ``stance`` columns (see corpus.load_records).
        Unlabeled rows are ignored.
    config : PipelineConfig
    verbose : bool
        Print per-run reports and the ranked summary.

    Returns
    -------
    PipelineResult
    """
    config = config or PipelineConfig()
    records = labeled(records)
    labels = sorted(records[LABEL_COL].unique().tolist())
    logger.info("Running on %d labeled records, classes: %s", len(records), labels)

    split = split_records(records, config.split.test_size,
                          stratify=config.split.stratify, seed=config.split.seed,
                          id_col=ID_COL, label_col=LABEL_COL)
    train, test = (split.feature_view(f) for f in split.apply(records))
    logger.info("Split: train %d | test %d", len(train), len(test))

    normalizer = TextNormalizer.from_config(config.normalizer)
    builder = FeatureBuilder.from_config(normalizer, config.features)
    X_train = builder.fit_transform(train[TEXT_COL])
    X_test = builder.transform(test[TEXT_COL])
    y_train = train[LABEL_COL].to_numpy()
    y_test = test[LABEL_COL].to_numpy()
    columns = builder.feature_names_

    runs = []
    for model_cfg in config.models:
        family = get_family(model_cfg.family)
        model = tune_classifier(family, X_train, y_train,
                                param_grid=model_cfg.param_grid,
                                balance=model_cfg.balance, scale=model_cfg.scale,
                                cv_cfg=config.cv, random_state=config.seed,
                                feature_names=columns)
        report = evaluate_predictions(y_test, model.predict(X_test, columns), labels)
        name = _format_model_name(family.name, model.params)
        if verbose:
            print_report(report, title=name)
        runs.append(RunResult(name, family.name, model, report,
                              params=model.params, cv_score=model.cv_score))

    tuned = {r.family: r.params for r in runs}
    scales = {m.family: m.scale for m in config.models}
    for family_name in config.one_vs_all:
        family = get_family(family_name)
        params = tuned.get(family_name, {})
        ova = OneVsAllClassifier(family, params, scale=scales.get(family_name),
                                 random_state=config.seed,
                                 n_jobs=config.n_jobs).fit(X_train, y_train, columns)
        report = evaluate_predictions(y_test, ova.predict(X_test, columns), labels)
        name = f"OvA {_format_model_name(family.name, params)}"
        if verbose:
            print_report(report, title=name)
        runs.append(RunResult(name, family.name, ova, report, params=params))

    if verbose:
        print_summary(runs, title="Stance classification")
    return PipelineResult(split=split, features=builder, labels=labels, runs=runs)
