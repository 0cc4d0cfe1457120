"""
evaluation.py
--------------
Confusion matrix and derived metrics, plus the printed reports.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix


@dataclass
class EvaluationReport:
    """Metrics for one set of predictions.

    ``confusion`` is indexed by actual label (rows) and predicted label
    (columns) over the full label set. Precision or recall of a class
    with no predicted or no actual instances is NaN.
    """
    labels: list
    confusion: pd.DataFrame
    accuracy: float
    balanced_accuracy: float
    per_class: pd.DataFrame

    def to_dict(self):
        def _clean(v):
            return None if pd.isna(v) else float(v)

        return {
            'accuracy': _clean(self.accuracy),
            'balanced_accuracy': _clean(self.balanced_accuracy),
            'per_class': {
                str(label): {
                    'precision': _clean(row['precision']),
                    'recall': _clean(row['recall']),
                    'support': int(row['support']),
                }
                for label, row in self.per_class.iterrows()
            },
            'confusion': {
                str(actual): {str(pred): int(n) for pred, n in row.items()}
                for actual, row in self.confusion.iterrows()
            },
        }


def evaluate_predictions(y_true, y_pred, labels=None):
    """Compare predicted with actual labels.

    Parameters
    ----------
    y_true, y_pred : array-like of equal length
    labels : list, optional
        Full label set (rows/columns of the confusion matrix). Defaults to
        the sorted union of both sequences.

    Returns
    -------
    EvaluationReport
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    if y_true.shape != y_pred.shape:
        raise ValueError(f"y_true has {len(y_true)} labels but y_pred has {len(y_pred)}")

    if labels is None:
        labels = sorted(set(y_true.tolist()) | set(y_pred.tolist()))
    else:
        labels = list(labels)
        unknown = (set(y_true.tolist()) | set(y_pred.tolist())) - set(labels)
        if unknown:
            raise ValueError(f"Labels outside the label set: {sorted(map(str, unknown))}")

    cm = confusion_matrix(y_true, y_pred, labels=labels)
    tp = np.diag(cm).astype(float)
    actual = cm.sum(axis=1)
    predicted = cm.sum(axis=0)

    with np.errstate(divide='ignore', invalid='ignore'):
        precision = np.where(predicted > 0, tp / predicted, np.nan)
        recall = np.where(actual > 0, tp / actual, np.nan)

    total = cm.sum()
    accuracy = tp.sum() / total if total else np.nan
    balanced = float(np.nanmean(recall)) if np.any(~np.isnan(recall)) else np.nan

    return EvaluationReport(
        labels=labels,
        confusion=pd.DataFrame(cm, index=pd.Index(labels, name='actual'),
                               columns=pd.Index(labels, name='predicted')),
        accuracy=float(accuracy),
        balanced_accuracy=balanced,
        per_class=pd.DataFrame({'precision': precision, 'recall': recall,
                                'support': actual}, index=labels),
    )


def print_report(report, title=""):
    """Print metrics and confusion matrix for one run."""
    print(f"\n  {title}")
    print(f"  {'─' * 55}")
    print(f"  Accuracy:          {report.accuracy:.4f}")
    print(f"  Balanced accuracy: {report.balanced_accuracy:.4f}")
    print(f"\n  {'Class':<20s} {'Precision':>10s} {'Recall':>10s} {'Support':>8s}")
    for label, row in report.per_class.iterrows():
        print(f"  {str(label):<20s} {row['precision']:>10.4f} "
              f"{row['recall']:>10.4f} {int(row['support']):>8d}")
    print(f"\n  Confusion Matrix (rows = actual):")
    for line in report.confusion.to_string().splitlines():
        print(f"    {line}")


def print_summary(results, title=""):
    """Print a ranked summary table from a list of RunResult objects."""
    if not results:
        return
    sorted_res = sorted(results, key=lambda r: r.report.balanced_accuracy, reverse=True)
    best = sorted_res[0].report.balanced_accuracy

    print(f"\n  {'─' * 60}")
    print(f"  SUMMARY — {title}")
    print(f"  {'─' * 60}")
    print(f"  {'Model':<40s} {'Acc':>8s} {'BalAcc':>8s}")
    print(f"  {'─' * 60}")

    for r in sorted_res:
        marker = " ★" if r.report.balanced_accuracy == best else ""
        print(f"  {r.name:<40s} "
              f"{r.report.accuracy:>8.4f} {r.report.balanced_accuracy:>8.4f}{marker}")
