#!/usr/bin/env python3
"""
main.py
--------
Command-line entry point for stance classification.

Usage:
    python -m stance_ml.main --data posts.csv --config config.json
    python -m stance_ml.main --data posts.csv --families knn svm_linear --one_vs_all knn
    python -m stance_ml.main --data posts.csv --export_unlabeled to_code.csv --n_export 200
"""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import warnings
from datetime import datetime

import pandas as pd

from stance_ml.config import ModelConfig, PipelineConfig, load_config
from stance_ml.corpus import class_distribution, export_for_annotation, load_records
from stance_ml.logging_config import setup_logging
from stance_ml.pipeline import run_stance_classification

logger = logging.getLogger("stance_ml.main")


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Bag-of-words stance classification")
    p.add_argument("--data", type=str, required=True, help="Delimited file of hand-coded records.")
    p.add_argument("--config", type=str, default=None, help="JSON pipeline configuration.")
    p.add_argument("--sep", type=str, default=",")
    p.add_argument("--id_col", type=str, default=None)
    p.add_argument("--text_col", type=str, default=None)
    p.add_argument("--label_col", type=str, default=None)
    p.add_argument("--labels", nargs="+", default=None, help="Allowed stance labels.")

    p.add_argument("--families", nargs="+", default=None,
                   help="Classifier families to tune (knn, svm_linear, xgboost).")
    p.add_argument("--one_vs_all", nargs="+", default=None,
                   help="Families to also run as one-vs-all.")
    p.add_argument("--results_dir", type=str, default="results_stance")

    p.add_argument("--export_unlabeled", type=str, default=None,
                   help="Write unlabeled records to this CSV for manual coding and exit.")
    p.add_argument("--n_export", type=int, default=None)

    p.add_argument("--log_level", type=str, default="INFO")
    p.add_argument("--log_file", type=str, default=None)
    return p.parse_args(argv)


def build_config(args) -> PipelineConfig:
    cfg = load_config(args.config) if args.config else PipelineConfig()
    overrides = {}
    for key in ("id_col", "text_col", "label_col"):
        value = getattr(args, key)
        if value is not None:
            overrides[key] = value
    if args.families is not None:
        overrides["models"] = tuple(ModelConfig(f) for f in args.families)
    if args.one_vs_all is not None:
        overrides["one_vs_all"] = tuple(args.one_vs_all)
    return dataclasses.replace(cfg, **overrides) if overrides else cfg


def ensure_dir(path: str):
    os.makedirs(path, exist_ok=True)
    return path


def save_results(result, out_dir: str):
    rows = []
    metrics = {}
    for i, run in enumerate(result.runs):
        rows.append({
            "model": run.name,
            "family": run.family,
            "cv_score": run.cv_score,
            "accuracy": run.report.accuracy,
            "balanced_accuracy": run.report.balanced_accuracy,
        })
        run.report.confusion.to_csv(os.path.join(out_dir, f"confusion_{i:02d}_{run.family}.csv"))
        metrics[run.name] = {"params": run.params, **run.report.to_dict()}

    pd.DataFrame(rows).to_csv(os.path.join(out_dir, "results_summary.csv"), index=False)
    with open(os.path.join(out_dir, "metrics.json"), "w", encoding="utf-8") as f:
        json.dump(metrics, f, indent=2, default=str)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    warnings.filterwarnings("ignore", category=UserWarning)

    cfg = build_config(args)

    print("=" * 70)
    print("1. DATA LOADING")
    print("=" * 70)
    records = load_records(args.data, id_col=cfg.id_col, text_col=cfg.text_col,
                           label_col=cfg.label_col, sep=args.sep, labels=args.labels)
    print(f"  Records: {len(records)}")
    for label, n in class_distribution(records).items():
        print(f"    {str(label):<20s} {n}")

    if args.export_unlabeled:
        out = export_for_annotation(records, args.export_unlabeled, n=args.n_export, seed=cfg.seed)
        print(f"\n  Exported {len(out)} unlabeled records to {args.export_unlabeled}")
        return None

    print("\n" + "=" * 70)
    print("2. TRAINING AND EVALUATION")
    print("=" * 70)
    result = run_stance_classification(records, cfg)

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    out_dir = ensure_dir(os.path.join(args.results_dir, ts))
    save_results(result, out_dir)
    print(f"\nDone. Outputs in: {out_dir}")
    return result


def cli():
    main()


if __name__ == "__main__":
    cli()
