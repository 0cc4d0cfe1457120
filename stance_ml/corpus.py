# stance_ml/corpus.py
"""Loading hand-coded records and exporting unlabeled ones for annotation."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

ID_COL = "id"
TEXT_COL = "text"
LABEL_COL = "stance"


def load_records(
    path: Union[str, Path],
    *,
    id_col: str = ID_COL,
    text_col: str = TEXT_COL,
    label_col: str = LABEL_COL,
    sep: str = ",",
    labels: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """
    Read a delimited file into canonical ``id``, ``text``, ``stance`` columns.
    Missing text becomes ``""``; a missing stance marks an unlabeled record.
    """
    df = pd.read_csv(path, sep=sep)
    missing = [c for c in (id_col, text_col) if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing required column(s) {missing}")

    records = pd.DataFrame({
        ID_COL: df[id_col],
        TEXT_COL: df[text_col].fillna("").astype(str),
        LABEL_COL: df[label_col] if label_col in df.columns else pd.NA,
    })

    dupes = records[ID_COL][records[ID_COL].duplicated()]
    if not dupes.empty:
        raise ValueError(f"{path}: duplicated identifiers {dupes.head(5).tolist()}")

    if labels is not None:
        allowed = set(labels)
        present = set(records[LABEL_COL].dropna().unique())
        unexpected = present - allowed
        if unexpected:
            raise ValueError(f"{path}: unexpected stance label(s) {sorted(map(str, unexpected))}")

    n_labeled = int(records[LABEL_COL].notna().sum())
    logger.info("Loaded %d records from %s (%d labeled)", len(records), path, n_labeled)
    return records


def labeled(records: pd.DataFrame) -> pd.DataFrame:
    return records[records[LABEL_COL].notna()].reset_index(drop=True)


def unlabeled(records: pd.DataFrame) -> pd.DataFrame:
    return records[records[LABEL_COL].isna()].reset_index(drop=True)


def class_distribution(records: pd.DataFrame) -> pd.Series:
    return records[LABEL_COL].value_counts().sort_index()


def export_for_annotation(
    records: pd.DataFrame,
    path: Union[str, Path],
    *,
    n: Optional[int] = None,
    seed: int = 42,
) -> pd.DataFrame:
    """Write unlabeled records (optionally a seeded sample of n) as an id,text,stance CSV."""
    todo = unlabeled(records)
    if n is not None and n < len(todo):
        todo = todo.sample(n=n, random_state=seed).sort_index()

    out = todo[[ID_COL, TEXT_COL]].assign(**{LABEL_COL: ""})
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    out.to_csv(path, index=False)
    logger.info("Wrote %d records for annotation to %s", len(out), path)
    return out
