# stance_ml/splitting.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import pandas as pd
from sklearn.model_selection import (KFold, RepeatedKFold,
                                     RepeatedStratifiedKFold, StratifiedKFold,
                                     train_test_split)

from .config import CVConfig
from .errors import ConfigError


@dataclass(frozen=True)
class SplitAssignment:
    """Disjoint Training/Test partition of record identifiers."""
    train_ids: Tuple
    test_ids: Tuple
    id_col: str = 'id'

    def apply(self, records: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """Return (train, test) frames, each in the records' original order."""
        ids = records[self.id_col]
        train = records.loc[ids.isin(set(self.train_ids))]
        test = records.loc[ids.isin(set(self.test_ids))]
        return train, test

    def feature_view(self, frame: pd.DataFrame) -> pd.DataFrame:
        """The frame without its identifier column, as passed to training."""
        return frame.drop(columns=[self.id_col])


def split_records(records: pd.DataFrame, test_size: float = 0.3, *,
                  stratify: bool = True, seed: int = 42,
                  id_col: str = 'id', label_col: str = 'stance') -> SplitAssignment:
    """
    Seeded holdout split of records into Training and Test identifiers.
    With ``stratify`` each stance keeps its proportion in both parts.
    """
    if not 0 < test_size < 1:
        raise ConfigError(f"test_size must be in (0, 1), got {test_size!r}")
    if records[id_col].duplicated().any():
        raise ValueError(f"Column {id_col!r} contains duplicated identifiers")

    ids = records[id_col].to_numpy()
    labels = records[label_col].to_numpy() if stratify else None
    train_ids, test_ids = train_test_split(
        ids, test_size=test_size, random_state=seed, stratify=labels
    )
    return SplitAssignment(tuple(train_ids), tuple(test_ids), id_col=id_col)


def make_cv(cfg: CVConfig):
    """(Repeated) stratified or plain k-fold splitter for cross-validation."""
    if cfg.n_repeats > 1:
        cls = RepeatedStratifiedKFold if cfg.stratified else RepeatedKFold
        return cls(n_splits=cfg.n_splits, n_repeats=cfg.n_repeats,
                   random_state=cfg.random_state)
    cls = StratifiedKFold if cfg.stratified else KFold
    return cls(n_splits=cfg.n_splits, shuffle=True, random_state=cfg.random_state)
