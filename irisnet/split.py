"""
Row-index splitting.
Produces a seeded train/test partition and seeded k-fold partitions.
Exposes: train_test_split_indices(...), k_fold_split(...)
"""
import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, StratifiedKFold, train_test_split

from irisnet.config import TRAIN_FRACTION, N_FOLDS, RANDOM_STATE, STRATIFY
from irisnet.errors import InvalidFoldCount, InvalidSplitFraction

logger = logging.getLogger(__name__)


@dataclass
class Fold:
    fold_id: int
    train_idx: np.ndarray
    test_idx: np.ndarray


def train_test_split_indices(
    n: int,
    train_fraction: float = TRAIN_FRACTION,
    seed: int = RANDOM_STATE,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Sample floor(train_fraction * n) row indices without replacement as the
    training set; the rest of range(n) is the test set.
    Returns (train_idx, test_idx), each sorted.
    """
    if not 0 < train_fraction < 1:
        raise InvalidSplitFraction(f"train_fraction must be in (0, 1), got {train_fraction}")
    # round away float noise such as 0.29 * 100 == 28.999999999999996
    n_train = int(np.floor(round(train_fraction * n, 9)))
    if n_train < 1 or n_train >= n:
        raise InvalidSplitFraction(
            f"train_fraction={train_fraction} on {n} rows leaves {n_train} train / {n - n_train} test rows"
        )
    all_idx = np.arange(n)
    train_idx, _ = train_test_split(all_idx, train_size=n_train, shuffle=True, random_state=seed)
    train_idx = np.sort(train_idx)
    test_idx = np.setdiff1d(all_idx, train_idx)
    return train_idx, test_idx


def k_fold_split(
    labels,
    k: int = N_FOLDS,
    seed: int = RANDOM_STATE,
    stratify: bool = STRATIFY,
) -> list[Fold]:
    """
    Partition all row indices into k disjoint, roughly equal folds.

    Stratified on labels by default. Falls back to plain shuffled KFold when
    the smallest class has fewer than k rows.
    """
    y = pd.Series(labels).to_numpy()
    n = len(y)
    if k < 2 or k > n:
        raise InvalidFoldCount(f"k must be in [2, {n}] for {n} rows, got {k}")

    all_idx = np.arange(n)
    if stratify:
        smallest = pd.Series(y).value_counts().min()
        if smallest < k:
            logger.warning(
                "Smallest class has %d rows < k=%d; using unstratified folds", smallest, k
            )
            stratify = False

    if stratify:
        splitter = StratifiedKFold(n_splits=k, shuffle=True, random_state=seed)
        folds_iter = splitter.split(all_idx, y)
    else:
        splitter = KFold(n_splits=k, shuffle=True, random_state=seed)
        folds_iter = splitter.split(all_idx)

    return [
        Fold(fold_id=i, train_idx=np.sort(tr), test_idx=np.sort(te))
        for i, (tr, te) in enumerate(folds_iter)
    ]


def fold_assignment(folds: list[Fold], n: int) -> np.ndarray:
    """Per-row fold id; -1 marks a row in no fold."""
    assignment = np.full(n, -1, dtype=int)
    for fold in folds:
        assignment[fold.test_idx] = fold.fold_id
    return assignment
