"""
Evaluation module.
Argmax accuracy over one-hot targets, single-split evaluation, and k-fold
cross-validation with per-fold results and aggregation.
Exposes: accuracy(...), evaluate_split(...), CrossValidationRunner, aggregate(...)
"""
import logging
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from irisnet.config import (
    N_FOLDS,
    RANDOM_STATE,
    STRATIFY,
    ON_CONVERGENCE_FAILURE,
)
from irisnet.errors import ConvergenceFailure, EncodingError, PipelineError, ShapeMismatch
from irisnet.model import Hyperparameters, MLPTrainer, ModelTrainer, train_on_table
from irisnet.preprocess import FeaturePreprocessor
from irisnet.split import Fold, k_fold_split

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------

def _as_matrix(values, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.ndim != 2:
        raise ShapeMismatch(f"{name} must be 2-D (rows x classes), got shape {arr.shape}")
    return arr


def predicted_classes(scores) -> np.ndarray:
    """Index of the highest score per row; ties go to the lowest index."""
    return np.argmax(_as_matrix(scores, "scores"), axis=1)


def true_classes(targets) -> np.ndarray:
    """Index of the 1 in each one-hot row."""
    onehot = _as_matrix(targets, "targets")
    if onehot.shape[1] > 1:
        valid = np.isin(onehot, (0, 1)).all(axis=1) & (onehot.sum(axis=1) == 1)
        if not valid.all():
            bad = np.flatnonzero(~valid)[:5].tolist()
            raise EncodingError(f"Target rows are not one-hot (first bad rows: {bad})")
    return np.argmax(onehot, axis=1)


def accuracy(scores, targets) -> float:
    """
    Share of rows whose argmax score matches the one-hot target.

    Raises:
        ShapeMismatch: if the matrices differ in rows or columns, or are empty
    """
    scores = _as_matrix(scores, "scores")
    targets = _as_matrix(targets, "targets")
    if scores.shape != targets.shape:
        raise ShapeMismatch(f"scores {scores.shape} vs targets {targets.shape}")
    if scores.shape[0] == 0:
        raise ShapeMismatch("No rows to evaluate")
    hits = predicted_classes(scores) == true_classes(targets)
    return float(hits.sum() / hits.size)


# ---------------------------------------------------------------------
# Single split and per-fold evaluation
# ---------------------------------------------------------------------

def evaluate_split(
    table: pd.DataFrame,
    train_idx: np.ndarray,
    test_idx: np.ndarray,
    trainer: ModelTrainer,
    preprocessor: FeaturePreprocessor,
    hyperparams: Hyperparameters,
) -> float:
    """Train on train_idx rows, score test_idx rows, return accuracy."""
    train_rows = table.iloc[train_idx]
    test_rows = table.iloc[test_idx]
    predictor = train_on_table(trainer, train_rows, preprocessor, hyperparams)
    scores = predictor.predict(test_rows)
    targets = predictor.preprocessor.encode_targets(test_rows[preprocessor.label_col])
    return accuracy(scores, targets.to_numpy())


@dataclass
class FoldResult:
    fold_id: int
    n_train: int
    n_test: int
    accuracy: float | None = None
    error: str | None = None

    @property
    def completed(self) -> bool:
        return self.accuracy is not None


@dataclass
class CVResult:
    folds: list[FoldResult]
    mean_accuracy: float | None
    n_completed: int
    n_folds: int = field(init=False)

    def __post_init__(self):
        self.n_folds = len(self.folds)

    @property
    def accuracies(self) -> list[float]:
        return [f.accuracy for f in self.folds if f.completed]


def aggregate(fold_results: list[FoldResult]) -> CVResult:
    """Mean accuracy over completed folds, ordered by fold id."""
    folds = sorted(fold_results, key=lambda f: f.fold_id)
    done = [f.accuracy for f in folds if f.completed]
    mean = float(np.mean(done)) if done else None
    return CVResult(folds=folds, mean_accuracy=mean, n_completed=len(done))


def _run_fold(
    fold: Fold,
    table: pd.DataFrame,
    trainer: ModelTrainer,
    preprocessor: FeaturePreprocessor,
    hyperparams: Hyperparameters,
    on_convergence_failure: str,
) -> FoldResult:
    n_train, n_test = len(fold.train_idx), len(fold.test_idx)
    context = f"fold {fold.fold_id} ({n_train} train / {n_test} test rows)"
    logger.info("Running %s", context)
    try:
        acc = evaluate_split(
            table,
            fold.train_idx,
            fold.test_idx,
            trainer,
            preprocessor,
            hyperparams.with_seed(hyperparams.random_state + fold.fold_id),
        )
    except ConvergenceFailure as err:
        if on_convergence_failure == "abort":
            raise ConvergenceFailure(f"{context}: {err}", n_steps=err.n_steps) from err
        logger.warning("Skipping %s: %s", context, err)
        return FoldResult(fold.fold_id, n_train, n_test, error=str(err))
    except PipelineError as err:
        raise type(err)(f"{context}: {err}") from err
    except Exception as err:
        raise PipelineError(f"{context}: {type(err).__name__}: {err}") from err
    logger.info("Fold %d accuracy: %.4f", fold.fold_id, acc)
    return FoldResult(fold.fold_id, n_train, n_test, accuracy=acc)


# ---------------------------------------------------------------------
# Cross-validation runner
# ---------------------------------------------------------------------

class RunnerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    AGGREGATING = "aggregating"
    DONE = "done"


class CrossValidationRunner:
    """
    k-fold cross-validation: each fold is held out once, the network is
    trained on the remaining rows, and fold accuracies are aggregated only
    after every fold has finished.

    on_convergence_failure:
        "skip"  - record the fold as not completed and keep going
        "abort" - re-raise ConvergenceFailure with the fold index attached
    """

    def __init__(
        self,
        trainer: ModelTrainer | None = None,
        preprocessor: FeaturePreprocessor | None = None,
        hyperparams: Hyperparameters | None = None,
        n_folds: int = N_FOLDS,
        seed: int = RANDOM_STATE,
        stratify: bool = STRATIFY,
        on_convergence_failure: str = ON_CONVERGENCE_FAILURE,
        n_jobs: int = 1,
    ):
        if on_convergence_failure not in ("skip", "abort"):
            raise ValueError(f"on_convergence_failure must be 'skip' or 'abort', got {on_convergence_failure!r}")
        self.trainer = trainer if trainer is not None else MLPTrainer()
        self.preprocessor = preprocessor if preprocessor is not None else FeaturePreprocessor()
        self.hyperparams = hyperparams if hyperparams is not None else Hyperparameters()
        self.n_folds = n_folds
        self.seed = seed
        self.stratify = stratify
        self.on_convergence_failure = on_convergence_failure
        self.n_jobs = n_jobs
        self.state = RunnerState.IDLE
        self.current_fold = None
        self.result = None

    def run(self, table: pd.DataFrame) -> CVResult:
        label_col = self.preprocessor.label_col
        table = table.reset_index(drop=True)
        folds = k_fold_split(table[label_col], k=self.n_folds, seed=self.seed, stratify=self.stratify)

        self.state = RunnerState.RUNNING
        self.result = None
        try:
            if self.n_jobs == 1:
                results = []
                for fold in folds:
                    self.current_fold = fold.fold_id
                    results.append(self._run(fold, table))
            else:
                logger.info("Dispatching %d folds to %s workers", len(folds), self.n_jobs)
                results = Parallel(n_jobs=self.n_jobs)(delayed(self._run)(fold, table) for fold in folds)
        except Exception:
            # No partial aggregation: a failed run goes back to IDLE
            self.state = RunnerState.IDLE
            raise
        finally:
            self.current_fold = None

        self.state = RunnerState.AGGREGATING
        self.result = aggregate(results)
        if self.result.n_completed < len(folds):
            logger.warning("%d of %d folds completed", self.result.n_completed, len(folds))
        self.state = RunnerState.DONE
        return self.result

    def _run(self, fold: Fold, table: pd.DataFrame) -> FoldResult:
        return _run_fold(
            fold, table, self.trainer, self.preprocessor, self.hyperparams, self.on_convergence_failure
        )


# ---------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------

def format_split_summary(acc: float) -> str:
    return f"Test-set accuracy: {acc:.2%}"


def format_cv_summary(result: CVResult) -> str:
    if result.mean_accuracy is None:
        return f"Cross-validation: 0/{result.n_folds} folds completed, no mean accuracy"
    return (
        f"Cross-validation: {result.n_completed}/{result.n_folds} folds completed, "
        f"mean accuracy {result.mean_accuracy:.2%}"
    )
