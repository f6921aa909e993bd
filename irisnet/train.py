"""
Training pipeline.
Wires data loading, preprocessing, the network, and evaluation together.
1) Load the observation table and report missing values
2) Validate on a single seeded train/test split
3) Re-evaluate with k-fold cross-validation
4) Print the accuracy summaries
"""
import logging
from pathlib import Path

from irisnet.config import (
    IRIS_CSV,
    FEATURE_COLS,
    LABEL_COL,
    CLASSES,
    TRAIN_FRACTION,
    N_FOLDS,
    RANDOM_STATE,
    STRATIFY,
    ON_CONVERGENCE_FAILURE,
)
from irisnet.data import load_observations, missing_report
from irisnet.evaluate import (
    CrossValidationRunner,
    evaluate_split,
    format_cv_summary,
    format_split_summary,
)
from irisnet.model import Hyperparameters, MLPTrainer
from irisnet.preprocess import FeaturePreprocessor
from irisnet.split import train_test_split_indices

logger = logging.getLogger(__name__)


def run_train_pipeline(
    csv_path: str | Path = IRIS_CSV,
    train_fraction: float = TRAIN_FRACTION,
    n_folds: int = N_FOLDS,
    random_state: int = RANDOM_STATE,
    hyperparams: Hyperparameters | None = None,
    stratify: bool = STRATIFY,
    on_convergence_failure: str = ON_CONVERGENCE_FAILURE,
    n_jobs: int = 1,
) -> dict:
    """
    Full evaluation pipeline:
    1. Load data
    2. Single train/test split accuracy
    3. k-fold cross-validation accuracy
    Returns metrics dict.
    """
    hyperparams = hyperparams if hyperparams is not None else Hyperparameters(random_state=random_state)
    trainer = MLPTrainer()
    preprocessor = FeaturePreprocessor(FEATURE_COLS, LABEL_COL, CLASSES)

    # 1. Load
    df = load_observations(csv_path)
    missing_report(df)
    logger.info("Formula: %s", preprocessor.formula)

    metrics = {}

    # 2. Single split
    train_idx, test_idx = train_test_split_indices(len(df), train_fraction, seed=random_state)
    metrics["test_accuracy"] = evaluate_split(df, train_idx, test_idx, trainer, preprocessor, hyperparams)
    print(format_split_summary(metrics["test_accuracy"]))

    # 3. Cross-validation
    runner = CrossValidationRunner(
        trainer=trainer,
        preprocessor=preprocessor,
        hyperparams=hyperparams,
        n_folds=n_folds,
        seed=random_state,
        stratify=stratify,
        on_convergence_failure=on_convergence_failure,
        n_jobs=n_jobs,
    )
    cv = runner.run(df)
    metrics["cv_mean_accuracy"] = cv.mean_accuracy
    metrics["cv_folds_completed"] = cv.n_completed
    metrics["cv_fold_accuracies"] = cv.accuracies
    print(format_cv_summary(cv))

    return metrics


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_train_pipeline()
