import numpy as np
import pandas as pd
import pytest

from irisnet.config import CLASSES, FEATURE_COLS, ID_COL, LABEL_COL
from irisnet.errors import ConvergenceFailure
from irisnet.model import Hyperparameters


def make_iris_like(n_per_class: int = 10, seed: int = 0) -> pd.DataFrame:
    """Three well-separated clusters under the real iris header."""
    rng = np.random.default_rng(seed)
    frames = []
    for k, cls in enumerate(CLASSES):
        block = pd.DataFrame(
            rng.normal(loc=5.0 * k, scale=0.3, size=(n_per_class, len(FEATURE_COLS))),
            columns=FEATURE_COLS,
        )
        block[LABEL_COL] = cls
        frames.append(block)
    df = pd.concat(frames, ignore_index=True)
    df.insert(0, ID_COL, np.arange(1, len(df) + 1))
    return df


def make_separable(n: int = 20) -> pd.DataFrame:
    """Two classes, four features, alternating rows; class b sits ~10 units away."""
    rows = []
    for i in range(n):
        label = "a" if i % 2 == 0 else "b"
        base = 0.0 if label == "a" else 10.0
        rows.append(
            {
                "Id": i + 1,
                "f1": base + 0.1 * i,
                "f2": base - 0.05 * i,
                "f3": base + 0.02 * (i % 5),
                "f4": base + 0.03 * (i % 7),
                "label": label,
            }
        )
    return pd.DataFrame(rows)


class CentroidPredictor:
    def __init__(self, centroids: np.ndarray, formula):
        self.centroids = centroids
        self.formula = formula

    def predict(self, rows: pd.DataFrame) -> np.ndarray:
        X = rows[list(self.formula.features)].to_numpy(dtype=float)
        dist = ((X[:, None, :] - self.centroids[None, :, :]) ** 2).sum(axis=2)
        return -dist


class CentroidTrainer:
    """Deterministic stand-in for the network: scores by distance to class centroids."""

    def __init__(self, fail_on_calls=(), error_on_calls=()):
        self.fail_on_calls = set(fail_on_calls)
        self.error_on_calls = set(error_on_calls)
        self.calls = 0
        self.seen_rows = []

    def train(self, rows, formula, hyperparams):
        call = self.calls
        self.calls += 1
        self.seen_rows.append(len(rows))
        if call in self.fail_on_calls:
            raise ConvergenceFailure(f"forced failure on call {call}", n_steps=hyperparams.max_steps)
        if call in self.error_on_calls:
            raise ValueError(f"bad input on call {call}")
        X = rows[list(formula.features)].to_numpy(dtype=float)
        Y = rows[list(formula.targets)].to_numpy(dtype=int)
        centroids = np.vstack(
            [X[Y[:, j] == 1].mean(axis=0) if Y[:, j].any() else np.full(X.shape[1], np.inf) for j in range(Y.shape[1])]
        )
        return CentroidPredictor(centroids, formula)


@pytest.fixture
def iris_like() -> pd.DataFrame:
    return make_iris_like()


@pytest.fixture
def separable() -> pd.DataFrame:
    return make_separable()


@pytest.fixture
def small_hyperparams() -> Hyperparameters:
    return Hyperparameters(hidden_layers=(4,), threshold=0.01, max_steps=5000, random_state=0)
