"""
Model module.
Defines the trainer contract (Formula, Hyperparameters, Predictor, ModelTrainer)
and the feed-forward network that implements it.
Exposes: build_model(...) -> MLPClassifier, MLPTrainer, train_on_table(...)
"""
import copy
import dataclasses
import warnings
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning
from sklearn.neural_network import MLPClassifier

from irisnet.config import (
    HIDDEN_LAYERS,
    THRESHOLD,
    MAX_STEPS,
    OUTPUT_ACTIVATION,
    RANDOM_STATE,
)
from irisnet.errors import ConvergenceFailure


@dataclass(frozen=True)
class Formula:
    """
    Named target and feature columns, written as "t1 + t2 ~ f1 + f2".
    Resolved once from the preprocessor and carried into training and prediction.
    """

    targets: tuple[str, ...]
    features: tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "targets", tuple(self.targets))
        object.__setattr__(self, "features", tuple(self.features))
        if not self.targets or not self.features:
            raise ValueError("Formula needs at least one target and one feature")

    @classmethod
    def parse(cls, text: str) -> "Formula":
        if text.count("~") != 1:
            raise ValueError(f"Formula must contain exactly one '~': {text!r}")
        lhs, rhs = text.split("~")
        targets = [t.strip() for t in lhs.split("+") if t.strip()]
        features = [f.strip() for f in rhs.split("+") if f.strip()]
        return cls(targets=targets, features=features)

    def __str__(self) -> str:
        return f"{' + '.join(self.targets)} ~ {' + '.join(self.features)}"


@dataclass(frozen=True)
class Hyperparameters:
    hidden_layers: tuple[int, ...] = HIDDEN_LAYERS
    threshold: float = THRESHOLD
    max_steps: int = MAX_STEPS
    output_activation: str = OUTPUT_ACTIVATION
    hidden_activation: str = "logistic"
    random_state: int = RANDOM_STATE
    extra: dict = field(default_factory=dict)

    def __post_init__(self):
        # One-hot targets need a squashing output, not a raw regression output
        if self.output_activation != "logistic":
            raise ValueError(
                f"output_activation must be 'logistic' for one-hot targets, got {self.output_activation!r}"
            )
        if not self.hidden_layers or any(int(h) < 1 for h in self.hidden_layers):
            raise ValueError(f"hidden_layers must be positive widths, got {self.hidden_layers!r}")
        if self.threshold <= 0:
            raise ValueError(f"threshold must be positive, got {self.threshold}")
        if self.max_steps < 1:
            raise ValueError(f"max_steps must be >= 1, got {self.max_steps}")

    def with_seed(self, seed: int) -> "Hyperparameters":
        return dataclasses.replace(self, random_state=seed)


class Predictor(Protocol):
    formula: Formula

    def predict(self, rows: pd.DataFrame) -> np.ndarray:
        """Return a (len(rows), len(formula.targets)) score matrix."""


class ModelTrainer(Protocol):
    def train(self, rows: pd.DataFrame, formula: Formula, hyperparams: Hyperparameters) -> Predictor:
        """Fit on rows; raise ConvergenceFailure if the step budget runs out."""


def build_model(hyperparams: Hyperparameters) -> MLPClassifier:
    """Build an unfitted network for the given hyperparameters."""
    return MLPClassifier(
        hidden_layer_sizes=tuple(int(h) for h in hyperparams.hidden_layers),
        activation=hyperparams.hidden_activation,
        solver="lbfgs",
        tol=hyperparams.threshold,
        max_iter=hyperparams.max_steps,
        max_fun=hyperparams.max_steps,
        random_state=hyperparams.random_state,
        **hyperparams.extra,
    )


class MLPPredictor:
    """Scores rows that already carry normalized feature columns."""

    def __init__(self, model: MLPClassifier, formula: Formula):
        self.model = model
        self.formula = formula

    def predict(self, rows: pd.DataFrame) -> np.ndarray:
        X = rows[list(self.formula.features)].to_numpy(dtype=float)
        scores = np.asarray(self.model.predict_proba(X), dtype=float)
        return scores.reshape(len(rows), len(self.formula.targets))


class MLPTrainer:
    """
    Trains a feed-forward network on the one-hot target block.

    The targets are passed as a multi-label indicator matrix, so the network
    gets one logistic output per class column, in formula.targets order.
    """

    def train(self, rows: pd.DataFrame, formula: Formula, hyperparams: Hyperparameters) -> MLPPredictor:
        X = rows[list(formula.features)].to_numpy(dtype=float)
        Y = rows[list(formula.targets)].to_numpy(dtype=int)
        model = build_model(hyperparams)
        with warnings.catch_warnings():
            warnings.simplefilter("error", ConvergenceWarning)
            try:
                model.fit(X, Y)
            except ConvergenceWarning as err:
                raise ConvergenceFailure(
                    f"Network did not reach threshold {hyperparams.threshold} "
                    f"within {hyperparams.max_steps} steps on {len(rows)} rows",
                    n_steps=getattr(model, "n_iter_", None),
                ) from err
        return MLPPredictor(model, formula)


class PreprocessedPredictor:
    """Applies the training rows' preprocessing to new rows before scoring."""

    def __init__(self, predictor: Predictor, preprocessor):
        self.predictor = predictor
        self.preprocessor = preprocessor
        self.formula = predictor.formula

    def predict(self, rows: pd.DataFrame) -> np.ndarray:
        return self.predictor.predict(self.preprocessor.transform(rows))


def train_on_table(
    trainer: ModelTrainer,
    rows: pd.DataFrame,
    preprocessor,
    hyperparams: Hyperparameters,
) -> PreprocessedPredictor:
    """
    Fit a private copy of preprocessor on rows, train on the encoded rows,
    and return a predictor that accepts raw rows.
    """
    fitted = copy.deepcopy(preprocessor).fit(rows)
    predictor = trainer.train(fitted.transform(rows), fitted.formula, hyperparams)
    return PreprocessedPredictor(predictor, fitted)
