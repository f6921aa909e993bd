# Import required libraries
import numpy as np
import pandas as pd
from sklearn.exceptions import NotFittedError
from sklearn.preprocessing import StandardScaler

from irisnet.config import FEATURE_COLS, LABEL_COL, CLASSES
from irisnet.errors import EncodingError
from irisnet.model import Formula

# =============================================================================
# FEATURE NORMALIZATION + ONE-HOT TARGETS
# =============================================================================
# Feature columns are standardized with statistics learned by fit(). The
# pipeline fits on the training rows of each split or fold only, then applies
# the same statistics to the evaluation rows.
#
# The label is expanded into one binary column per declared class. Column
# order is CLASSES order, and the network's score columns follow it.


class FeaturePreprocessor:
    """
    Normalize numeric feature columns and append a one-hot target block.

    Args:
        feature_cols: Numeric columns to standardize
        label_col: Categorical label column
        classes: Declared class set; its order is the target column order
    """

    def __init__(
        self,
        feature_cols: list[str] = FEATURE_COLS,
        label_col: str = LABEL_COL,
        classes: list[str] = CLASSES,
    ):
        if len(set(classes)) != len(classes):
            raise EncodingError(f"Duplicate class names in {list(classes)}")
        clash = set(classes) & set(feature_cols)
        if clash:
            raise EncodingError(f"Class names collide with feature columns: {sorted(clash)}")
        self.feature_cols = list(feature_cols)
        self.label_col = label_col
        self.classes = list(classes)
        self.scaler_ = None

    @property
    def target_cols(self) -> list[str]:
        """Names of the one-hot columns, in class order."""
        return list(self.classes)

    @property
    def formula(self) -> Formula:
        return Formula(targets=self.target_cols, features=self.feature_cols)

    def _feature_matrix(self, df: pd.DataFrame) -> np.ndarray:
        missing = [c for c in self.feature_cols if c not in df.columns]
        if missing:
            raise EncodingError(f"Missing feature columns: {missing}")
        X = df[self.feature_cols]
        non_numeric = [c for c in self.feature_cols if not pd.api.types.is_numeric_dtype(X[c])]
        if non_numeric:
            raise EncodingError(f"Non-numeric feature columns: {non_numeric}")
        has_nan = X.columns[X.isna().any()].tolist()
        if has_nan:
            raise EncodingError(f"Feature columns with missing values: {has_nan}")
        return X.to_numpy(dtype=float)

    def fit(self, df: pd.DataFrame) -> "FeaturePreprocessor":
        """Learn per-column mean and standard deviation from df."""
        X = self._feature_matrix(df)
        constant = [c for c, spread in zip(self.feature_cols, np.ptp(X, axis=0)) if spread == 0]
        if constant:
            raise EncodingError(f"Zero-variance feature columns cannot be normalized: {constant}")
        self.scaler_ = StandardScaler().fit(X)
        return self

    def encode_targets(self, labels: pd.Series) -> pd.DataFrame:
        """
        One-hot encode labels into len(classes) binary columns.

        Raises:
            EncodingError: if a label is not in the declared class set
        """
        unseen = sorted(set(labels[~labels.isin(self.classes)].astype(str)))
        if unseen:
            raise EncodingError(f"Labels not in declared classes {self.classes}: {unseen}")
        codes = pd.Categorical(labels, categories=self.classes).codes
        onehot = np.eye(len(self.classes), dtype=int)[codes]
        return pd.DataFrame(onehot, columns=self.target_cols, index=labels.index)

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Return a new table with normalized features and, when df carries the
        label column, the one-hot target block appended. df is not modified.
        """
        if self.scaler_ is None:
            raise NotFittedError("FeaturePreprocessor.fit must be called before transform")
        out = df.copy()
        scaled = self.scaler_.transform(self._feature_matrix(df))
        for i, col in enumerate(self.feature_cols):
            out[col] = scaled[:, i]
        if self.label_col in df.columns:
            targets = self.encode_targets(df[self.label_col])
            for col in self.target_cols:
                out[col] = targets[col]
        return out

    def fit_transform(self, df: pd.DataFrame) -> pd.DataFrame:
        return self.fit(df).transform(df)
