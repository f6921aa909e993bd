"""
Configuration for the iris neural-network pipeline.
Paths, column names, network settings, and validation constants.
"""
from pathlib import Path

# Project root (parent of irisnet/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Data paths (raw CSV is read-only)
DATA_DIR = PROJECT_ROOT / "data"
IRIS_CSV = DATA_DIR / "Iris.csv"

# Identifier, feature and label columns
ID_COL = "Id"
LABEL_COL = "Species"
FEATURE_COLS = ["SepalLengthCm", "SepalWidthCm", "PetalLengthCm", "PetalWidthCm"]

# Class order of the one-hot target block (shared by training and evaluation)
CLASSES = ["Iris-setosa", "Iris-versicolor", "Iris-virginica"]

# Network settings
HIDDEN_LAYERS = (10, 10)
THRESHOLD = 0.01
MAX_STEPS = 100_000
OUTPUT_ACTIVATION = "logistic"

# Validation settings
TRAIN_FRACTION = 0.7
N_FOLDS = 10
RANDOM_STATE = 42
STRATIFY = True
ON_CONVERGENCE_FAILURE = "skip"  # or "abort"
