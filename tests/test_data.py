import numpy as np
import pytest

from irisnet.config import FEATURE_COLS, ID_COL, LABEL_COL
from irisnet.data import load_observations, missing_report
from irisnet.errors import EncodingError


def test_load_observations_round_trip(tmp_path, iris_like):
    path = tmp_path / "Iris.csv"
    iris_like.to_csv(path, index=False)
    df = load_observations(path)
    assert list(df.columns) == [ID_COL, *FEATURE_COLS, LABEL_COL]
    assert len(df) == len(iris_like)


@pytest.mark.parametrize("dropped", ["PetalWidthCm", LABEL_COL, ID_COL])
def test_load_observations_requires_header(tmp_path, iris_like, dropped):
    path = tmp_path / "Iris.csv"
    iris_like.drop(columns=[dropped]).to_csv(path, index=False)
    with pytest.raises(EncodingError, match=dropped):
        load_observations(path)


def test_missing_report_counts_only_gaps(iris_like):
    df = iris_like.copy()
    df.loc[[1, 4], "SepalLengthCm"] = np.nan
    report = missing_report(df)
    assert report.to_dict() == {"SepalLengthCm": 2}
    assert missing_report(iris_like).empty
