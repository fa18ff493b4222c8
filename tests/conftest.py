import numpy as np
import pandas as pd
import pytest

from stabplot.fitter import LassoPath


class ScoreFitter:
    """Selects predictors whose |X_j . (y - mean y)| / n exceeds lambda."""

    def __init__(self, candidate_set=(4.0, 2.0, 1.0, 0.5), lambda_min=0.5, lambda_1se=1.0):
        self.candidate_set = np.asarray(candidate_set, dtype=float)
        self.lambda_min = lambda_min
        self.lambda_1se = lambda_1se
        self.path_calls = 0
        self.fit_calls = 0
        self.subsample_sizes = []

    def fit_path(self, X, y, n_folds):
        self.path_calls += 1
        return LassoPath(
            candidate_set=self.candidate_set,
            lambda_min=self.lambda_min,
            lambda_1se=self.lambda_1se,
        )

    def fit_at(self, X_sub, y_sub, lam):
        self.fit_calls += 1
        self.subsample_sizes.append(X_sub.shape[0])
        score = np.abs(X_sub.T @ (y_sub - y_sub.mean())) / len(y_sub)
        return (score > lam).astype(np.int8)


@pytest.fixture
def score_fitter():
    return ScoreFitter()


@pytest.fixture
def regression_data():
    rng = np.random.default_rng(42)
    n, p = 100, 10
    X = rng.normal(size=(n, p))
    beta = np.array([1.0, 2.0, 3.0] + [0.0] * (p - 3))
    y = X @ beta + rng.normal(size=n)
    return X, y


@pytest.fixture
def regression_frame(regression_data):
    X, y = regression_data
    X = pd.DataFrame(X, columns=[f"f{i}" for i in range(X.shape[1])])
    return X, pd.Series(y)
