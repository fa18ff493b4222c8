"""Run configuration for stability diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from stabplot.exceptions import InputError

STABLE_THRESHOLD = 0.75
# Lower guide line drawn on the regularization plot.
POOR_STABILITY = 0.4


@dataclass
class StabilityConfig:
    """
    Configuration for building selection matrices.

    Parameters
    ----------
    n_folds : int
        Cross-validation folds for the penalty path.
    n_lambdas : int
        Number of candidate penalty values.
    sample_frac : float
        Fraction of rows drawn (without replacement) per sub-sample.
    stable_threshold : float
        Stability a penalty must strictly exceed to count as "stable".
    coef_threshold : float
        A coefficient with absolute value above this counts as selected.
    standardize : bool
        Scale the design to unit variance before each fit.
    max_iter : int
        Coordinate-descent iteration cap per fit.
    tol : float
        Coordinate-descent tolerance.
    n_jobs : int
        Number of parallel jobs (-1 = all cores).
    parallel_backend : str
        Joblib backend preference ('threads' or 'processes').
    random_state : int, optional
        Seed for sub-sampling and CV fold assignment.
    verbose : bool
        Print progress.
    """
    n_folds: int = 10
    n_lambdas: int = 100
    sample_frac: float = 0.5
    stable_threshold: float = STABLE_THRESHOLD
    coef_threshold: float = 0.0
    standardize: bool = True
    max_iter: int = 10_000
    tol: float = 1e-4
    n_jobs: int = 1
    parallel_backend: Optional[str] = 'threads'
    random_state: Optional[int] = None
    verbose: bool = False

    def validate(self) -> 'StabilityConfig':
        if self.n_folds < 3:
            raise InputError(f"n_folds must be >= 3, got {self.n_folds}")
        if self.n_lambdas < 1:
            raise InputError(f"n_lambdas must be >= 1, got {self.n_lambdas}")
        if not 0.0 < self.sample_frac < 1.0:
            raise InputError(f"sample_frac must be in (0, 1), got {self.sample_frac}")
        if not 0.0 <= self.stable_threshold <= 1.0:
            raise InputError(
                f"stable_threshold must be in [0, 1], got {self.stable_threshold}"
            )
        if self.coef_threshold < 0:
            raise InputError(f"coef_threshold must be >= 0, got {self.coef_threshold}")
        if self.max_iter < 1:
            raise InputError(f"max_iter must be >= 1, got {self.max_iter}")
        return self
