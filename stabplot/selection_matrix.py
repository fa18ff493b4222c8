"""
Selection matrices for stability selection.

For each penalty on a cross-validated LASSO path, refit on B random
half-samples and record which predictors enter the model. The result is one
B x p binary matrix per penalty value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from joblib import Parallel, delayed

from stabplot._preprocess import check_replicates, validate_inputs
from stabplot.config import StabilityConfig
from stabplot.exceptions import FitFailure, InputError
from stabplot.fitter import LassoFitter, PenalizedFitter


@dataclass(frozen=True, eq=False)
class SelectionMatrices:
    """
    Selection matrices over a penalty path.

    Attributes
    ----------
    candidate_set : ndarray of shape (L,)
        Penalty values in path order (decreasing).
    matrices : list of ndarray of shape (B, p)
        ``matrices[j]`` holds the 0/1 supports fitted at ``candidate_set[j]``.
    lambda_min, lambda_1se : float
        Reference penalties from cross-validation.
    feature_names : list of str
    cv_mean, cv_sd : ndarray, optional
        CV error curve, when the fitter reports one.
    """
    candidate_set: np.ndarray
    matrices: List[np.ndarray]
    lambda_min: float
    lambda_1se: float
    feature_names: List[str]
    cv_mean: Optional[np.ndarray] = None
    cv_sd: Optional[np.ndarray] = None

    @property
    def n_replicates(self) -> int:
        return self.matrices[0].shape[0]

    @property
    def n_features(self) -> int:
        return len(self.feature_names)

    def __len__(self) -> int:
        return len(self.candidate_set)


def _fill_matrix(fitter, X, y, lam, seeds, subsample_size) -> np.ndarray:
    """Fit B sub-samples at one penalty; one seed per replicate."""
    n, p = X.shape
    S = np.zeros((len(seeds), p), dtype=np.int8)
    for i, seed in enumerate(seeds):
        rng_local = np.random.default_rng(seed)
        idx = rng_local.choice(n, size=subsample_size, replace=False)
        support = np.asarray(fitter.fit_at(X[idx], y[idx], lam))
        if support.shape != (p,) or not np.isin(support, (0, 1)).all():
            raise FitFailure(
                f"Fitter returned a malformed support of shape {support.shape} "
                f"at lambda={lam:.6g}; expected {p} binary entries."
            )
        S[i] = support
    return S


def build_selection_matrices(
    X,
    y,
    B: int,
    fitter: Optional[PenalizedFitter] = None,
    config: Optional[StabilityConfig] = None,
) -> SelectionMatrices:
    """
    Build one selection matrix per penalty on the cross-validated path.

    Parameters
    ----------
    X : array-like or DataFrame of shape (n_samples, n_features)
        Design matrix.
    y : array-like of shape (n_samples,)
        Response.
    B : int
        Number of sub-samples per penalty (>= 2).
    fitter : PenalizedFitter, optional
        Backend providing ``fit_path`` and ``fit_at``. Defaults to
        ``LassoFitter`` built from ``config``.
    config : StabilityConfig, optional

    Returns
    -------
    SelectionMatrices

    Raises
    ------
    InputError
        On invalid inputs, before any fit is run.
    FitFailure
        If any sub-sample fit fails; no matrix is returned.
    """
    config = (config or StabilityConfig()).validate()
    B = check_replicates(B)
    X_arr, y_arr, feature_names = validate_inputs(X, y)
    n, p = X_arr.shape

    subsample_size = int(n * config.sample_frac)
    if subsample_size < 2:
        raise InputError(
            f"Sub-samples of {subsample_size} rows are too small (n={n}, "
            f"sample_frac={config.sample_frac})"
        )

    if fitter is None:
        fitter = LassoFitter(
            n_lambdas=config.n_lambdas,
            standardize=config.standardize,
            coef_threshold=config.coef_threshold,
            max_iter=config.max_iter,
            tol=config.tol,
            random_state=config.random_state,
        )

    path = fitter.fit_path(X_arr, y_arr, config.n_folds)
    candidate_set = np.asarray(path.candidate_set, dtype=np.float64)
    if candidate_set.ndim != 1 or candidate_set.size == 0:
        raise FitFailure("Penalty path is empty.")

    if config.verbose:
        print(f"Stability selection: {len(candidate_set)} penalties x {B} sub-samples "
              f"of {subsample_size}/{n} rows, {p} predictors")

    rng = np.random.default_rng(config.random_state)
    seeds = rng.integers(0, 2**31, size=(len(candidate_set), B))

    matrices = Parallel(n_jobs=config.n_jobs, prefer=config.parallel_backend)(
        delayed(_fill_matrix)(fitter, X_arr, y_arr, lam, seeds[j], subsample_size)
        for j, lam in enumerate(candidate_set)
    )

    if config.verbose:
        print(f"Built {len(matrices)} selection matrices")

    return SelectionMatrices(
        candidate_set=candidate_set,
        matrices=list(matrices),
        lambda_min=float(path.lambda_min),
        lambda_1se=float(path.lambda_1se),
        feature_names=feature_names,
        cv_mean=getattr(path, "cv_mean", None),
        cv_sd=getattr(path, "cv_sd", None),
    )
