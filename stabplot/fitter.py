"""
Penalized fitting backend.

Anything with ``fit_path`` and ``fit_at`` can drive the selection-matrix
builder. ``LassoFitter`` is the default: a scikit-learn Lasso whose penalty
grid and one-standard-error rule follow ``cv.glmnet``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

import numpy as np
from sklearn.linear_model import Lasso, LassoCV
from sklearn.model_selection import KFold
from sklearn.preprocessing import StandardScaler

from stabplot.exceptions import FitFailure, InputError


@dataclass(frozen=True, eq=False)
class LassoPath:
    """
    Cross-validated penalty path.

    Attributes
    ----------
    candidate_set : ndarray of shape (L,)
        Penalty values, strictly decreasing.
    lambda_min : float
        Penalty with the lowest mean CV error.
    lambda_1se : float
        Largest penalty within one standard error of the minimum.
    cv_mean, cv_sd : ndarray of shape (L,), optional
        Mean CV error and its standard error per penalty.
    """
    candidate_set: np.ndarray
    lambda_min: float
    lambda_1se: float
    cv_mean: Optional[np.ndarray] = None
    cv_sd: Optional[np.ndarray] = None


class PenalizedFitter(Protocol):
    def fit_path(self, X: np.ndarray, y: np.ndarray, n_folds: int) -> LassoPath:
        ...

    def fit_at(self, X_sub: np.ndarray, y_sub: np.ndarray, lam: float) -> np.ndarray:
        ...


def lambda_grid(X: np.ndarray, y: np.ndarray, n_lambdas: int = 100,
                eps: Optional[float] = None) -> np.ndarray:
    """
    Log-spaced decreasing penalty grid from ``lambda_max`` down to ``eps * lambda_max``.

    ``lambda_max`` is the smallest penalty at which every coefficient is zero
    for an intercept model. ``eps`` defaults to 1e-4 when n > p, else 1e-2.
    """
    n, p = X.shape
    if eps is None:
        eps = 1e-4 if n > p else 1e-2
    Xc = X - X.mean(axis=0)
    yc = y - y.mean()
    lambda_max = np.max(np.abs(Xc.T @ yc)) / n
    if not np.isfinite(lambda_max) or lambda_max <= 0:
        raise InputError("Response is constant or uncorrelated with every predictor; "
                         "no penalty path exists.")
    if n_lambdas == 1:
        return np.array([lambda_max])
    return np.logspace(np.log10(lambda_max), np.log10(lambda_max * eps), num=n_lambdas)


def one_se_rule(candidate_set: np.ndarray, mse_path: np.ndarray):
    """
    Return (lambda_min, lambda_1se, cv_mean, cv_sd) from a (L, n_folds) error path.

    The standard error per penalty is sqrt(mean((e - mean e)^2) / (K - 1)).
    """
    n_folds = mse_path.shape[1]
    cv_mean = mse_path.mean(axis=1)
    cv_sd = np.sqrt(((mse_path - cv_mean[:, None]) ** 2).mean(axis=1) / (n_folds - 1))
    idx_min = int(np.argmin(cv_mean))
    within = cv_mean <= cv_mean[idx_min] + cv_sd[idx_min]
    lambda_1se = float(np.max(candidate_set[within]))
    return float(candidate_set[idx_min]), lambda_1se, cv_mean, cv_sd


class LassoFitter:
    """
    LASSO backend on scikit-learn.

    Parameters
    ----------
    n_lambdas : int, default=100
        Length of the penalty grid.
    eps : float, optional
        Ratio of smallest to largest penalty. Default 1e-4 (n > p) or 1e-2.
    standardize : bool, default=True
        Scale predictors to unit variance before every fit.
    coef_threshold : float, default=0.0
        Coefficients with absolute value above this count as selected.
    max_iter : int, default=10000
    tol : float, default=1e-4
    random_state : int, optional
        Seed for CV fold assignment.
    """

    def __init__(
        self,
        n_lambdas: int = 100,
        eps: Optional[float] = None,
        standardize: bool = True,
        coef_threshold: float = 0.0,
        max_iter: int = 10_000,
        tol: float = 1e-4,
        random_state: Optional[int] = None,
    ):
        self.n_lambdas = n_lambdas
        self.eps = eps
        self.standardize = standardize
        self.coef_threshold = coef_threshold
        self.max_iter = max_iter
        self.tol = tol
        self.random_state = random_state

    def _scale(self, X: np.ndarray) -> np.ndarray:
        if not self.standardize:
            return X
        return StandardScaler().fit_transform(X)

    def _converged(self, model: Lasso, y: np.ndarray) -> bool:
        """
        Whether coordinate descent met its duality-gap tolerance.

        ``n_iter_`` equals ``max_iter`` both when the last allowed sweep
        converged and when it did not, so at the cap the gap decides. The
        solver stops once ``n * dual_gap_ < tol * ||y - mean(y)||^2``.
        """
        if np.max(model.n_iter_) < self.max_iter:
            return True
        yc = y - np.mean(y)
        gap_tol = self.tol * float(yc @ yc) / len(y)
        return bool(np.max(model.dual_gap_) < gap_tol)

    def fit_path(self, X: np.ndarray, y: np.ndarray, n_folds: int = 10) -> LassoPath:
        """Cross-validate the grid and apply the min / one-standard-error rules."""
        if X.shape[0] < n_folds:
            raise InputError(f"Need at least n_folds={n_folds} rows, got {X.shape[0]}")
        X_scaled = self._scale(X)
        grid = lambda_grid(X_scaled, y, self.n_lambdas, self.eps)

        cv = KFold(n_splits=n_folds, shuffle=True, random_state=self.random_state)
        cv_model = LassoCV(alphas=grid, cv=cv, max_iter=self.max_iter, tol=self.tol)
        cv_model.fit(X_scaled, y)

        candidate_set = np.asarray(cv_model.alphas_, dtype=np.float64)
        lambda_min, lambda_1se, cv_mean, cv_sd = one_se_rule(candidate_set, cv_model.mse_path_)
        return LassoPath(
            candidate_set=candidate_set,
            lambda_min=lambda_min,
            lambda_1se=lambda_1se,
            cv_mean=cv_mean,
            cv_sd=cv_sd,
        )

    def fit_at(self, X_sub: np.ndarray, y_sub: np.ndarray, lam: float) -> np.ndarray:
        """Fit at a fixed penalty and return the 0/1 support (intercept excluded)."""
        model = Lasso(alpha=lam, max_iter=self.max_iter, tol=self.tol)
        X_scaled = self._scale(X_sub)
        try:
            model.fit(X_scaled, y_sub)
        except (ValueError, FloatingPointError) as exc:
            raise FitFailure(f"Lasso fit failed at lambda={lam:.6g}: {exc}") from exc

        if not self._converged(model, y_sub):
            raise FitFailure(
                f"Lasso did not converge at lambda={lam:.6g} within "
                f"max_iter={self.max_iter} iterations"
            )

        coef = np.asarray(model.coef_, dtype=np.float64).ravel()
        if coef.shape[0] != X_sub.shape[1] or not np.isfinite(coef).all():
            raise FitFailure(f"Lasso returned unusable coefficients at lambda={lam:.6g}")
        return (np.abs(coef) > self.coef_threshold).astype(np.int8)
