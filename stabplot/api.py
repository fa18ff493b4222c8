"""
User-facing API: a scikit-learn style estimator and the two diagnostics.

Usage:
    from stabplot import StabilityPath, regustab, convstab

    # One call per diagnostic
    curve = regustab(X, y, B=100, random_state=0)
    conv = convstab(X, y, B=100, alpha=0.05, thr=0.5, random_state=0)

    # Or build once, read both
    path = StabilityPath(n_subsamples=100, random_state=0).fit(X, y)
    path.regularization_curve_.points()
    path.convergence_curve(alpha=0.05, threshold=0.5).selected
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Union

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_is_fitted

from stabplot._preprocess import check_alpha, check_threshold
from stabplot.config import STABLE_THRESHOLD, StabilityConfig
from stabplot.curves import (
    ConvergenceCurve,
    RegularizationCurve,
    convergence_curve,
    regularization_curve,
)
from stabplot.exceptions import InputError
from stabplot.fitter import PenalizedFitter
from stabplot.selection_matrix import build_selection_matrices


class StabilityPath(BaseEstimator, TransformerMixin):
    """
    Stability selection for LASSO across a cross-validated penalty path.

    Sub-samples half the rows ``n_subsamples`` times for every penalty on the
    path, records which predictors are selected, and measures stability
    (Nogueira, Sechidis & Brown, 2018) at each penalty. The selection
    matrices are built once in ``fit``; both diagnostics read from them.

    Parameters
    ----------
    n_subsamples : int, default=100
        Number of sub-samples B per penalty.
    alpha : float, default=0.05
        Significance level for stability confidence intervals.
    threshold : float, default=0.5
        Selection frequency a predictor must exceed, at the stable penalty,
        to be kept by ``transform``.
    stable_threshold : float, default=0.75
        Stability a penalty must exceed to be called stable.
    n_folds : int, default=10
        CV folds for the penalty path.
    n_lambdas : int, default=100
        Length of the penalty path.
    sample_frac : float, default=0.5
        Fraction of rows per sub-sample.
    standardize : bool, default=True
        Scale predictors before every fit.
    max_iter : int, default=10000
        Coordinate-descent iteration cap.
    tol : float, default=1e-4
        Coordinate-descent duality-gap tolerance.
    coef_threshold : float, default=0.0
        Coefficients with absolute value above this count as selected.
    fitter : PenalizedFitter, optional
        Custom backend with ``fit_path`` and ``fit_at``. Defaults to LASSO.
    n_jobs : int, default=1
        Number of parallel jobs (-1 = all cores).
    parallel_backend : str, default='threads'
        Joblib backend preference.
    random_state : int, optional
        Random seed for reproducibility.
    verbose : bool, default=False
        Print progress information.

    Attributes
    ----------
    selection_ : SelectionMatrices
        Candidate set, one B x p matrix per penalty, lambda_min and lambda_1se.
    regularization_curve_ : RegularizationCurve
        Stability per penalty and the labelled reference penalties.
    reference_ : ReferencePenalties
    lambda_stable_ : float
        Penalty picked by the stable / stable.1sd rule.
    selection_frequencies_ : ndarray of shape (n_features,)
        Selection frequencies at ``lambda_stable_``.
    selected_features_ : ndarray
        Indices of predictors with frequency above ``threshold``, by
        decreasing frequency.
    selected_feature_names_ : list of str
    feature_names_in_ : list of str
    n_features_in_ : int
    """

    def __init__(
        self,
        n_subsamples: int = 100,
        alpha: float = 0.05,
        threshold: float = 0.5,
        stable_threshold: float = STABLE_THRESHOLD,
        n_folds: int = 10,
        n_lambdas: int = 100,
        sample_frac: float = 0.5,
        standardize: bool = True,
        max_iter: int = 10_000,
        tol: float = 1e-4,
        coef_threshold: float = 0.0,
        fitter: Optional[PenalizedFitter] = None,
        n_jobs: int = 1,
        parallel_backend: Optional[str] = 'threads',
        random_state: Optional[int] = None,
        verbose: bool = False
    ):
        self.n_subsamples = n_subsamples
        self.alpha = alpha
        self.threshold = threshold
        self.stable_threshold = stable_threshold
        self.n_folds = n_folds
        self.n_lambdas = n_lambdas
        self.sample_frac = sample_frac
        self.standardize = standardize
        self.max_iter = max_iter
        self.tol = tol
        self.coef_threshold = coef_threshold
        self.fitter = fitter
        self.n_jobs = n_jobs
        self.parallel_backend = parallel_backend
        self.random_state = random_state
        self.verbose = verbose

    def _config(self) -> StabilityConfig:
        return StabilityConfig(
            n_folds=self.n_folds,
            n_lambdas=self.n_lambdas,
            sample_frac=self.sample_frac,
            stable_threshold=self.stable_threshold,
            standardize=self.standardize,
            max_iter=self.max_iter,
            tol=self.tol,
            coef_threshold=self.coef_threshold,
            n_jobs=self.n_jobs,
            parallel_backend=self.parallel_backend,
            random_state=self.random_state,
            verbose=self.verbose,
        )

    def fit(
        self,
        X: Union[np.ndarray, pd.DataFrame],
        y: Union[np.ndarray, pd.Series],
    ) -> 'StabilityPath':
        """
        Build the selection matrices and the regularization curve.

        Parameters
        ----------
        X : array-like or DataFrame of shape (n_samples, n_features)
            Training data.
        y : array-like of shape (n_samples,)
            Target values.

        Returns
        -------
        self
        """
        # Fail fast before any fitting
        check_alpha(self.alpha)
        check_threshold(self.threshold)

        self.selection_ = build_selection_matrices(
            X, y, self.n_subsamples, fitter=self.fitter, config=self._config()
        )
        self.feature_names_in_ = self.selection_.feature_names
        self.n_features_in_ = len(self.feature_names_in_)

        self.regularization_curve_ = regularization_curve(
            self.selection_, alpha=self.alpha, stable_threshold=self.stable_threshold
        )
        self.reference_ = self.regularization_curve_.reference
        self.lambda_stable_ = self.reference_.lambda_stable

        S_stable = self.selection_.matrices[self.reference_.index_stable]
        self.selection_frequencies_ = S_stable.mean(axis=0)
        self._select(self.threshold)

        if self.verbose:
            print(f"{self.reference_.label}: lambda={self.lambda_stable_:.6g}, "
                  f"selected {len(self.selected_features_)} / {self.n_features_in_} predictors")

        return self

    def _select(self, threshold: float) -> None:
        selected = np.flatnonzero(self.selection_frequencies_ > threshold)
        order = np.argsort(-self.selection_frequencies_[selected], kind="mergesort")
        self.selected_features_ = selected[order]
        self.selected_feature_names_ = [self.feature_names_in_[i] for i in self.selected_features_]

    def convergence_curve(
        self,
        alpha: Optional[float] = None,
        threshold: Optional[float] = None,
    ) -> ConvergenceCurve:
        """
        Stability against the number of sub-samples at the stable penalty.

        Reuses the matrices built in ``fit``. ``alpha`` and ``threshold``
        default to the estimator's own.
        """
        check_is_fitted(self, 'selection_')
        return convergence_curve(
            self.selection_,
            alpha=self.alpha if alpha is None else alpha,
            threshold=self.threshold if threshold is None else threshold,
            stable_threshold=self.stable_threshold,
            reference=self.reference_,
        )

    def get_feature_info(self) -> pd.DataFrame:
        """
        Get DataFrame with selection details at the stable penalty.

        Returns
        -------
        DataFrame with columns:
            feature: name
            frequency: selection frequency
            selected: whether it passed threshold
        """
        check_is_fitted(self, 'selection_')
        return pd.DataFrame({
            'feature': self.feature_names_in_,
            'frequency': self.selection_frequencies_,
            'selected': self.selection_frequencies_ > self.threshold
        }).sort_values('frequency', ascending=False, kind='mergesort').reset_index(drop=True)

    def get_support(self, indices: bool = False) -> np.ndarray:
        """Get mask or indices of selected features."""
        check_is_fitted(self, 'selection_')
        if indices:
            return self.selected_features_
        mask = np.zeros(self.n_features_in_, dtype=bool)
        mask[self.selected_features_] = True
        return mask

    def transform(self, X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        """Reduce X to selected features."""
        check_is_fitted(self, 'selection_')
        if not isinstance(X, pd.DataFrame):
            X = np.asarray(X)
        if X.ndim != 2 or X.shape[1] != self.n_features_in_:
            raise InputError(
                f"X has {X.shape[-1]} features, but StabilityPath was fitted with "
                f"{self.n_features_in_}"
            )
        # Select by position: feature_names_in_ holds the labels as strings
        if isinstance(X, pd.DataFrame):
            return X.iloc[:, self.selected_features_].values
        return X[:, self.selected_features_]


# =============================================================================
# Convenience Functions
# =============================================================================

def regustab(
    X: Union[np.ndarray, pd.DataFrame],
    y: Union[np.ndarray, pd.Series],
    B: int,
    alpha: float = 0.05,
    stable_threshold: Optional[float] = None,
    n_folds: Optional[int] = None,
    fitter: Optional[PenalizedFitter] = None,
    config: Optional[StabilityConfig] = None,
    random_state: Optional[int] = None,
    n_jobs: Optional[int] = None,
    verbose: bool = True,
) -> RegularizationCurve:
    """
    Stability against the regularization value for LASSO.

    Parameters
    ----------
    X : array-like or DataFrame of shape (n_samples, n_features)
        Predictors.
    y : array-like of shape (n_samples,)
        Response.
    B : int
        Number of sub-samples per penalty.
    alpha : float, default=0.05
        Significance level of the per-penalty confidence intervals.
    stable_threshold : float, optional
        Defaults to 0.75 (or ``config.stable_threshold``).
    n_folds : int, optional
        CV folds for the penalty path. Defaults to 10 (or ``config.n_folds``).
    fitter : PenalizedFitter, optional
    config : StabilityConfig, optional
        Full configuration; ``n_folds``, ``random_state``, ``n_jobs`` and
        ``stable_threshold`` given here override it.
    random_state : int, optional
    n_jobs : int, optional
    verbose : bool, default=True
        Print the min, 1se and stable (or stable.1sd) penalties.

    Returns
    -------
    RegularizationCurve
    """
    alpha = check_alpha(alpha)
    config = _resolve_config(config, n_folds, stable_threshold, random_state, n_jobs)
    selection = build_selection_matrices(X, y, B, fitter=fitter, config=config)
    curve = regularization_curve(selection, alpha=alpha,
                                 stable_threshold=config.stable_threshold)
    if verbose:
        for name, value in curve.reference.as_dict().items():
            print(f"{name}: {value:.7g}")
    return curve


def convstab(
    X: Union[np.ndarray, pd.DataFrame],
    y: Union[np.ndarray, pd.Series],
    B: int,
    alpha: float = 0.05,
    thr: float = 0.5,
    stable_threshold: Optional[float] = None,
    n_folds: Optional[int] = None,
    fitter: Optional[PenalizedFitter] = None,
    config: Optional[StabilityConfig] = None,
    random_state: Optional[int] = None,
    n_jobs: Optional[int] = None,
    verbose: bool = True,
) -> ConvergenceCurve:
    """
    Stability against the sub-sampling iteration at the stable penalty.

    Uses lambda.stable when some penalty clears ``stable_threshold``,
    otherwise lambda.stable.1sd.

    Parameters
    ----------
    X : array-like or DataFrame of shape (n_samples, n_features)
        Predictors.
    y : array-like of shape (n_samples,)
        Response.
    B : int
        Number of sub-samples.
    alpha : float, default=0.05
        Significance level of the confidence band.
    thr : float, default=0.5
        Selection-frequency threshold for the reported predictors.
    stable_threshold, n_folds, fitter, config, random_state, n_jobs
        As in ``regustab``.
    verbose : bool, default=True
        Print the predictors with frequency above ``thr``.

    Returns
    -------
    ConvergenceCurve
    """
    alpha = check_alpha(alpha)
    thr = check_threshold(thr, 'thr')
    config = _resolve_config(config, n_folds, stable_threshold, random_state, n_jobs)
    selection = build_selection_matrices(X, y, B, fitter=fitter, config=config)
    curve = convergence_curve(selection, alpha=alpha, threshold=thr,
                              stable_threshold=config.stable_threshold)
    if verbose:
        print(curve.selected.to_string())
    return curve


def _resolve_config(
    config: Optional[StabilityConfig],
    n_folds: Optional[int],
    stable_threshold: Optional[float],
    random_state: Optional[int],
    n_jobs: Optional[int],
) -> StabilityConfig:
    """Apply explicitly passed keyword arguments on top of ``config``."""
    overrides = dict(
        n_folds=n_folds,
        stable_threshold=stable_threshold,
        random_state=random_state,
        n_jobs=n_jobs,
    )
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return replace(config or StabilityConfig(), **overrides).validate()
