"""
Stability of a feature selection procedure.

Implements the estimator of Nogueira, Sechidis & Brown (2018), "On the
stability of feature selection algorithms", JMLR 18(174), together with its
influence-function variance and asymptotic confidence interval.

Usage:
    from stabplot import get_stability

    result = get_stability(S, alpha=0.05)
    result.stability, result.lower, result.upper
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd
from scipy.stats import norm

from stabplot._preprocess import check_alpha, check_binary_matrix, default_feature_names
from stabplot.exceptions import DegenerateSelection, InputError


@dataclass(frozen=True)
class StabilityResult:
    """
    Stability point estimate with variance and (1 - alpha) confidence bounds.

    The estimate is not clamped: it can drop below 0 for selections worse than
    random, and ``lower``/``upper`` can leave [0, 1].
    """
    stability: float
    variance: float
    lower: float
    upper: float
    alpha: float = 0.05
    n_replicates: int = 0
    n_features: int = 0

    @property
    def half_width(self) -> float:
        return self.upper - self.stability


def get_stability(S, alpha: float = 0.05) -> StabilityResult:
    """
    Estimate stability from a binary selection matrix.

    Parameters
    ----------
    S : array-like of shape (M, d)
        Row i holds the 0/1 selection pattern of replicate i.
    alpha : float, default=0.05
        Significance level; bounds are stability -/+ z_{1-alpha/2} * sd.

    Returns
    -------
    StabilityResult

    Raises
    ------
    InputError
        If S is not binary, M < 2, d < 1 or alpha is outside (0, 1).
    DegenerateSelection
        If the average selection size is 0 or d, so v_rand is zero.
    """
    alpha = check_alpha(alpha)
    S = check_binary_matrix(S)
    M, d = S.shape
    if M < 2:
        raise InputError(f"Need at least 2 replicates, got {M}")
    if d < 1:
        raise InputError("Need at least 1 feature.")

    hat_pf = S.mean(axis=0)
    kbar = hat_pf.sum()
    v_rand = (kbar / d) * (1.0 - kbar / d)
    if v_rand <= 0.0:
        raise DegenerateSelection(
            f"Average selection size {kbar:g} of {d} features leaves v_rand = 0; "
            "stability is undefined."
        )

    stability = 1.0 - (M / (M - 1.0)) * np.mean(hat_pf * (1.0 - hat_pf)) / v_rand

    # Per-replicate influence values
    k = S.sum(axis=1)
    phi = (
        (S @ hat_pf) / d
        - k * kbar / d ** 2
        - (stability / 2.0) * (2.0 * kbar * k / d ** 2 - k / d - kbar / d + 1.0)
    ) / v_rand
    variance = (4.0 / M ** 2) * np.sum((phi - phi.mean()) ** 2)

    half = norm.ppf(1.0 - alpha / 2.0) * np.sqrt(variance)
    return StabilityResult(
        stability=float(stability),
        variance=float(variance),
        lower=float(stability - half),
        upper=float(stability + half),
        alpha=alpha,
        n_replicates=M,
        n_features=d,
    )


def selection_frequencies(S, feature_names: Optional[List[str]] = None) -> pd.Series:
    """Fraction of replicates in which each feature was selected."""
    S = check_binary_matrix(S)
    if S.shape[0] < 1:
        raise InputError("Selection matrix has no rows.")
    if feature_names is None:
        feature_names = default_feature_names(S.shape[1])
    if len(feature_names) != S.shape[1]:
        raise InputError(
            f"Got {len(feature_names)} feature names for {S.shape[1]} columns"
        )
    return pd.Series(S.mean(axis=0), index=list(feature_names), name="Selection_Frequency")
