"""
Stability curves over the penalty path and over sub-sampling iterations.

Both curves consume an already-built ``SelectionMatrices``; neither refits.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from stabplot._preprocess import check_alpha, check_threshold
from stabplot.config import POOR_STABILITY, STABLE_THRESHOLD
from stabplot.exceptions import DegenerateSelection
from stabplot.reference import ReferencePenalties, reference_penalties
from stabplot.selection_matrix import SelectionMatrices
from stabplot.stability import StabilityResult, get_stability, selection_frequencies

_COLUMNS = ['stability', 'variance', 'lower', 'upper', 'degenerate']


def _stability_row(S: np.ndarray, alpha: float) -> dict:
    """Stability columns for one matrix; a degenerate matrix gives a flagged NaN row."""
    try:
        res = get_stability(S, alpha)
    except DegenerateSelection:
        return dict(stability=np.nan, variance=np.nan, lower=np.nan, upper=np.nan,
                    degenerate=True)
    return dict(stability=res.stability, variance=res.variance, lower=res.lower,
                upper=res.upper, degenerate=False)


# =============================================================================
# Regularization curve
# =============================================================================

@dataclass(frozen=True, eq=False)
class RegularizationCurve:
    """
    Stability against penalty value.

    Attributes
    ----------
    frame : DataFrame
        Columns lambda, stability, variance, lower, upper, degenerate; one row
        per candidate penalty in path order.
    reference : ReferencePenalties
        min, 1se and stable (or stable.1sd) penalties.
    stable_threshold : float
        Cut-off used for "stable".
    lower_guide : float
        Second horizontal guide for renderers.
    """
    frame: pd.DataFrame
    reference: ReferencePenalties
    stable_threshold: float = STABLE_THRESHOLD
    lower_guide: float = POOR_STABILITY

    @property
    def candidate_set(self) -> np.ndarray:
        return self.frame['lambda'].to_numpy()

    @property
    def stability(self) -> np.ndarray:
        return self.frame['stability'].to_numpy()

    def points(self) -> List[Tuple[float, float]]:
        """(lambda, stability) pairs in path order."""
        return list(zip(self.candidate_set.tolist(), self.stability.tolist()))

    def to_frame(self) -> pd.DataFrame:
        return self.frame.copy()

    def highlighted(self) -> pd.DataFrame:
        """The labelled points: label, lambda and stability at min, 1se and stable."""
        ref = self.reference
        rows = [
            ('min', ref.index_min),
            ('1se', ref.index_1se),
            (ref.label, ref.index_stable),
        ]
        return pd.DataFrame({
            'label': [label for label, _ in rows],
            'lambda': [self.frame['lambda'].iat[i] for _, i in rows],
            'stability': [self.frame['stability'].iat[i] for _, i in rows],
        })


def regularization_curve(
    selection: SelectionMatrices,
    alpha: float = 0.05,
    stable_threshold: float = STABLE_THRESHOLD,
) -> RegularizationCurve:
    """
    Compute stability for every penalty and label the reference points.

    Penalties whose selection is all-or-nothing get NaN stability with
    ``degenerate=True``; they are skipped when choosing the stable penalty.
    """
    alpha = check_alpha(alpha)
    stable_threshold = check_threshold(stable_threshold, 'stable_threshold')

    rows = [_stability_row(S, alpha) for S in selection.matrices]
    frame = pd.DataFrame(rows, columns=_COLUMNS)
    frame.insert(0, 'lambda', selection.candidate_set)

    reference = reference_penalties(
        selection.candidate_set,
        frame['stability'].to_numpy(),
        selection.lambda_min,
        selection.lambda_1se,
        stable_threshold,
    )
    return RegularizationCurve(frame=frame, reference=reference,
                               stable_threshold=stable_threshold)


# =============================================================================
# Convergence curve
# =============================================================================

@dataclass(frozen=True, eq=False)
class ConvergenceCurve:
    """
    Stability against the number of sub-samples at the stable penalty.

    Attributes
    ----------
    lambda_ : float
        Penalty whose selection matrix is tracked.
    label : str
        "stable" or "stable.1sd".
    index : int
        Position of ``lambda_`` in the candidate set.
    trajectory : DataFrame
        Columns iteration, stability, variance, lower, upper, degenerate for
        iteration k = 2 .. B (B - 1 rows).
    selection_frequencies : Series
        Selection frequency of every predictor over all B sub-samples.
    threshold : float
        Frequencies strictly above this are reported in ``selected``.
    """
    lambda_: float
    label: str
    index: int
    trajectory: pd.DataFrame
    selection_frequencies: pd.Series
    threshold: float = 0.5
    alpha: float = 0.05

    def points(self) -> List[Tuple[int, float, float, float]]:
        """(iteration, stability, lower, upper) tuples."""
        t = self.trajectory
        return list(zip(
            t['iteration'].tolist(),
            t['stability'].tolist(),
            t['lower'].tolist(),
            t['upper'].tolist(),
        ))

    @property
    def final(self) -> StabilityResult:
        """Stability over all B sub-samples (last row of the trajectory)."""
        last = self.trajectory.iloc[-1]
        return StabilityResult(
            stability=float(last['stability']),
            variance=float(last['variance']),
            lower=float(last['lower']),
            upper=float(last['upper']),
            alpha=self.alpha,
            n_replicates=int(last['iteration']),
            n_features=len(self.selection_frequencies),
        )

    @property
    def selected(self) -> pd.DataFrame:
        """Predictors with frequency above ``threshold``, in predictor order."""
        freqs = self.selection_frequencies
        keep = freqs[freqs > self.threshold]
        return pd.DataFrame({
            'Variable': keep.index.tolist(),
            'Selection_Frequency': keep.to_numpy(),
        })


def convergence_curve(
    selection: SelectionMatrices,
    alpha: float = 0.05,
    threshold: float = 0.5,
    stable_threshold: float = STABLE_THRESHOLD,
    reference: Optional[ReferencePenalties] = None,
) -> ConvergenceCurve:
    """
    Track stability on growing row prefixes of the stable penalty's matrix.

    Parameters
    ----------
    selection : SelectionMatrices
    alpha : float, default=0.05
        Significance level of the confidence band.
    threshold : float, default=0.5
        Selection-frequency cut-off for ``selected``.
    stable_threshold : float, default=0.75
    reference : ReferencePenalties, optional
        Reuse a reference already computed on the same path (e.g. from
        ``regularization_curve``); otherwise it is derived here.
    """
    alpha = check_alpha(alpha)
    threshold = check_threshold(threshold)
    stable_threshold = check_threshold(stable_threshold, 'stable_threshold')

    if reference is None:
        stab_values = np.array([
            _stability_row(S, alpha)['stability'] for S in selection.matrices
        ])
        reference = reference_penalties(
            selection.candidate_set,
            stab_values,
            selection.lambda_min,
            selection.lambda_1se,
            stable_threshold,
        )

    S_stable = selection.matrices[reference.index_stable]
    B = S_stable.shape[0]

    rows = []
    for k in range(2, B + 1):
        row = _stability_row(S_stable[:k], alpha)
        row['iteration'] = k
        rows.append(row)
    trajectory = pd.DataFrame(rows, columns=['iteration'] + _COLUMNS)

    freqs = selection_frequencies(S_stable, selection.feature_names)

    return ConvergenceCurve(
        lambda_=reference.lambda_stable,
        label=reference.label,
        index=reference.index_stable,
        trajectory=trajectory,
        selection_frequencies=freqs,
        threshold=threshold,
        alpha=alpha,
    )
