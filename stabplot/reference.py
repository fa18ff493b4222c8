"""Choice of the "stable" penalty from a stability-vs-penalty series."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from stabplot.config import STABLE_THRESHOLD
from stabplot.exceptions import DegenerateSelection, InputError


@dataclass(frozen=True)
class ReferencePenalties:
    """
    Labelled penalties on a path.

    ``label`` is "stable" when some penalty clears the stability threshold,
    otherwise "stable.1sd".
    """
    lambda_min: float
    lambda_1se: float
    lambda_stable: float
    label: str
    index_min: int
    index_1se: int
    index_stable: int

    def as_dict(self) -> Dict[str, float]:
        return {
            'min': self.lambda_min,
            '1se': self.lambda_1se,
            self.label: self.lambda_stable,
        }


def select_stable_index(
    candidate_set,
    stability,
    threshold: float = STABLE_THRESHOLD,
) -> Tuple[int, str]:
    """
    Pick the stable penalty.

    If the largest stability strictly exceeds ``threshold``, return the
    smallest penalty whose stability is above it ("stable"). Otherwise take
    the largest index whose stability is within one standard deviation of
    the maximum ("stable.1sd"); on a decreasing path that is the smallest
    qualifying penalty. NaN stabilities are ignored.

    Returns
    -------
    index : int
        Position in ``candidate_set``.
    label : str
        "stable" or "stable.1sd".
    """
    candidate_set = np.asarray(candidate_set, dtype=np.float64)
    stability = np.asarray(stability, dtype=np.float64)
    if candidate_set.shape != stability.shape or candidate_set.ndim != 1:
        raise InputError(
            f"candidate_set {candidate_set.shape} and stability {stability.shape} "
            "must be 1D and the same length"
        )

    finite = np.isfinite(stability)
    if not finite.any():
        raise DegenerateSelection("No penalty has a defined stability value.")

    max_stability = np.max(stability[finite])
    if max_stability > threshold:
        qualifying = finite & (stability > threshold)
        lambda_stable = np.min(candidate_set[qualifying])
        return int(np.flatnonzero(candidate_set == lambda_stable)[0]), 'stable'

    if finite.sum() > 1:
        sd = np.std(stability[finite], ddof=1)
    else:
        sd = 0.0
    cutoff = max_stability - sd
    # NaN compares False, so only finite entries can qualify
    qualifying = np.flatnonzero(stability >= cutoff)
    return int(qualifying.max()), 'stable.1sd'


def reference_penalties(
    candidate_set,
    stability,
    lambda_min: float,
    lambda_1se: float,
    threshold: float = STABLE_THRESHOLD,
) -> ReferencePenalties:
    """Locate min, 1se and the stable penalty on the path."""
    candidate_set = np.asarray(candidate_set, dtype=np.float64)
    index_stable, label = select_stable_index(candidate_set, stability, threshold)
    return ReferencePenalties(
        lambda_min=float(lambda_min),
        lambda_1se=float(lambda_1se),
        lambda_stable=float(candidate_set[index_stable]),
        label=label,
        index_min=_locate(candidate_set, lambda_min),
        index_1se=_locate(candidate_set, lambda_1se),
        index_stable=index_stable,
    )


def _locate(candidate_set: np.ndarray, lam: float) -> int:
    """Index of ``lam`` in the path, falling back to the nearest value."""
    hits = np.flatnonzero(candidate_set == lam)
    if hits.size:
        return int(hits[0])
    return int(np.argmin(np.abs(candidate_set - lam)))
