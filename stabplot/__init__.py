__version__ = "0.1.0"

from stabplot.api import StabilityPath, convstab, regustab
from stabplot.config import POOR_STABILITY, STABLE_THRESHOLD, StabilityConfig
from stabplot.curves import (
    ConvergenceCurve,
    RegularizationCurve,
    convergence_curve,
    regularization_curve,
)
from stabplot.exceptions import DegenerateSelection, FitFailure, InputError
from stabplot.fitter import LassoFitter, LassoPath, PenalizedFitter
from stabplot.reference import ReferencePenalties, reference_penalties, select_stable_index
from stabplot.selection_matrix import SelectionMatrices, build_selection_matrices
from stabplot.stability import StabilityResult, get_stability, selection_frequencies

__all__ = [
    "__version__",
    "StabilityPath",
    "regustab",
    "convstab",
    "StabilityConfig",
    "STABLE_THRESHOLD",
    "POOR_STABILITY",
    "RegularizationCurve",
    "ConvergenceCurve",
    "regularization_curve",
    "convergence_curve",
    "InputError",
    "FitFailure",
    "DegenerateSelection",
    "PenalizedFitter",
    "LassoFitter",
    "LassoPath",
    "ReferencePenalties",
    "reference_penalties",
    "select_stable_index",
    "SelectionMatrices",
    "build_selection_matrices",
    "StabilityResult",
    "get_stability",
    "selection_frequencies",
]
