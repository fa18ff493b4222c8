"""Input preprocessing: conversion and validation."""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from stabplot.exceptions import InputError


# --- Input conversion ---


def to_numpy(data, dtype=np.float64) -> np.ndarray:
    """Convert Pandas/Polars/list to numpy array."""
    if hasattr(data, "to_pandas"):
        data = data.to_pandas()
    if isinstance(data, (pd.DataFrame, pd.Series)):
        try:
            return data.to_numpy(dtype=dtype, na_value=np.nan)
        except TypeError:
            arr = data.to_numpy()
            if arr.dtype == object:
                arr = np.where(pd.isna(arr), np.nan, arr)
            return arr.astype(dtype)
    if hasattr(data, "values"):
        return np.asarray(data.values, dtype=dtype)
    return np.asarray(data, dtype=dtype)


def extract_feature_names(X) -> Optional[List[str]]:
    """Extract column names from DataFrame, or None for ndarray."""
    if hasattr(X, "columns"):
        return [str(c) for c in X.columns]
    return None


def default_feature_names(p: int) -> List[str]:
    """Predictor labels x1..xp for unnamed designs."""
    return [f"x{i + 1}" for i in range(p)]


# --- Validation ---


def validate_inputs(X, y) -> Tuple[np.ndarray, np.ndarray, List[str]]:
    """Validate and convert a regression design and response."""
    feature_names = extract_feature_names(X)
    if hasattr(X, "select_dtypes"):
        non_numeric = X.select_dtypes(include=["object", "category", "string"]).columns.tolist()
        if non_numeric:
            sample = non_numeric[:5]
            suffix = "..." if len(non_numeric) > 5 else ""
            raise InputError(
                f"Non-numeric columns found: {sample}{suffix}. Encode them first."
            )
    try:
        X_arr = to_numpy(X, dtype=np.float64)
        y_arr = to_numpy(y, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InputError(f"X and y must be numeric: {exc}") from exc

    if X_arr.ndim != 2:
        raise InputError(f"X must be 2D, got {X_arr.ndim}D")
    if y_arr.ndim == 2 and y_arr.shape[1] == 1:
        y_arr = y_arr.ravel()
    if y_arr.ndim != 1:
        raise InputError(f"y must be 1D, got shape {y_arr.shape}")
    if X_arr.shape[0] != y_arr.shape[0]:
        raise InputError(f"X has {X_arr.shape[0]} rows but y has {y_arr.shape[0]}")
    if X_arr.shape[1] < 1:
        raise InputError("X must have at least one predictor column.")
    if not np.isfinite(X_arr).all():
        raise InputError("Non-finite values in X are not allowed.")
    if not np.isfinite(y_arr).all():
        raise InputError("Non-finite values in y are not allowed.")

    if feature_names is None:
        feature_names = default_feature_names(X_arr.shape[1])

    return X_arr, y_arr, feature_names


def check_replicates(B) -> int:
    """B must be an integer >= 2 (the stability estimator divides by B - 1)."""
    if isinstance(B, bool) or not isinstance(B, (int, np.integer)):
        raise InputError(f"B must be an integer, got {type(B).__name__}")
    if B < 2:
        raise InputError(f"B must be >= 2, got {B}")
    return int(B)


def check_alpha(alpha: float) -> float:
    """Significance level must lie in (0, 1)."""
    if not 0.0 < alpha < 1.0:
        raise InputError(f"alpha must be in (0, 1), got {alpha}")
    return float(alpha)


def check_threshold(threshold: float, name: str = "threshold") -> float:
    """Frequency threshold must lie in [0, 1]."""
    if not 0.0 <= threshold <= 1.0:
        raise InputError(f"{name} must be in [0, 1], got {threshold}")
    return float(threshold)


def check_binary_matrix(S) -> np.ndarray:
    """Return S as a 2D float64 array, raising unless every entry is 0 or 1."""
    S = np.asarray(S, dtype=np.float64)
    if S.ndim != 2:
        raise InputError(f"Selection matrix must be 2D, got {S.ndim}D")
    if not np.isin(S, (0.0, 1.0)).all():
        raise InputError("Selection matrix must contain only 0/1 entries.")
    return S
