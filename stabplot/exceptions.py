"""Error types raised by stabplot."""


class InputError(ValueError):
    """Invalid arguments: shape mismatch, B < 2, alpha or threshold out of range."""


class FitFailure(RuntimeError):
    """A penalized fit did not converge or returned unusable coefficients."""


class DegenerateSelection(ValueError):
    """Selection is all-or-nothing (v_rand == 0), so stability is undefined."""
