import numpy as np
import pytest
from scipy.stats import norm

from stabplot import DegenerateSelection, InputError, get_stability, selection_frequencies


def _random_selection(seed, M=20, d=8, p=0.4):
    rng = np.random.default_rng(seed)
    return (rng.random((M, d)) < p).astype(np.int8)


def test_perfectly_stable_selection():
    S = np.tile([1, 1, 0, 0], (5, 1))
    res = get_stability(S)

    assert res.stability == pytest.approx(1.0)
    assert res.variance == pytest.approx(0.0)
    assert res.lower == pytest.approx(1.0)
    assert res.upper == pytest.approx(1.0)


def test_hand_computed_values():
    # hatPF = [0.75, 0.25], kbar = 1, v_rand = 0.25
    S = np.array([[1, 0], [1, 0], [0, 1], [1, 0]])
    assert get_stability(S).stability == pytest.approx(0.0)

    # Disjoint selections: 1 - 2 * 0.25 / 0.25
    S = np.array([[1, 0], [0, 1]])
    res = get_stability(S)
    assert res.stability == pytest.approx(-1.0)
    assert res.variance == pytest.approx(0.0)


def test_variance_matches_loop_formula():
    S = _random_selection(0).astype(float)
    M, d = S.shape
    hat_pf = S.mean(axis=0)
    kbar = hat_pf.sum()
    v_rand = (kbar / d) * (1 - kbar / d)
    stab = 1 - (M / (M - 1)) * np.mean(hat_pf * (1 - hat_pf)) / v_rand
    phi = np.zeros(M)
    for i in range(M):
        ki = S[i].sum()
        phi[i] = (1 / v_rand) * (
            (1 / d) * np.sum(S[i] * hat_pf)
            - ki * kbar / d ** 2
            - (stab / 2) * (2 * kbar * ki / d ** 2 - ki / d - kbar / d + 1)
        )
    expected_var = (4 / M ** 2) * np.sum((phi - phi.mean()) ** 2)

    res = get_stability(S)
    assert res.stability == pytest.approx(stab)
    assert res.variance == pytest.approx(expected_var)
    assert res.n_replicates == M
    assert res.n_features == d


def test_row_and_column_permutation_invariance():
    S = _random_selection(1)
    base = get_stability(S)
    rng = np.random.default_rng(2)

    rows = get_stability(S[rng.permutation(S.shape[0])])
    cols = get_stability(S[:, rng.permutation(S.shape[1])])

    assert rows.stability == pytest.approx(base.stability)
    assert cols.stability == pytest.approx(base.stability)
    assert rows.variance == pytest.approx(base.variance)
    assert cols.variance == pytest.approx(base.variance)


@pytest.mark.parametrize("value", [0, 1])
def test_all_or_nothing_selection_is_degenerate(value):
    S = np.full((10, 4), value)
    with pytest.raises(DegenerateSelection):
        get_stability(S)


def test_replicated_column_matches_single_column():
    col = np.array([1, 0, 1, 1, 0, 1, 1, 1, 0, 1])
    single = get_stability(col[:, None])
    repeated = get_stability(np.tile(col[:, None], (1, 6)))

    assert repeated.stability == pytest.approx(single.stability)
    assert repeated.variance == pytest.approx(single.variance)


@pytest.mark.parametrize("alpha", [0.01, 0.05, 0.2])
def test_confidence_interval_is_symmetric(alpha):
    res = get_stability(_random_selection(3), alpha=alpha)
    half = norm.ppf(1 - alpha / 2) * np.sqrt(res.variance)

    assert res.upper - res.stability == pytest.approx(res.stability - res.lower)
    assert res.upper - res.stability == pytest.approx(half)
    assert res.half_width == pytest.approx(half)


def test_wider_interval_for_smaller_alpha():
    S = _random_selection(4)
    assert get_stability(S, alpha=0.01).half_width > get_stability(S, alpha=0.1).half_width


def test_stability_not_clamped_below_zero():
    S = np.array([[1, 0], [0, 1], [1, 0], [0, 1]])
    assert get_stability(S).stability < 0


def test_invalid_inputs():
    with pytest.raises(InputError):
        get_stability(np.array([[1, 0, 1]]))
    with pytest.raises(InputError):
        get_stability(np.array([[1, 0], [0, 2]]))
    with pytest.raises(InputError):
        get_stability(np.array([1, 0, 1]))
    with pytest.raises(InputError):
        get_stability(_random_selection(5), alpha=0.0)
    with pytest.raises(InputError):
        get_stability(_random_selection(5), alpha=1.0)


def test_selection_frequencies():
    S = np.array([[1, 0, 1], [1, 0, 0], [1, 1, 0], [1, 0, 0]])
    freqs = selection_frequencies(S, ["a", "b", "c"])

    assert freqs.index.tolist() == ["a", "b", "c"]
    np.testing.assert_allclose(freqs.values, [1.0, 0.25, 0.25])

    unnamed = selection_frequencies(S)
    assert unnamed.index.tolist() == ["x1", "x2", "x3"]

    with pytest.raises(InputError):
        selection_frequencies(S, ["a", "b"])
