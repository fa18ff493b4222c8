import numpy as np
import pytest

from stabplot import (
    InputError,
    SelectionMatrices,
    convergence_curve,
    get_stability,
    regularization_curve,
)


def _selection(matrices, candidate_set, names=None):
    p = matrices[0].shape[1]
    return SelectionMatrices(
        candidate_set=np.asarray(candidate_set, dtype=float),
        matrices=[np.asarray(S, dtype=np.int8) for S in matrices],
        lambda_min=float(candidate_set[-1]),
        lambda_1se=float(candidate_set[1]),
        feature_names=names or [f"x{i + 1}" for i in range(p)],
    )


@pytest.fixture
def path_selection():
    rng = np.random.default_rng(0)
    B, p = 30, 6
    empty = np.zeros((B, p))
    stable = np.zeros((B, p))
    stable[:, :2] = 1
    stable[rng.random(B) < 0.1, 2] = 1
    noisy = (rng.random((B, p)) < 0.5).astype(int)
    full = np.ones((B, p))
    return _selection([empty, stable, noisy, full], [8.0, 4.0, 2.0, 1.0])


def test_regularization_curve(path_selection):
    curve = regularization_curve(path_selection)
    frame = curve.to_frame()

    assert list(frame.columns) == ["lambda", "stability", "variance", "lower", "upper", "degenerate"]
    assert len(frame) == 4
    assert frame["degenerate"].tolist() == [True, False, False, True]
    assert np.isnan(frame["stability"].iloc[0])
    assert np.isnan(frame["stability"].iloc[3])

    expected = get_stability(path_selection.matrices[1])
    assert frame["stability"].iloc[1] == pytest.approx(expected.stability)
    assert frame["upper"].iloc[1] == pytest.approx(expected.upper)

    assert curve.reference.label == "stable"
    assert curve.reference.lambda_stable == 4.0
    assert curve.reference.index_min == 3
    assert curve.reference.index_1se == 1

    points = curve.points()
    assert [lam for lam, _ in points] == [8.0, 4.0, 2.0, 1.0]
    assert points[1][1] == pytest.approx(expected.stability)


def test_highlighted_points(path_selection):
    hl = regularization_curve(path_selection).highlighted()
    assert hl["label"].tolist() == ["min", "1se", "stable"]
    assert hl["lambda"].tolist() == [1.0, 4.0, 4.0]


def test_regularization_curve_falls_back_to_stable_1sd():
    rng = np.random.default_rng(1)
    mats = [(rng.random((20, 5)) < q).astype(int) for q in (0.2, 0.4, 0.6)]
    curve = regularization_curve(_selection(mats, [3.0, 2.0, 1.0]))

    assert curve.stability.max() <= 0.75
    assert curve.reference.label == "stable.1sd"


def test_convergence_curve_length_and_last_row(path_selection):
    curve = convergence_curve(path_selection, alpha=0.1)
    traj = curve.trajectory

    assert len(traj) == 29
    assert traj["iteration"].tolist() == list(range(2, 31))
    assert curve.lambda_ == 4.0
    assert curve.label == "stable"

    full = get_stability(path_selection.matrices[1], alpha=0.1)
    assert traj["stability"].iloc[-1] == pytest.approx(full.stability)
    assert traj["lower"].iloc[-1] == pytest.approx(full.lower)
    assert curve.final.stability == pytest.approx(full.stability)

    points = curve.points()
    assert len(points) == 29
    assert points[0][0] == 2


def test_convergence_curve_prefixes():
    S = np.array([[1, 0, 0], [1, 0, 0], [1, 1, 0], [1, 0, 0], [0, 1, 0]])
    curve = convergence_curve(_selection([S, S], [2.0, 1.0]))

    for k, row in zip(range(2, 6), curve.trajectory.itertuples()):
        assert row.iteration == k
        assert row.stability == pytest.approx(get_stability(S[:k]).stability)


def test_convergence_curve_flags_degenerate_prefix():
    S = np.array([[0, 0], [0, 0], [1, 0], [1, 0], [1, 1]])
    curve = convergence_curve(_selection([S, S], [2.0, 1.0]))

    assert curve.trajectory["degenerate"].tolist() == [True, False, False, False]
    assert np.isnan(curve.trajectory["stability"].iloc[0])


def test_selection_frequencies_above_threshold():
    S = np.array([[1, 1, 0, 0], [1, 0, 0, 1], [1, 1, 0, 0], [1, 0, 1, 0]])
    curve = convergence_curve(_selection([S, S], [2.0, 1.0], names=["a", "b", "c", "d"]))

    np.testing.assert_allclose(curve.selection_frequencies.values, [1.0, 0.5, 0.25, 0.25])
    # 0.5 is not strictly above the default threshold
    assert curve.selected["Variable"].tolist() == ["a"]
    assert list(curve.selected.columns) == ["Variable", "Selection_Frequency"]

    lenient = convergence_curve(_selection([S, S], [2.0, 1.0]), threshold=0.2)
    assert len(lenient.selected) == 4


def test_convergence_curve_reuses_reference(path_selection):
    reference = regularization_curve(path_selection).reference
    curve = convergence_curve(path_selection, reference=reference)
    assert curve.index == reference.index_stable


def test_curve_argument_validation(path_selection):
    with pytest.raises(InputError):
        regularization_curve(path_selection, alpha=1.5)
    with pytest.raises(InputError):
        convergence_curve(path_selection, threshold=1.2)
    with pytest.raises(InputError):
        convergence_curve(path_selection, threshold=-0.1)
