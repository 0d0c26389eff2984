import numpy as np
import pytest

from rangetreex.core.bounds import BallBound, HRectBound
from rangetreex.core.metrics import Metric, get_metric
from tests.utils.datasets import gaussian_points


def test_hrect_point_distances():
    metric = get_metric("euclidean")
    bound = HRectBound.from_points(np.asarray([[0.0, 0.0], [1.0, 1.0]]), metric)

    lower, upper = bound.range_distance_point(np.asarray([4.0, 5.0]))

    assert lower == pytest.approx(5.0)
    assert upper == pytest.approx(np.hypot(4.0, 5.0))
    assert bound.range_distance_point(np.asarray([0.5, 0.5]))[0] == 0.0


def test_hrect_bound_distances():
    metric = get_metric("manhattan")
    left = HRectBound.from_points(np.asarray([[0.0, 0.0], [1.0, 1.0]]), metric)
    right = HRectBound.from_points(np.asarray([[3.0, 0.0], [4.0, 1.0]]), metric)

    lower, upper = left.range_distance_bound(right)

    assert lower == pytest.approx(2.0)
    assert upper == pytest.approx(5.0)


def test_hrect_requires_minkowski_metric():
    custom = Metric(
        name="custom",
        pairwise_kernel=lambda lhs, rhs: np.zeros((lhs.shape[0], rhs.shape[0])),
        pointwise_kernel=lambda lhs, rhs: np.zeros(lhs.shape[:-1]),
    )

    with pytest.raises(ValueError):
        HRectBound.from_points(np.zeros((1, 2)), custom)


def test_ball_bound_contains_its_points():
    metric = get_metric("euclidean")
    points = gaussian_points(np.random.default_rng(3), 50, 3)
    bound = BallBound.from_points(points, metric)

    dists = metric.pairwise(bound.center[None, :], points)[0]
    assert np.all(dists <= bound.radius + 1e-12)

    probe = np.asarray([10.0, 0.0, 0.0])
    lower, upper = bound.range_distance_point(probe)
    truth = metric.pairwise(probe[None, :], points)[0]
    assert lower <= truth.min() + 1e-12
    assert upper >= truth.max() - 1e-12


@pytest.mark.parametrize("kind", ["hrect", "ball"])
def test_bound_to_bound_range_brackets_all_pairs(kind):
    metric = get_metric("euclidean")
    rng = np.random.default_rng(11)
    lhs = gaussian_points(rng, 20, 2) + 3.0
    rhs = gaussian_points(rng, 25, 2)
    factory = HRectBound if kind == "hrect" else BallBound
    lhs_bound = factory.from_points(lhs, metric)
    rhs_bound = factory.from_points(rhs, metric)

    lower, upper = rhs_bound.range_distance_bound(lhs_bound)
    pairwise = metric.pairwise(lhs, rhs)

    assert lower <= pairwise.min() + 1e-12
    assert upper >= pairwise.max() - 1e-12


def test_empty_bounds_are_degenerate():
    metric = get_metric("euclidean")
    empty = np.zeros((0, 3))

    assert HRectBound.from_points(empty, metric).lo.shape == (3,)
    assert BallBound.from_points(empty, metric).radius == 0.0


def test_ball_bound_brackets_exact_distances_on_a_line():
    metric = get_metric("euclidean")
    rng = np.random.default_rng(17)
    points = rng.uniform(-5.0, 5.0, size=(9, 1))
    others = rng.uniform(-5.0, 5.0, size=(7, 1))
    bound = BallBound.from_points(points, metric)
    other_bound = BallBound.from_points(others, metric)

    for query in others:
        lower, upper = bound.range_distance_point(query)
        dists = metric.pairwise(query[None, :], points)[0]
        assert lower <= dists.min()
        assert upper >= dists.max()

    lower, upper = bound.range_distance_bound(other_bound)
    pairwise = metric.pairwise(others, points)
    assert lower <= pairwise.min()
    assert upper >= pairwise.max()
