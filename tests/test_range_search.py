import math

import numpy as np
import pytest

from rangetreex import config as rx_config
from rangetreex.core.range import Range
from rangetreex.core.tree import BallTree, KDTree
from rangetreex.errors import InvalidConfigurationError
from rangetreex.queries.range_search import RangeSearch
from tests.utils.datasets import brute_force_range, gaussian_dataset

MODES = [
    {"naive": True},
    {"single_mode": True},
    {},
]


def _as_sets(neighbors):
    return [set(row) for row in neighbors]


def _check_distances(queries, reference, neighbors, distances):
    for q, (row, dists) in enumerate(zip(neighbors, distances)):
        assert len(row) == len(dists)
        for r, d in zip(row, dists):
            assert d == pytest.approx(float(np.linalg.norm(queries[q] - reference[r])))


def test_example_query():
    reference = np.asarray([[0.0, 0.0], [1.0, 0.0], [5.0, 5.0]])
    query = np.asarray([[0.0, 0.0]])

    for kwargs in MODES:
        search = RangeSearch(reference, **kwargs)
        neighbors, distances = search.search(query, Range(0.0, 2.0))

        assert sorted(zip(neighbors[0], distances[0])) == [(0, 0.0), (1, 1.0)]


def test_example_naive_self_search():
    search = RangeSearch(np.asarray([[0.0, 0.0], [1.0, 0.0]]), naive=True)

    neighbors, distances = search.search_self(Range(0.0, 1.0))

    assert neighbors == [[1], [0]]
    assert distances == [[1.0], [1.0]]


@pytest.mark.parametrize("tree_type", ["kdtree", "balltree"])
@pytest.mark.parametrize("interval", [(0.0, 0.5), (0.4, 1.1), (1.5, math.inf)])
def test_all_modes_agree_with_brute_force(tree_type, interval):
    reference, queries = gaussian_dataset(
        np.random.default_rng(7), tree_points=400, queries=90, dimension=3
    )
    expected = brute_force_range(queries, reference, *interval)

    for kwargs in MODES:
        search = RangeSearch(reference, tree_type=tree_type, leaf_size=8, **kwargs)
        neighbors, distances = search.search(queries, Range(*interval))

        assert _as_sets(neighbors) == expected, kwargs
        _check_distances(queries, reference, neighbors, distances)


@pytest.mark.parametrize("tree_type", ["kdtree", "balltree"])
def test_self_search_matches_brute_force_without_self(tree_type):
    reference, _ = gaussian_dataset(
        np.random.default_rng(8), tree_points=300, queries=0, dimension=2
    )
    expected = brute_force_range(reference, reference, 0.0, 0.3)
    for index, row in enumerate(expected):
        row.discard(index)

    for kwargs in MODES:
        search = RangeSearch(reference, tree_type=tree_type, leaf_size=6, **kwargs)
        neighbors, distances = search.search_self(Range(0.0, 0.3))

        assert _as_sets(neighbors) == expected, kwargs
        _check_distances(reference, reference, neighbors, distances)


def test_self_search_zero_interval_reports_only_coincident_others():
    reference = np.asarray([[0.0, 0.0], [2.0, 2.0], [0.0, 0.0], [5.0, 1.0]])

    for kwargs in MODES:
        search = RangeSearch(reference, leaf_size=1, **kwargs)
        neighbors, _ = search.search_self(Range(0.0, 0.0))

        assert _as_sets(neighbors) == [{2}, set(), {0}, set()], kwargs


def test_unbounded_interval_returns_everything_beyond_lo():
    reference, queries = gaussian_dataset(
        np.random.default_rng(9), tree_points=120, queries=10, dimension=2
    )
    expected = brute_force_range(queries, reference, 1.0, math.inf)

    search = RangeSearch(reference, leaf_size=4)
    neighbors, _ = search.search(queries, (1.0, math.inf))

    assert _as_sets(neighbors) == expected


def test_repeated_searches_are_idempotent():
    reference, queries = gaussian_dataset(
        np.random.default_rng(10), tree_points=200, queries=50, dimension=3
    )
    search = RangeSearch(reference, leaf_size=5)
    snapshot = search.reference_set.copy()

    first = search.search(queries, Range(0.2, 0.9))
    second = search.search(queries, Range(0.2, 0.9))

    assert _as_sets(first[0]) == _as_sets(second[0])
    assert np.array_equal(search.reference_set, snapshot)


def test_query_tree_is_closed_when_traversal_raises(monkeypatch: pytest.MonkeyPatch):
    reference, queries = gaussian_dataset(
        np.random.default_rng(11), tree_points=50, queries=10, dimension=2
    )
    search = RangeSearch(reference)
    built = []

    from rangetreex.queries import range_search as module

    original_build = module.build_tree

    def recording_build(*args, **kwargs):
        tree, perm = original_build(*args, **kwargs)
        built.append(tree)
        return tree, perm

    def failing_traverse(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(module, "build_tree", recording_build)
    monkeypatch.setattr(module, "dual_tree_traverse", failing_traverse)

    with pytest.raises(RuntimeError, match="boom"):
        search.search(queries, Range(0.0, 1.0))

    assert len(built) == 1
    assert built[0].closed
    assert not search.reference_tree.closed


@pytest.mark.parametrize("kwargs", [{"naive": True}, {"single_mode": True}])
def test_search_tree_rejected_outside_dual_mode(kwargs):
    reference = np.zeros((4, 2))
    search = RangeSearch(reference, **kwargs)
    query_tree = KDTree(np.ones((3, 2)))

    with pytest.raises(InvalidConfigurationError):
        search.search_tree(query_tree, Range(0.0, 1.0))
    assert search.last_stats is None


def test_search_tree_rejects_mismatched_tree_types():
    search = RangeSearch(np.zeros((4, 2)), tree_type="kdtree")

    with pytest.raises(InvalidConfigurationError):
        search.search_tree(BallTree(np.ones((3, 2))), Range(0.0, 1.0))


def test_search_tree_reports_query_slots_and_caller_reference_indices():
    reference, queries = gaussian_dataset(
        np.random.default_rng(12), tree_points=150, queries=40, dimension=2
    )
    search = RangeSearch(reference, leaf_size=4)
    query_tree = KDTree(queries, leaf_size=4)

    neighbors, _ = search.search_tree(query_tree, Range(0.0, 0.5))

    expected = brute_force_range(query_tree.dataset(), reference, 0.0, 0.5)
    assert _as_sets(neighbors) == expected
    assert not query_tree.closed


def test_borrowed_tree_is_not_remapped_or_released():
    reference, queries = gaussian_dataset(
        np.random.default_rng(13), tree_points=100, queries=20, dimension=2
    )
    tree = KDTree(reference, leaf_size=4)
    search = RangeSearch.from_tree(tree)

    neighbors, _ = search.search(queries, Range(0.0, 0.6))
    search.close()

    assert not search.tree_owner
    assert _as_sets(neighbors) == brute_force_range(queries, tree.dataset(), 0.0, 0.6)
    assert not tree.closed


def test_owned_tree_released_on_close():
    search = RangeSearch(np.zeros((5, 2)))
    tree = search.reference_tree

    with search:
        assert search.tree_owner
    assert tree.closed
    assert search.closed
    with pytest.raises(RuntimeError):
        search.search(np.zeros((1, 2)), Range())


def test_rejects_dimension_mismatch_and_malformed_range():
    search = RangeSearch(np.zeros((5, 3)))

    with pytest.raises(ValueError):
        search.search(np.zeros((2, 2)), Range(0.0, 1.0))
    with pytest.raises(ValueError):
        search.search(np.zeros((2, 3)), (2.0, 1.0))


def test_single_point_query_is_promoted():
    search = RangeSearch(np.asarray([[0.0, 0.0], [3.0, 4.0]]), single_mode=True)

    neighbors, distances = search.search(np.asarray([0.0, 0.0]), Range(4.0, 6.0))

    assert neighbors == [[1]]
    assert distances[0] == pytest.approx([5.0])


@pytest.mark.parametrize("kwargs", MODES)
def test_empty_reference_and_query_sets(kwargs):
    search = RangeSearch(np.zeros((0, 2)), **kwargs)

    neighbors, distances = search.search(np.ones((3, 2)), Range())
    assert neighbors == [[], [], []]
    assert distances == [[], [], []]

    populated = RangeSearch(np.ones((3, 2)), **kwargs)
    assert populated.search(np.zeros((0, 2)), Range()) == ([], [])


def test_naive_forces_single_mode_off_and_describes_itself():
    search = RangeSearch(np.zeros((3, 2)), naive=True, single_mode=True)

    assert search.naive
    assert not search.single_mode
    assert not search.tree_owner
    described = search.describe()
    assert described["mode"] == "naive"
    assert described["reference_points"] == 3
    assert "mode=naive" in repr(search)


def test_last_stats_reports_pruning():
    reference, queries = gaussian_dataset(
        np.random.default_rng(14), tree_points=500, queries=50, dimension=2
    )
    search = RangeSearch(reference, leaf_size=8)

    search.search(queries, Range(0.0, 0.2))

    stats = search.last_stats
    assert stats.mode == "dual"
    assert stats.prunes > 0
    assert stats.base_cases < 500 * 50


def test_runtime_toggles_apply(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("RANGETREEX_ENABLE_NUMBA", "1")
    monkeypatch.setenv("RANGETREEX_ACCEPT_ALL", "0")
    monkeypatch.setenv("RANGETREEX_NAIVE_BLOCK", "3")
    rx_config.reset_runtime_config_cache()
    reference, queries = gaussian_dataset(
        np.random.default_rng(15), tree_points=80, queries=20, dimension=3
    )
    expected = brute_force_range(queries, reference, 0.5, 1.5)

    for kwargs in MODES:
        search = RangeSearch(reference, leaf_size=4, **kwargs)
        neighbors, _ = search.search(queries, Range(0.5, 1.5))
        assert _as_sets(neighbors) == expected
        assert search.last_stats.accepts == 0


@pytest.mark.parametrize("tree_type", ["kdtree", "balltree"])
def test_exact_distance_intervals_match_naive_on_a_line(tree_type):
    rng = np.random.default_rng(21)
    reference = rng.uniform(-5.0, 5.0, size=(40, 1))
    queries = rng.uniform(-5.0, 5.0, size=(15, 1))
    naive = RangeSearch(reference, naive=True)
    searches = [
        RangeSearch(reference, tree_type=tree_type, leaf_size=2, **kwargs)
        for kwargs in ({"single_mode": True}, {})
    ]

    for q in range(queries.shape[0]):
        query = queries[q : q + 1]
        _, exact = naive.search(query, Range(0.0, math.inf))
        for d in exact[0]:
            expected, _ = naive.search(query, Range(d, d))
            assert expected[0], d
            for search in searches:
                neighbors, distances = search.search(query, Range(d, d))
                assert _as_sets(neighbors) == _as_sets(expected), (search.mode, q, d)
                assert all(value == d for value in distances[0])


def test_ball_tree_on_collinear_points_with_duplicates_matches_naive():
    rng = np.random.default_rng(22)
    direction = np.asarray([1.0, 2.0, 2.0]) / 3.0
    steps = rng.integers(0, 12, size=60).astype(np.float64)
    reference = 0.5 + steps[:, None] * direction[None, :]
    queries = np.concatenate(
        [reference[:5], reference[:3] + np.asarray([0.0, 0.0, 1.0])], axis=0
    )
    naive = RangeSearch(reference, naive=True)
    _, exact = naive.search(queries[:1], Range(0.0, math.inf))
    intervals = [(0.0, 0.0), (1.0, 3.0), (2.0, math.inf)] + [(d, d) for d in exact[0][:6]]

    for interval in intervals:
        expected, _ = naive.search(queries, Range(*interval))
        for kwargs in ({"single_mode": True}, {}):
            search = RangeSearch(reference, tree_type="balltree", leaf_size=3, **kwargs)
            neighbors, _ = search.search(queries, Range(*interval))
            assert _as_sets(neighbors) == _as_sets(expected), (kwargs, interval)

    expected_self, _ = naive.search_self(Range(0.0, 1.5))
    for kwargs in ({"single_mode": True}, {}):
        search = RangeSearch(reference, tree_type="balltree", leaf_size=3, **kwargs)
        neighbors, _ = search.search_self(Range(0.0, 1.5))
        assert _as_sets(neighbors) == _as_sets(expected_self), kwargs


@pytest.mark.parametrize("tree_cls", [KDTree, BallTree])
def test_borrowed_rearranged_tree_self_search_matches_naive(tree_cls):
    reference, _ = gaussian_dataset(
        np.random.default_rng(23), tree_points=120, queries=0, dimension=2
    )
    tree = tree_cls(reference, leaf_size=4)
    slots = tree.dataset()
    assert tree.old_from_new is not None
    assert not np.array_equal(slots, reference)

    expected, _ = RangeSearch(slots, naive=True).search_self(Range(0.1, 0.6))

    for single_mode in (True, False):
        search = RangeSearch.from_tree(tree, single_mode=single_mode)
        neighbors, distances = search.search_self(Range(0.1, 0.6))

        assert _as_sets(neighbors) == _as_sets(expected), single_mode
        _check_distances(slots, slots, neighbors, distances)
        search.close()
    assert not tree.closed


def test_searcher_without_reference_storage_raises_runtime_error():
    search = RangeSearch(np.zeros((4, 2)))
    search._reference_set = None

    with pytest.raises(RuntimeError, match="no reference set"):
        _ = search.reference_set

    search._reference_tree = None
    with pytest.raises(RuntimeError, match="no reference tree"):
        search.search_tree(KDTree(np.ones((2, 2))), Range(0.0, 1.0))
