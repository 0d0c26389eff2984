"""Binary space-partitioning trees consumed by the range-search traversals.

Both trees split on the widest dimension at the median and keep points only
in leaves. With ``rearrange=True`` the tree stores its own copy of the data in
leaf order and records ``old_from_new`` so callers can map slot ``i`` back to
input row ``old_from_new[i]``. With ``rearrange=False`` the input order is kept
and leaves reference rows through an index array.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Protocol, Tuple

import numpy as np

from rangetreex import config as rx_config
from rangetreex.core.bounds import BallBound, HRectBound
from rangetreex.core.metrics import Metric, resolve_metric
from rangetreex.logging import get_logger

LOGGER = get_logger("core.tree")

Bound = Any


class TreeNode:
    """Node covering slots ``[begin, begin + count)`` of its tree."""

    __slots__ = ("begin", "count", "bound", "left", "right", "indices")

    def __init__(self, begin: int, count: int, bound: Bound) -> None:
        self.begin = begin
        self.count = count
        self.bound = bound
        self.left: TreeNode | None = None
        self.right: TreeNode | None = None
        self.indices: np.ndarray = np.empty(0, dtype=np.int64)

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    @property
    def children(self) -> Tuple["TreeNode", ...]:
        return tuple(child for child in (self.left, self.right) if child is not None)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        kind = "leaf" if self.is_leaf else "node"
        return f"TreeNode({kind}, begin={self.begin}, count={self.count})"


class SpatialTree(Protocol):
    """Capabilities the range-search orchestrator needs from an index."""

    rearranges_dataset: bool
    metric: Metric

    @property
    def old_from_new(self) -> np.ndarray | None:
        ...

    @property
    def root(self) -> TreeNode:
        ...

    @property
    def num_points(self) -> int:
        ...

    @property
    def dimension(self) -> int:
        ...

    @property
    def closed(self) -> bool:
        ...

    def dataset(self) -> np.ndarray:
        ...

    def single_tree_traverse(self, query_index: int, rule: Any) -> None:
        ...

    def dual_tree_traverse(self, query_tree: "SpatialTree", rule: Any) -> None:
        ...

    def close(self) -> None:
        ...


def _ensure_points(points: Any, dtype: str) -> np.ndarray:
    arr = np.array(points, dtype=dtype)
    if arr.ndim == 1:
        arr = arr[None, :] if arr.shape[0] else arr.reshape(0, 0)
    if arr.ndim != 2:
        raise ValueError(f"Expected a 2-D point matrix, got shape {arr.shape}.")
    return arr


class BinarySpaceTree:
    """Median-split binary tree; subclasses choose the bound type."""

    name = "binary"

    def __init__(
        self,
        points: Any,
        *,
        metric: Metric | str | None = None,
        leaf_size: int | None = None,
        rearrange: bool = True,
    ) -> None:
        runtime = rx_config.runtime_config()
        self.metric = resolve_metric(metric)
        self.leaf_size = int(leaf_size if leaf_size is not None else runtime.leaf_size)
        if self.leaf_size <= 0:
            raise ValueError(f"leaf_size must be positive, got {self.leaf_size}.")
        self.rearranges_dataset = bool(rearrange)

        data = _ensure_points(points, runtime.precision)
        num_points = int(data.shape[0])
        order = np.arange(num_points, dtype=np.int64)
        self._num_nodes = 0
        self._depth = 0
        self._root: TreeNode | None = self._build_node(data, order, 0, num_points, 0)

        if self.rearranges_dataset:
            self._dataset: np.ndarray | None = data[order]
            slots = np.arange(num_points, dtype=np.int64)
            self._old_from_new: np.ndarray | None = order
            self._old_from_new.flags.writeable = False
        else:
            self._dataset = data
            slots = order
            self._old_from_new = None
        self._dataset.flags.writeable = False
        slots.flags.writeable = False
        self._assign_indices(self._root, slots)
        self._closed = False

        LOGGER.debug(
            "Built %s over %d points (dimension=%d, nodes=%d, depth=%d, rearranged=%s)",
            self.name,
            num_points,
            self.dimension,
            self._num_nodes,
            self._depth,
            self.rearranges_dataset,
        )

    def _make_bound(self, members: np.ndarray) -> Bound:
        raise NotImplementedError

    def _build_node(
        self,
        data: np.ndarray,
        order: np.ndarray,
        begin: int,
        count: int,
        depth: int,
    ) -> TreeNode:
        segment = order[begin : begin + count]
        members = data[segment]
        node = TreeNode(begin, count, self._make_bound(members))
        self._num_nodes += 1
        self._depth = max(self._depth, depth)
        if count <= self.leaf_size:
            return node

        spread = np.ptp(members, axis=0)
        split_dim = int(np.argmax(spread))
        if spread[split_dim] <= 0.0:
            # every member coincides; splitting cannot separate anything
            return node

        half = count // 2
        partition = np.argpartition(members[:, split_dim], half)
        order[begin : begin + count] = segment[partition]
        node.left = self._build_node(data, order, begin, half, depth + 1)
        node.right = self._build_node(data, order, begin + half, count - half, depth + 1)
        return node

    def _assign_indices(self, node: TreeNode | None, slots: np.ndarray) -> None:
        stack = [node] if node is not None else []
        while stack:
            current = stack.pop()
            current.indices = slots[current.begin : current.begin + current.count]
            stack.extend(current.children)

    def _require_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"{type(self).__name__} has been closed.")

    def _require_dataset(self) -> np.ndarray:
        self._require_open()
        if self._dataset is None:
            raise RuntimeError(f"{type(self).__name__} holds no dataset.")
        return self._dataset

    @property
    def root(self) -> TreeNode:
        self._require_open()
        if self._root is None:
            raise RuntimeError(f"{type(self).__name__} holds no nodes.")
        return self._root

    @property
    def old_from_new(self) -> np.ndarray | None:
        return self._old_from_new

    @property
    def num_points(self) -> int:
        return int(self._require_dataset().shape[0])

    @property
    def dimension(self) -> int:
        return int(self._require_dataset().shape[1])

    @property
    def num_nodes(self) -> int:
        return self._num_nodes

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def closed(self) -> bool:
        return self._closed

    def dataset(self) -> np.ndarray:
        """Return the matrix held by the tree (in leaf order when rearranged)."""

        return self._require_dataset()

    def single_tree_traverse(self, query_index: int, rule: Any) -> None:
        from rangetreex.algo.traverse import SingleTreeTraverser  # lazy import to avoid cycles

        SingleTreeTraverser(rule).traverse(query_index, self.root)

    def dual_tree_traverse(self, query_tree: SpatialTree, rule: Any) -> None:
        from rangetreex.algo.traverse import DualTreeTraverser  # lazy import to avoid cycles

        DualTreeTraverser(rule).traverse(query_tree.root, self.root)

    def close(self) -> None:
        """Drop the node structure and data; further use raises ``RuntimeError``."""

        if self._closed:
            return
        self._root = None
        self._dataset = None
        self._closed = True

    def __repr__(self) -> str:
        if self._closed:
            return f"{type(self).__name__}(closed)"
        return (
            f"{type(self).__name__}(points={self.num_points}, dimension={self.dimension}, "
            f"metric={self.metric.name}, leaf_size={self.leaf_size}, "
            f"rearranged={self.rearranges_dataset})"
        )


class KDTree(BinarySpaceTree):
    """kd-tree with hyper-rectangle bounds; needs a Minkowski metric."""

    name = "kdtree"

    def __init__(
        self,
        points: Any,
        *,
        metric: Metric | str | None = None,
        leaf_size: int | None = None,
        rearrange: bool = True,
    ) -> None:
        resolved = resolve_metric(metric)
        if not resolved.is_minkowski:
            raise ValueError(
                f"KDTree requires a Minkowski metric; '{resolved.name}' has no power. "
                "Use BallTree for general metrics."
            )
        super().__init__(points, metric=resolved, leaf_size=leaf_size, rearrange=rearrange)

    def _make_bound(self, members: np.ndarray) -> HRectBound:
        return HRectBound.from_points(members, self.metric)


class BallTree(BinarySpaceTree):
    """Ball tree with centroid/radius bounds; valid for any metric."""

    name = "balltree"

    def _make_bound(self, members: np.ndarray) -> BallBound:
        return BallBound.from_points(members, self.metric)


_TREE_TYPES: Dict[str, Callable[..., BinarySpaceTree]] = {
    "kdtree": KDTree,
    "balltree": BallTree,
}


def available_tree_types() -> Tuple[str, ...]:
    return tuple(sorted(_TREE_TYPES))


def build_tree(
    points: Any,
    *,
    tree_type: str | None = None,
    metric: Metric | str | None = None,
    leaf_size: int | None = None,
    rearrange: bool = True,
) -> Tuple[BinarySpaceTree, np.ndarray | None]:
    """Build a tree and return it with its ``old_from_new`` map (``None`` if not reordered)."""

    name = rx_config.normalise_tree_type(
        tree_type if tree_type is not None else rx_config.runtime_config().tree_type
    )
    factory = _TREE_TYPES[name]
    tree = factory(points, metric=metric, leaf_size=leaf_size, rearrange=rearrange)
    return tree, tree.old_from_new


__all__ = [
    "BallTree",
    "BinarySpaceTree",
    "KDTree",
    "SpatialTree",
    "TreeNode",
    "available_tree_types",
    "build_tree",
]
