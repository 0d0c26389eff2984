#!/usr/bin/env python
"""Quick-start guide for rangetreex library usage.

Run with: python -m rangetreex

This module avoids importing rangetreex internals so the help text prints
without paying for numpy/numba start-up.
"""

from __future__ import annotations

QUICKSTART = """\
================================================================================
                               RANGETREEX
            Tree-accelerated range search over metric spaces
================================================================================

INSTALLATION
------------
    pip install rangetreex

BASIC USAGE
-----------
    import numpy as np
    from rangetreex import RangeSearch, Range

    reference = np.random.randn(10000, 3)
    queries = np.random.randn(100, 3)

    # Dual-tree search (default); results are in the caller's indexing
    search = RangeSearch(reference)
    neighbors, distances = search.search(queries, Range(0.0, 0.5))

    # Single-tree or brute force
    RangeSearch(reference, single_mode=True)
    RangeSearch(reference, naive=True)

    # Every pair within [0.1, 0.3] inside the reference set itself
    neighbors, distances = search.search_self(Range(0.1, 0.3))

TREES AND METRICS
-----------------
    from rangetreex import BallTree, KDTree

    # kd-trees need a Minkowski metric; ball trees accept any metric
    search = RangeSearch(reference, tree_type="balltree", metric="manhattan")

    # Reuse a tree you built yourself (indices stay in the tree's slot order)
    tree = KDTree(reference, rearrange=False)
    search = RangeSearch.from_tree(tree)

RUNTIME CONFIGURATION
---------------------
    from rangetreex import RangeSearcher, Runtime

    searcher = RangeSearcher(Runtime(tree_type="kdtree", leaf_size=32)).fit(reference)
    neighbors, distances = searcher.query(queries, lo=0.0, hi=0.5)

    # Or through the environment:
    #   RANGETREEX_TREE, RANGETREEX_LEAF_SIZE, RANGETREEX_METRIC,
    #   RANGETREEX_ENABLE_NUMBA, RANGETREEX_LOG_LEVEL, ...

BENCHMARKING CLI
----------------
    python -m cli.range --dimension 3 --reference-points 8192 --queries 1024 \\
        --hi 0.5 --mode all --verify

================================================================================
"""


def main() -> None:
    """Print quick-start guide."""
    print(QUICKSTART)


if __name__ == "__main__":
    main()
