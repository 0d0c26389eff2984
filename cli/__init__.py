"""Command-line benchmarks for rangetreex."""
