from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional

import typer
from typing_extensions import Annotated

from rangetreex.api import Runtime
from rangetreex.config import normalise_tree_type
from rangetreex.core.range import Range
from rangetreex.queries.range_search import Results

from .benchmark import (
    RangeBenchmarkResult,
    benchmark_range_search,
    generate_points,
    verify_against_naive,
)

_MODES = ("naive", "single", "dual")


@dataclass
class RangeCLIOptions:
    dimension: int = 3
    reference_points: int = 8_192
    queries: int = 1_024
    lo: float = 0.0
    hi: float = 0.5
    mode: str = "dual"
    tree: str = "kdtree"
    leaf_size: int = 20
    seed: int = 0
    enable_numba: bool | None = None
    log_level: str | None = None
    verify: bool = False


app = typer.Typer(
    add_completion=False,
    pretty_exceptions_enable=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
    help="Benchmark naive, single-tree and dual-tree range search.",
)

_SHAPE_PANEL = "Benchmark shape"
_RUNTIME_PANEL = "Runtime controls"


@app.callback(invoke_without_command=True)
def cli(
    ctx: typer.Context,
    dimension: Annotated[
        int,
        typer.Option("--dimension", help="Dimensionality of the points.", rich_help_panel=_SHAPE_PANEL),
    ] = 3,
    reference_points: Annotated[
        int,
        typer.Option(
            "--reference-points",
            help="Number of reference points indexed by the tree.",
            rich_help_panel=_SHAPE_PANEL,
        ),
    ] = 8_192,
    queries: Annotated[
        int,
        typer.Option("--queries", help="Number of query points.", rich_help_panel=_SHAPE_PANEL),
    ] = 1_024,
    lo: Annotated[
        float,
        typer.Option("--lo", help="Lower bound of the distance interval.", rich_help_panel=_SHAPE_PANEL),
    ] = 0.0,
    hi: Annotated[
        float,
        typer.Option(
            "--hi",
            help="Upper bound of the distance interval (use 'inf' for unbounded).",
            rich_help_panel=_SHAPE_PANEL,
        ),
    ] = 0.5,
    seed: Annotated[
        int,
        typer.Option("--seed", help="Random seed for point generation.", rich_help_panel=_SHAPE_PANEL),
    ] = 0,
    mode: Annotated[
        str,
        typer.Option("--mode", help="Search strategy: naive, single, dual or all.", rich_help_panel=_RUNTIME_PANEL),
    ] = "dual",
    tree: Annotated[
        str,
        typer.Option("--tree", help="Tree type for tree-based modes: kdtree or balltree.", rich_help_panel=_RUNTIME_PANEL),
    ] = "kdtree",
    leaf_size: Annotated[
        int,
        typer.Option("--leaf-size", help="Maximum points per leaf.", rich_help_panel=_RUNTIME_PANEL),
    ] = 20,
    enable_numba: Annotated[
        Optional[bool],
        typer.Option(
            "--enable-numba/--disable-numba",
            help="Use the numba Euclidean distance kernel.",
            rich_help_panel=_RUNTIME_PANEL,
        ),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Logging level for the rangetreex logger.", rich_help_panel=_RUNTIME_PANEL),
    ] = None,
    verify: Annotated[
        bool,
        typer.Option("--verify", help="Check every mode against the naive answer.", rich_help_panel=_RUNTIME_PANEL),
    ] = False,
) -> None:
    options = RangeCLIOptions(
        dimension=dimension,
        reference_points=reference_points,
        queries=queries,
        lo=lo,
        hi=hi,
        mode=mode,
        tree=tree,
        leaf_size=leaf_size,
        seed=seed,
        enable_numba=enable_numba,
        log_level=log_level,
        verify=verify,
    )
    ctx.obj = options
    if ctx.invoked_subcommand is None:
        run_range(options)


def _selected_modes(options: RangeCLIOptions) -> List[str]:
    modes = list(_MODES) if options.mode == "all" else [options.mode]
    if options.verify and "naive" not in modes:
        modes.insert(0, "naive")
    return modes


def _format_result(result: RangeBenchmarkResult) -> str:
    return (
        f"[{result.mode}] build={result.build_seconds:.4f}s "
        f"search={result.elapsed_seconds:.4f}s qps={result.queries_per_second:,.1f} "
        f"hits={result.hits} base_cases={result.base_cases} prunes={result.prunes}"
    )


def _validate(options: RangeCLIOptions) -> None:
    options.mode = options.mode.strip().lower()
    if options.mode not in _MODES + ("all",):
        raise typer.BadParameter(
            f"Unknown mode '{options.mode}'; expected naive, single, dual or all.",
            param_hint="--mode",
        )
    try:
        options.tree = normalise_tree_type(options.tree)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--tree") from exc


def run_range(options: RangeCLIOptions) -> Dict[str, RangeBenchmarkResult]:
    _validate(options)
    try:
        search_range = Range(options.lo, options.hi)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--lo/--hi") from exc

    Runtime(
        tree_type=options.tree,
        leaf_size=options.leaf_size,
        enable_numba=options.enable_numba,
        log_level=options.log_level,
    ).activate()

    reference, queries = generate_points(
        dimension=options.dimension,
        reference_points=options.reference_points,
        queries=options.queries,
        seed=options.seed,
    )
    hi_label = "inf" if math.isinf(search_range.hi) else f"{search_range.hi:g}"
    print(
        f"range search: reference={options.reference_points} queries={options.queries} "
        f"dimension={options.dimension} range=[{search_range.lo:g}, {hi_label}] tree={options.tree}"
    )

    summaries: Dict[str, RangeBenchmarkResult] = {}
    answers: Dict[str, Results] = {}
    for mode in _selected_modes(options):
        result, results = benchmark_range_search(
            mode,
            reference,
            queries,
            search_range,
            tree_type=options.tree,
            leaf_size=options.leaf_size,
        )
        summaries[mode] = result
        answers[mode] = results
        print(_format_result(result))

    if options.verify:
        mismatched = verify_against_naive(answers)
        if mismatched:
            print(f"verification FAILED for modes: {', '.join(mismatched)}")
            raise typer.Exit(code=1)
        print("verification passed: all modes match naive")
    return summaries


def main() -> None:
    app()


__all__ = ["RangeCLIOptions", "app", "main", "run_range"]
