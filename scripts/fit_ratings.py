#!/usr/bin/env python
"""
Fit international team ratings and display the table.

Usage:
    python scripts/fit_ratings.py                          # Configured inputs
    python scripts/fit_ratings.py --chains 4 --seed 1      # Sampler overrides
    python scripts/fit_ratings.py --top 50                 # Longer table
    python scripts/fit_ratings.py --from-artifact model_objects/posterior.nc
"""

import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from intl_ratings.bayesian.ratings import Rating
from intl_ratings.pipeline.run_ratings import build_parser, ratings_from_artifact, run_from_args
from intl_ratings.utils.logging import setup_logging

console = Console()


def display_ratings(ratings: list[Rating], top: int) -> None:
    """Display the top of the rating table."""
    table = Table(title=f"Team Ratings (top {min(top, len(ratings))} of {len(ratings)})")
    table.add_column("Rank", justify="right")
    table.add_column("Team", style="cyan")
    table.add_column("ID", justify="right")
    table.add_column("Alpha", justify="right")
    table.add_column("Delta", justify="right")
    table.add_column("Net", justify="right", style="bold")

    for rank, r in enumerate(ratings[:top], start=1):
        table.add_row(
            str(rank),
            r.team,
            str(r.team_id),
            f"{r.alpha:+.3f}",
            f"{r.delta:+.3f}",
            f"{r.net_rating:+.3f}",
        )

    console.print(table)


def display_diagnostics(diagnostics: dict) -> None:
    """Display convergence diagnostics."""
    healthy = diagnostics["is_healthy"]
    style = "green" if healthy else "yellow"
    lines = [
        f"Chains: {diagnostics['n_chains']} x {diagnostics['n_draws_per_chain']} draws",
        f"Divergences: {diagnostics['n_divergences']} ({diagnostics['divergence_fraction']:.2%})",
        f"Max R-hat: {diagnostics['max_rhat']:.3f}",
        f"Min ESS (bulk): {diagnostics['min_ess_bulk']:.0f}",
        f"Min ESS (tail): {diagnostics['min_ess_tail']:.0f}",
    ]
    console.print(Panel("\n".join(lines), title="Diagnostics", border_style=style))


def main():
    parser = build_parser()
    parser.add_argument("--top", type=int, default=25, help="Rows to display")
    parser.add_argument(
        "--from-artifact",
        type=Path,
        default=None,
        help="Rebuild the table from a saved posterior instead of fitting",
    )
    args = parser.parse_args()

    setup_logging(
        level="DEBUG" if args.debug else None,
        json_format=args.json_logs,
    )

    try:
        if args.from_artifact:
            ratings = ratings_from_artifact(args.from_artifact)
            display_ratings(ratings, args.top)
        else:
            run = run_from_args(args)
            display_ratings(run.ratings, args.top)
            display_diagnostics(run.diagnostics)
            console.print(f"[green]Ratings written to {run.ratings_file}[/green]")
            console.print(f"[green]Posterior written to {run.posterior_file}[/green]")
    except Exception as e:
        console.print(Panel(f"{type(e).__name__}: {e}", title="Fit failed", border_style="red"))
        sys.exit(1)


if __name__ == "__main__":
    main()
