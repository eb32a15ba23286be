"""
Rating pipeline runner.

Entry point for a complete fit:
    load → weight → quality checks → build input → fit → aggregate → outputs

Usage:
    python -m intl_ratings.pipeline.run_ratings
    python -m intl_ratings.pipeline.run_ratings --chains 4 --iterations 3000
    python -m intl_ratings.pipeline.run_ratings --results data/results.csv --no-schedules
"""

import argparse
import sys
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from intl_ratings.bayesian.model import TeamRatingModel
from intl_ratings.bayesian.priors import ModelConfig
from intl_ratings.bayesian.ratings import Rating, RatingAggregator
from intl_ratings.config import Settings, settings as default_settings
from intl_ratings.constants import POSTERIOR_FILENAME
from intl_ratings.data.models import Match
from intl_ratings.pipeline import (
    AggregateStep,
    BuildInputStep,
    FitStep,
    LoadStep,
    OutputStep,
    Pipeline,
    PipelineResult,
    QualityCheckStep,
    WeightStep,
)
from intl_ratings.utils.logging import LogContext, setup_logging, get_logger

logger = get_logger("pipeline.ratings")


@dataclass
class RatingRun:
    """Outputs of a successful fit."""

    ratings: list[Rating]
    diagnostics: dict[str, Any]
    model: TeamRatingModel
    result: PipelineResult
    context: dict[str, Any] = field(default_factory=dict)
    ratings_file: Optional[Path] = None
    posterior_file: Optional[Path] = None


def run_ratings(
    config: Optional[ModelConfig] = None,
    settings: Optional[Settings] = None,
    historical: Optional[Sequence[Match]] = None,
    schedule: Optional[Sequence[Match]] = None,
    results_file: Optional[Path] = None,
    schedule_files: Optional[Mapping[str, str]] = None,
    history_start: Optional[date] = None,
    min_team_matches: Optional[int] = None,
    ratings_file: Optional[Path] = None,
    artifacts_dir: Optional[Path] = None,
    write_outputs: bool = True,
) -> RatingRun:
    """
    Fit the rating model and produce the ranked table.

    Matches can be passed in directly (historical/schedule) or read from
    the configured files.

    Args:
        config: Sampler configuration (defaults to settings)
        settings: Application settings
        historical: Already-parsed historical matches
        schedule: Already-normalized tournament matches
        results_file: Historical results CSV
        schedule_files: Schedule CSV -> tournament label
        history_start: Earliest retained historical date
        min_team_matches: Appearance threshold for historical teams
        ratings_file: Where to write the rating table
        artifacts_dir: Where to write the fitted trace
        write_outputs: Skip the output step when False

    Returns:
        RatingRun

    Raises:
        DataIntegrityError, ModelFitError, AggregationError: From the failing step
    """
    settings = settings or default_settings
    config = config or ModelConfig.from_settings(settings)

    pipeline = Pipeline(name="ratings")
    pipeline.add_step(LoadStep(
        results_file=results_file or settings.results_file,
        schedule_files=schedule_files if schedule_files is not None else settings.schedule_files,
        history_start=history_start if history_start is not None else settings.history_start,
        min_team_matches=(
            min_team_matches if min_team_matches is not None else settings.min_team_matches
        ),
        historical=historical,
        schedule=schedule,
    ))
    pipeline.add_step(WeightStep())
    pipeline.add_step(QualityCheckStep(fail_on_errors=True))
    pipeline.add_step(BuildInputStep())
    pipeline.add_step(FitStep(config))
    pipeline.add_step(AggregateStep())

    if write_outputs:
        artifacts_dir = Path(artifacts_dir or settings.artifacts_dir)
        pipeline.add_step(OutputStep(
            ratings_file=ratings_file or settings.ratings_file,
            posterior_file=artifacts_dir / POSTERIOR_FILENAME,
        ))

    with LogContext(run="ratings", seed=config.random_seed, chains=config.n_chains):
        result = pipeline.run(stop_on_error=True)

    summary = result.summary()
    for step in summary["steps"]:
        status = "✓" if step["success"] else "✗"
        logger.info(
            f"  {status} {step['stage']}: "
            f"{step['records']} records, "
            f"{step['duration']:.2f}s"
        )

    result.raise_for_failure()

    context = pipeline.context
    return RatingRun(
        ratings=context["ratings"],
        diagnostics=context["diagnostics"],
        model=context["model"],
        result=result,
        context=context,
        ratings_file=context.get("ratings_file"),
        posterior_file=context.get("posterior_file"),
    )


def ratings_from_artifact(path: Path) -> list[Rating]:
    """
    Rebuild the rating table from a saved trace without resampling.
    """
    model = TeamRatingModel.load(path)
    return RatingAggregator(model.registry).aggregate(model.get_posterior_draws())


def build_parser() -> argparse.ArgumentParser:
    """Command-line options shared by the module runner and scripts."""
    parser = argparse.ArgumentParser(
        description="Fit international team ratings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--results", type=Path, default=None, help="Historical results CSV")
    parser.add_argument(
        "--schedule",
        nargs=2,
        action="append",
        metavar=("CSV", "TOURNAMENT"),
        default=None,
        help="Tournament schedule file and its label (repeatable)",
    )
    parser.add_argument(
        "--no-schedules",
        action="store_true",
        help="Ignore configured tournament schedules",
    )
    parser.add_argument("--since", type=str, default=None, help="History start date (YYYY-MM-DD)")
    parser.add_argument("--min-matches", type=int, default=None, help="Appearance threshold")
    parser.add_argument("--chains", type=int, default=None)
    parser.add_argument("--iterations", type=int, default=None, help="Per chain, warmup included")
    parser.add_argument("--warmup", type=int, default=None)
    parser.add_argument("--target-accept", type=float, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--cores", type=int, default=None)
    parser.add_argument("--ratings-file", type=Path, default=None)
    parser.add_argument("--artifacts-dir", type=Path, default=None)
    parser.add_argument("--json-logs", action="store_true", help="Use JSON log format")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def run_from_args(args: argparse.Namespace) -> RatingRun:
    """Translate parsed options into a run_ratings call."""
    overrides = {
        "n_chains": args.chains,
        "n_iterations": args.iterations,
        "n_warmup": args.warmup,
        "target_accept": args.target_accept,
        "random_seed": args.seed,
        "n_cores": args.cores,
    }
    run_settings = default_settings.model_copy(
        update={k: v for k, v in overrides.items() if v is not None}
    )
    # model_copy skips validation; the sampler config re-checks warmup bounds
    config = ModelConfig.from_settings(run_settings)

    if args.no_schedules:
        schedule_files: Optional[dict[str, str]] = {}
    elif args.schedule:
        schedule_files = {path: label for path, label in args.schedule}
    else:
        schedule_files = None

    return run_ratings(
        config=config,
        settings=run_settings,
        results_file=args.results,
        schedule_files=schedule_files,
        history_start=date.fromisoformat(args.since) if args.since else None,
        min_team_matches=args.min_matches,
        ratings_file=args.ratings_file,
        artifacts_dir=args.artifacts_dir,
    )


def main():
    """CLI entry point."""
    args = build_parser().parse_args()

    setup_logging(
        level="DEBUG" if args.debug else None,
        json_format=args.json_logs,
    )

    try:
        run = run_from_args(args)
    except Exception as e:
        logger.error(f"Rating fit failed: {type(e).__name__}: {e}")
        sys.exit(1)

    for rank, rating in enumerate(run.ratings[:20], start=1):
        logger.info(f"{rank:3d}. {rating.team:<30} {rating.net_rating:+.3f}")
    sys.exit(0)


if __name__ == "__main__":
    main()
