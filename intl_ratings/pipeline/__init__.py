"""
Pipeline orchestration module.

Assembles steps: load → weight → quality checks → build input → fit →
aggregate → write outputs
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from intl_ratings.utils import get_logger, now_utc

logger = get_logger("pipeline")


class PipelineStage(str, Enum):
    """Pipeline stages."""
    LOAD = "load"
    WEIGHT = "weight"
    QUALITY_CHECK = "quality_check"
    BUILD_INPUT = "build_input"
    FIT = "fit"
    AGGREGATE = "aggregate"
    OUTPUT = "output"


@dataclass
class StepResult:
    """Result from a pipeline step."""
    stage: PipelineStage
    success: bool
    started_at: datetime
    completed_at: datetime
    records_processed: int = 0
    errors: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    exception: Optional[BaseException] = None

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


@dataclass
class PipelineResult:
    """Result from full pipeline run."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    steps: list[StepResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(s.success for s in self.steps)

    @property
    def total_duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def failed_step(self) -> Optional[StepResult]:
        return next((s for s in self.steps if not s.success), None)

    def add_step(self, step: StepResult) -> None:
        self.steps.append(step)

    def raise_for_failure(self) -> None:
        """Re-raise the exception of the first failed step."""
        failed = self.failed_step
        if failed is None:
            return
        if failed.exception is not None:
            raise failed.exception
        raise RuntimeError(f"Step {failed.stage.value} failed: {'; '.join(failed.errors)}")

    def summary(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "duration_seconds": self.total_duration_seconds,
            "steps": [
                {
                    "stage": s.stage.value,
                    "success": s.success,
                    "duration": s.duration_seconds,
                    "records": s.records_processed,
                    "errors": len(s.errors),
                }
                for s in self.steps
            ],
        }


class PipelineStep(ABC):
    """Base class for pipeline steps."""

    stage: PipelineStage

    @abstractmethod
    def run(self, context: dict[str, Any]) -> StepResult:
        """Execute the step."""
        pass

    def _result(self, started: datetime, records: int, **metadata: Any) -> StepResult:
        return StepResult(
            stage=self.stage,
            success=True,
            started_at=started,
            completed_at=now_utc(),
            records_processed=records,
            metadata=metadata,
        )


class Pipeline:
    """
    Orchestrates pipeline execution.

    Usage:
        pipeline = Pipeline()
        pipeline.add_step(LoadStep())
        pipeline.add_step(WeightStep())
        pipeline.add_step(FitStep(config))
        result = pipeline.run()
        result.raise_for_failure()
    """

    def __init__(self, name: str = "default"):
        self.name = name
        self.steps: list[PipelineStep] = []
        self.context: dict[str, Any] = {}

    def add_step(self, step: PipelineStep) -> "Pipeline":
        """Add a step to the pipeline. Returns self for chaining."""
        self.steps.append(step)
        return self

    def run(self, stop_on_error: bool = True) -> PipelineResult:
        """
        Execute all pipeline steps.

        A failing step is recorded with its exception; callers surface it
        through PipelineResult.raise_for_failure().

        Args:
            stop_on_error: If True, stop on first error

        Returns:
            Pipeline result with all step outcomes
        """
        result = PipelineResult(started_at=now_utc())

        logger.info(f"Starting pipeline '{self.name}' with {len(self.steps)} steps")

        for step in self.steps:
            logger.info(f"Running step: {step.stage.value}")
            started = now_utc()

            try:
                step_result = step.run(self.context)
            except Exception as e:
                step_result = StepResult(
                    stage=step.stage,
                    success=False,
                    started_at=started,
                    completed_at=now_utc(),
                    errors=[str(e)],
                    exception=e,
                )
                logger.error(f"Step {step.stage.value} failed: {type(e).__name__}: {e}")

            result.add_step(step_result)

            if not step_result.success and stop_on_error:
                logger.error(f"Pipeline stopped due to error in {step.stage.value}")
                break

            if step_result.success:
                logger.info(
                    f"Step {step.stage.value} completed: "
                    f"{step_result.records_processed} records in {step_result.duration_seconds:.2f}s"
                )

        result.completed_at = now_utc()
        logger.info(
            f"Pipeline '{self.name}' completed: "
            f"{'SUCCESS' if result.success else 'FAILED'} "
            f"in {result.total_duration_seconds:.2f}s"
        )

        return result


# =============================================================================
# Built-in Steps
# =============================================================================

class LoadStep(PipelineStep):
    """Load results and schedules into a training set."""

    stage = PipelineStage.LOAD

    def __init__(
        self,
        results_file: Optional[Path] = None,
        schedule_files: Optional[Mapping[str, str]] = None,
        history_start: Optional[date] = None,
        min_team_matches: Optional[int] = None,
        historical: Optional[Sequence] = None,
        schedule: Optional[Sequence] = None,
    ):
        self.results_file = results_file
        self.schedule_files = schedule_files
        self.history_start = history_start
        self.min_team_matches = min_team_matches
        self.historical = historical
        self.schedule = schedule

    def run(self, context: dict[str, Any]) -> StepResult:
        from intl_ratings.data.ingestion import (
            assemble_training_set,
            load_results,
            load_schedules,
        )

        started = now_utc()

        historical = self.historical
        if historical is None:
            historical = load_results(self.results_file)
        schedule = self.schedule
        if schedule is None:
            schedule = load_schedules(self.schedule_files)

        training_set = assemble_training_set(
            historical,
            schedule,
            start=self.history_start,
            min_matches=self.min_team_matches,
        )
        context["training_set"] = training_set

        return self._result(
            started,
            training_set.n_matches,
            historical_rows=training_set.n_historical_rows,
            qualified=training_set.n_qualified,
            schedule=training_set.n_schedule,
        )


class WeightStep(PipelineStep):
    """Register teams and weight every training match."""

    stage = PipelineStage.WEIGHT

    def run(self, context: dict[str, Any]) -> StepResult:
        from intl_ratings.features import TeamRegistry, WeightingPolicy

        started = now_utc()
        matches = context["training_set"].matches

        registry = TeamRegistry.from_matches(matches)
        policy = WeightingPolicy.from_matches(matches)
        weighted = policy.apply(matches)

        context["registry"] = registry
        context["weighting_policy"] = policy
        context["weighted"] = weighted

        return self._result(
            started,
            len(weighted),
            num_teams=registry.num_teams,
            date_start=str(policy.date_range.start),
            date_end=str(policy.date_range.end),
        )


class QualityCheckStep(PipelineStep):
    """Run data integrity checks on the weighted training set."""

    stage = PipelineStage.QUALITY_CHECK

    def __init__(self, fail_on_errors: bool = True):
        self.fail_on_errors = fail_on_errors

    def run(self, context: dict[str, Any]) -> StepResult:
        from intl_ratings.data.quality import run_quality_checks

        started = now_utc()
        report = run_quality_checks(context["weighted"], context["registry"])
        context["quality_report"] = report

        if self.fail_on_errors:
            report.raise_for_errors()

        return self._result(
            started,
            report.total_matches,
            error_count=report.error_count,
            warning_count=report.warning_count,
        )


class BuildInputStep(PipelineStep):
    """Flatten weighted matches into model arrays."""

    stage = PipelineStage.BUILD_INPUT

    def run(self, context: dict[str, Any]) -> StepResult:
        from intl_ratings.bayesian.model import ModelInput

        started = now_utc()
        model_input = ModelInput.from_weighted(context["weighted"], context["registry"])
        context["model_input"] = model_input

        return self._result(started, model_input.num_games, num_teams=model_input.num_teams)


class FitStep(PipelineStep):
    """Sample the posterior and gate it on convergence."""

    stage = PipelineStage.FIT

    def __init__(self, config=None):
        self.config = config

    def run(self, context: dict[str, Any]) -> StepResult:
        from intl_ratings.bayesian.model import TeamRatingModel

        started = now_utc()
        model = TeamRatingModel(self.config)
        model.fit(context["model_input"])

        context["model"] = model
        diagnostics = model.get_diagnostics()
        context["diagnostics"] = diagnostics

        return self._result(
            started,
            model.config.n_chains * model.config.n_draws,
            **diagnostics,
        )


class AggregateStep(PipelineStep):
    """Reduce posterior draws to the rating table."""

    stage = PipelineStage.AGGREGATE

    def run(self, context: dict[str, Any]) -> StepResult:
        from intl_ratings.bayesian.ratings import RatingAggregator

        started = now_utc()
        draws = context["model"].get_posterior_draws()
        ratings = RatingAggregator(context["registry"]).aggregate(draws)
        context["ratings"] = ratings

        return self._result(started, len(ratings))


class OutputStep(PipelineStep):
    """Write the rating table and the fitted trace."""

    stage = PipelineStage.OUTPUT

    def __init__(self, ratings_file: Path, posterior_file: Path):
        self.ratings_file = Path(ratings_file)
        self.posterior_file = Path(posterior_file)

    def run(self, context: dict[str, Any]) -> StepResult:
        from intl_ratings.bayesian.ratings import write_ratings

        started = now_utc()
        ratings = context["ratings"]

        context["ratings_file"] = write_ratings(ratings, self.ratings_file)
        context["posterior_file"] = context["model"].save(self.posterior_file)

        return self._result(
            started,
            len(ratings),
            ratings_file=str(self.ratings_file),
            posterior_file=str(self.posterior_file),
        )
