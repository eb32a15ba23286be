"""
Data ingestion for historical results and tournament schedules.

Handles:
- Reading the results CSV and tournament schedule CSVs
- Normalizing schedule fixtures into matches
- Applying the retention window
- Enforcing the minimum-appearances rule for historical teams
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

import pandas as pd
from pydantic import ValidationError

from intl_ratings.config import settings
from intl_ratings.constants import RESULTS_COLUMNS, SCHEDULE_COLUMNS
from intl_ratings.data.models import Match, ScheduleFixture
from intl_ratings.exceptions import DataIntegrityError
from intl_ratings.utils import get_logger

logger = get_logger("data.ingestion")


# =============================================================================
# File Readers
# =============================================================================

def _read_csv(path: Path, required: Sequence[str]) -> pd.DataFrame:
    """Read a CSV and check it carries the required columns."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    df = pd.read_csv(path)
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise DataIntegrityError(
            f"{path} is missing required columns: {', '.join(missing)}"
        )
    # Blank cells become None instead of NaN
    return df.astype(object).where(pd.notna(df), None)


def _to_records(df: pd.DataFrame, model, source: Path) -> list:
    records = []
    for row_number, row in enumerate(df.to_dict(orient="records"), start=2):
        try:
            records.append(model.model_validate(row))
        except ValidationError as e:
            raise DataIntegrityError(
                f"Invalid row {row_number} in {source}: {e.errors()[0]['msg']}"
            ) from e
    return records


def load_results(path: Optional[Path] = None) -> list[Match]:
    """
    Load the historical results file.

    Args:
        path: CSV path (defaults to config)

    Returns:
        All rows as matches, played or not
    """
    path = Path(path or settings.results_file)
    df = _read_csv(path, RESULTS_COLUMNS)
    matches = _to_records(df[list(RESULTS_COLUMNS)], Match, path)
    logger.info(f"Loaded {len(matches)} historical rows from {path}")
    return matches


def load_schedule(path: Path, tournament: str) -> list[Match]:
    """
    Load a tournament schedule and normalize its fixtures.

    Args:
        path: Schedule CSV path
        tournament: Label given to every fixture in the file

    Returns:
        Played fixtures as matches (unplayed ones are dropped)
    """
    path = Path(path)
    df = _read_csv(path, SCHEDULE_COLUMNS)
    fixtures: list[ScheduleFixture] = _to_records(df[list(SCHEDULE_COLUMNS)], ScheduleFixture, path)

    played = [f.to_match(tournament) for f in fixtures if f.is_played]
    logger.info(
        f"Loaded {len(fixtures)} fixtures from {path} ({tournament}), "
        f"{len(played)} played"
    )
    return played


def load_schedules(schedule_files: Optional[Mapping[str, str]] = None) -> list[Match]:
    """Load every configured schedule file."""
    schedule_files = schedule_files if schedule_files is not None else settings.schedule_files
    matches: list[Match] = []
    for path, tournament in schedule_files.items():
        matches.extend(load_schedule(Path(path), tournament))
    return matches


# =============================================================================
# Filtering
# =============================================================================

def filter_window(matches: Iterable[Match], start: date) -> list[Match]:
    """Keep scored matches played on or after the start date."""
    return [m for m in matches if m.has_scores and m.date >= start]


def count_appearances(matches: Iterable[Match]) -> Counter:
    """Matches played per team, home or away."""
    counts: Counter = Counter()
    for m in matches:
        counts[m.home_team] += 1
        counts[m.away_team] += 1
    return counts


def qualifying_teams(matches: Sequence[Match], min_matches: int) -> set[str]:
    """Teams with at least min_matches appearances."""
    counts = count_appearances(matches)
    return {team for team, n in counts.items() if n >= min_matches}


def filter_qualified(matches: Sequence[Match], min_matches: int) -> list[Match]:
    """Keep matches where both teams individually qualify."""
    keep = qualifying_teams(matches, min_matches)
    return [m for m in matches if m.home_team in keep and m.away_team in keep]


@dataclass
class TrainingSet:
    """The final match set handed to the rating core."""

    matches: list[Match]
    n_historical_rows: int = 0
    n_windowed: int = 0
    n_qualified: int = 0
    n_schedule: int = 0
    qualified_teams: set[str] = field(default_factory=set)

    @property
    def n_matches(self) -> int:
        return len(self.matches)

    @property
    def teams(self) -> set[str]:
        return {t for m in self.matches for t in m.teams}


def assemble_training_set(
    historical: Sequence[Match],
    schedule: Sequence[Match] = (),
    start: Optional[date] = None,
    min_matches: Optional[int] = None,
) -> TrainingSet:
    """
    Build the training set from historical results and schedule matches.

    Historical matches are windowed and filtered to qualifying teams;
    played schedule matches are appended without the appearance threshold.

    Raises:
        DataIntegrityError: If nothing is left to train on
    """
    start = start or settings.history_start
    min_matches = min_matches if min_matches is not None else settings.min_team_matches

    windowed = filter_window(historical, start)
    teams = qualifying_teams(windowed, min_matches)
    qualified = filter_qualified(windowed, min_matches)
    played_schedule = [m for m in schedule if m.has_scores]

    logger.info(
        f"Historical: {len(historical)} rows, {len(windowed)} in window since {start}, "
        f"{len(qualified)} between {len(teams)} teams with >= {min_matches} matches"
    )

    if not qualified and not played_schedule:
        raise DataIntegrityError(
            f"No training matches left after filtering "
            f"(window start {start}, min matches {min_matches})"
        )

    matches = qualified + played_schedule
    logger.info(f"Training set: {len(matches)} matches ({len(played_schedule)} from schedules)")

    return TrainingSet(
        matches=matches,
        n_historical_rows=len(historical),
        n_windowed=len(windowed),
        n_qualified=len(qualified),
        n_schedule=len(played_schedule),
        qualified_teams=teams,
    )


def load_training_set(
    results_file: Optional[Path] = None,
    schedule_files: Optional[Mapping[str, str]] = None,
    start: Optional[date] = None,
    min_matches: Optional[int] = None,
) -> TrainingSet:
    """Read every configured input and assemble the training set."""
    historical = load_results(results_file)
    schedule = load_schedules(schedule_files)
    return assemble_training_set(historical, schedule, start=start, min_matches=min_matches)
