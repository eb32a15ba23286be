"""
Data quality checks for the rating training set.

Validates:
- Weights are finite and strictly positive
- Scores are non-negative
- No team plays itself
- Every team is registered
- Duplicate fixtures
- Teams resting on a single observation
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from intl_ratings.data.models import Match, WeightedMatch
from intl_ratings.exceptions import DataIntegrityError
from intl_ratings.features.registry import TeamRegistry
from intl_ratings.utils import get_logger

logger = get_logger("data.quality")


@dataclass
class QualityIssue:
    """Represents a data quality issue."""
    issue_type: str
    severity: str  # "error", "warning", "info"
    match_index: Optional[int]
    description: str
    details: Optional[dict] = None


@dataclass
class QualityReport:
    """Summary of data quality check results."""
    checked_at: datetime
    total_matches: int
    total_teams: int
    issues: list[QualityIssue] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == "error")

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == "warning")

    @property
    def is_healthy(self) -> bool:
        return self.error_count == 0

    def raise_for_errors(self) -> None:
        """Raise DataIntegrityError listing every error-severity issue."""
        errors = [i for i in self.issues if i.severity == "error"]
        if not errors:
            return
        lines = [f"{i.issue_type}: {i.description}" for i in errors[:10]]
        if len(errors) > 10:
            lines.append(f"... and {len(errors) - 10} more")
        first = errors[0].details or {}
        raise DataIntegrityError(
            f"{len(errors)} data integrity error(s):\n  " + "\n  ".join(lines),
            team=first.get("team"),
            match=first.get("match"),
        )


def _describe(match: Match) -> str:
    return f"{match.date} {match.home_team} v {match.away_team} ({match.tournament})"


class DataQualityChecker:
    """
    Runs data quality checks on a weighted training set.
    """

    def __init__(self, registry: TeamRegistry):
        self.registry = registry

    def check_weights(self, weighted: Sequence[WeightedMatch]) -> list[QualityIssue]:
        """Check that every weight is finite and strictly positive."""
        issues = []
        for idx, wm in enumerate(weighted):
            if not math.isfinite(wm.weight) or wm.weight <= 0:
                issues.append(QualityIssue(
                    issue_type="non_positive_weight",
                    severity="error",
                    match_index=idx,
                    description=f"Weight {wm.weight} for {_describe(wm.match)}",
                    details={"match": wm.match, "weight": wm.weight},
                ))
        return issues

    def check_scores(self, matches: Sequence[Match]) -> list[QualityIssue]:
        """Check that training matches carry two non-negative scores."""
        issues = []
        for idx, m in enumerate(matches):
            if not m.has_scores:
                issues.append(QualityIssue(
                    issue_type="missing_score",
                    severity="error",
                    match_index=idx,
                    description=f"Missing score for {_describe(m)}",
                    details={"match": m},
                ))
            elif m.home_score < 0 or m.away_score < 0:
                issues.append(QualityIssue(
                    issue_type="negative_score",
                    severity="error",
                    match_index=idx,
                    description=f"Negative score for {_describe(m)}",
                    details={"match": m},
                ))
        return issues

    def check_self_matches(self, matches: Sequence[Match]) -> list[QualityIssue]:
        """Check that no team is listed on both sides of a match."""
        return [
            QualityIssue(
                issue_type="self_match",
                severity="error",
                match_index=idx,
                description=f"{m.home_team} listed as both sides in {_describe(m)}",
                details={"team": m.home_team, "match": m},
            )
            for idx, m in enumerate(matches)
            if m.home_team == m.away_team
        ]

    def check_registered(self, matches: Sequence[Match]) -> list[QualityIssue]:
        """Check that every team in the match set has an id."""
        issues = []
        reported = set()
        for idx, m in enumerate(matches):
            for team in m.teams:
                if team not in self.registry and team not in reported:
                    reported.add(team)
                    issues.append(QualityIssue(
                        issue_type="unregistered_team",
                        severity="error",
                        match_index=idx,
                        description=f"{team} appears in {_describe(m)} but has no id",
                        details={"team": team, "match": m},
                    ))
        return issues

    def check_duplicate_matches(self, matches: Sequence[Match]) -> list[QualityIssue]:
        """Check for duplicate fixtures (same teams, same date)."""
        counts = Counter(
            (m.date, frozenset(m.teams)) for m in matches
        )
        issues = []
        for (match_date, teams), n in counts.items():
            if n > 1:
                issues.append(QualityIssue(
                    issue_type="duplicate_match",
                    severity="warning",
                    match_index=None,
                    description=f"{n} records for {' v '.join(sorted(teams))} on {match_date}",
                    details={"date": str(match_date), "teams": sorted(teams), "count": n},
                ))
        return issues

    def check_sparse_teams(self, matches: Sequence[Match]) -> list[QualityIssue]:
        """Flag teams whose rating rests on a single match."""
        counts = Counter(t for m in matches for t in m.teams)
        return [
            QualityIssue(
                issue_type="single_match_team",
                severity="warning",
                match_index=None,
                description=f"{team} has a single training match",
                details={"team": team},
            )
            for team, n in sorted(counts.items())
            if n == 1
        ]

    def run_all_checks(self, weighted: Sequence[WeightedMatch]) -> QualityReport:
        """Run all quality checks and return report."""
        matches = [wm.match for wm in weighted]

        issues: list[QualityIssue] = []
        if not matches:
            issues.append(QualityIssue(
                issue_type="empty_training_set",
                severity="error",
                match_index=None,
                description="No matches to train on",
            ))
        issues.extend(self.check_scores(matches))
        issues.extend(self.check_weights(weighted))
        issues.extend(self.check_self_matches(matches))
        issues.extend(self.check_registered(matches))
        issues.extend(self.check_duplicate_matches(matches))
        issues.extend(self.check_sparse_teams(matches))

        report = QualityReport(
            checked_at=datetime.now(),
            total_matches=len(matches),
            total_teams=len(self.registry),
            issues=issues,
        )

        for issue in issues:
            if issue.severity == "warning":
                logger.warning(f"{issue.issue_type}: {issue.description}")
        logger.info(
            f"Quality checks: {report.error_count} errors, "
            f"{report.warning_count} warnings over {report.total_matches} matches"
        )
        return report


def run_quality_checks(
    weighted: Sequence[WeightedMatch],
    registry: TeamRegistry,
) -> QualityReport:
    """Convenience function to run all quality checks."""
    checker = DataQualityChecker(registry)
    return checker.run_all_checks(weighted)
