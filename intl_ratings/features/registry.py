"""
Team registry: stable integer ids for national teams.

Ids run from 1 to num_teams with no gaps and are assigned in lexicographic
order of team name, so the same team set always produces the same mapping.
"""

from typing import Dict, Iterable, Iterator, List, Sequence

from intl_ratings.data.models import Match
from intl_ratings.exceptions import DataIntegrityError
from intl_ratings.utils import get_logger

logger = get_logger("features.registry")


class TeamRegistry:
    """
    Bijection between team names and ids in [1, num_teams].

    Usage:
        registry = TeamRegistry.from_matches(matches)
        registry.id_of("Brazil")      # -> 7
        registry.name_of(7)           # -> "Brazil"
    """

    def __init__(self, teams: Iterable[str]):
        names = sorted(set(teams))
        if not names:
            raise DataIntegrityError("Cannot build a team registry without teams")

        self._names: List[str] = names
        self._ids: Dict[str, int] = {name: i for i, name in enumerate(names, start=1)}

    @classmethod
    def from_matches(cls, matches: Sequence[Match]) -> "TeamRegistry":
        """Register exactly the teams appearing in the match set."""
        registry = cls(t for m in matches for t in m.teams)
        logger.info(f"Registered {len(registry)} teams from {len(matches)} matches")
        return registry

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, team: object) -> bool:
        return team in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TeamRegistry):
            return NotImplemented
        return self._names == other._names

    def __repr__(self) -> str:
        return f"TeamRegistry(num_teams={len(self)})"

    @property
    def num_teams(self) -> int:
        return len(self._names)

    @property
    def names(self) -> List[str]:
        """Team names in id order."""
        return list(self._names)

    @property
    def ids(self) -> List[int]:
        return list(range(1, len(self._names) + 1))

    def id_of(self, team: str) -> int:
        """
        Look up a team's id.

        Raises:
            DataIntegrityError: If the team was never registered
        """
        try:
            return self._ids[team]
        except KeyError:
            raise DataIntegrityError(f"Team not registered: {team}", team=team) from None

    def name_of(self, team_id: int) -> str:
        if not 1 <= team_id <= len(self._names):
            raise DataIntegrityError(
                f"Team id {team_id} outside [1, {len(self._names)}]"
            )
        return self._names[team_id - 1]

    def as_dict(self) -> Dict[str, int]:
        return dict(self._ids)
