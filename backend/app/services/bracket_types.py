"""
Bracket engine data model.

Plain, JSON-serializable records shared by the generator, the standings
calculator, the advancement engine and every match store:

- Team / SeedPlaceholder: the two kinds of slot occupant
- BracketConfig: formats chosen at tournament creation (immutable)
- BracketMatch: one node of the match graph with its advancement edges
- MatchUpdate: a partial, conditional write against one match
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

SEED_PREFIX = "seed-"


class MatchStage(str, Enum):
    group = "group"
    playoff = "playoff"


class BracketSide(str, Enum):
    upper = "upper"
    lower = "lower"
    grand_final = "grand_final"


class BracketFormat(str, Enum):
    single_elimination = "Single Elimination"
    double_elimination = "Double Elimination"


class MatchFormat(str, Enum):
    bo1 = "Bo1"
    bo2 = "Bo2"
    bo3 = "Bo3"
    bo5 = "Bo5"
    bo7 = "Bo7"

    @property
    def games(self) -> int:
        return int(self.value[2:])

    @property
    def wins_required(self) -> int:
        # Bo2 has no decider, a winner needs both games
        if self is MatchFormat.bo2:
            return 2
        return self.games // 2 + 1


class MatchState(str, Enum):
    EMPTY = "EMPTY"
    SCHEDULED = "SCHEDULED"
    TIME_SET = "TIME_SET"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    logo_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "logo_url": self.logo_url}


@dataclass(frozen=True)
class SeedPlaceholder:
    """Unresolved qualification slot, e.g. "1st Group A"."""

    id: str
    name: str

    @property
    def logo_url(self) -> None:
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "placeholder": True}


Slot = Union[Team, SeedPlaceholder, None]


def is_seed_placeholder(occupant: Slot) -> bool:
    return isinstance(occupant, SeedPlaceholder)


@dataclass(frozen=True)
class BracketConfig:
    format: BracketFormat = BracketFormat.single_elimination
    has_group_stage: bool = False
    group_stage_format: MatchFormat = MatchFormat.bo1
    upper_bracket_format: MatchFormat = MatchFormat.bo3
    lower_bracket_format: MatchFormat = MatchFormat.bo1
    grand_final_format: MatchFormat = MatchFormat.bo5

    @property
    def is_double_elimination(self) -> bool:
        return self.format is BracketFormat.double_elimination

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": self.format.value,
            "has_group_stage": self.has_group_stage,
            "group_stage_format": self.group_stage_format.value,
            "upper_bracket_format": self.upper_bracket_format.value,
            "lower_bracket_format": self.lower_bracket_format.value,
            "grand_final_format": self.grand_final_format.value,
        }


@dataclass
class BracketMatch:
    id: str
    round: int
    stage: MatchStage
    format: MatchFormat
    name: str
    team1: Slot = None
    team2: Slot = None
    score1: Optional[int] = None
    score2: Optional[int] = None
    winner_id: Optional[str] = None
    start_time: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    next_match_id: Optional[str] = None
    loser_match_id: Optional[str] = None
    group: Optional[str] = None
    bracket: Optional[BracketSide] = None

    @property
    def is_playable(self) -> bool:
        """Both slots hold real teams (not seed placeholders) and no result is recorded."""
        return isinstance(self.team1, Team) and isinstance(self.team2, Team) and self.winner_id is None

    @property
    def is_completed(self) -> bool:
        return self.winner_id is not None

    @property
    def state(self) -> MatchState:
        if self.winner_id is not None:
            return MatchState.COMPLETED
        if self.team1 is None or self.team2 is None:
            return MatchState.EMPTY
        if self.start_time is None:
            return MatchState.SCHEDULED
        return MatchState.TIME_SET

    def slot_id(self, slot: str) -> Optional[str]:
        occupant = getattr(self, slot)
        return occupant.id if occupant is not None else None

    def first_empty_slot(self) -> Optional[str]:
        if self.team1 is None:
            return "team1"
        if self.team2 is None:
            return "team2"
        return None

    def with_fields(self, fields: Dict[str, Any]) -> "BracketMatch":
        return replace(self, **fields)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "round": self.round,
            "stage": self.stage.value,
            "format": self.format.value,
            "name": self.name,
            "team1": self.team1.to_dict() if self.team1 else None,
            "team2": self.team2.to_dict() if self.team2 else None,
            "score1": self.score1,
            "score2": self.score2,
            "winner_id": self.winner_id,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "next_match_id": self.next_match_id,
            "loser_match_id": self.loser_match_id,
            "group": self.group,
            "bracket": self.bracket.value if self.bracket else None,
            "state": self.state.value,
        }


@dataclass
class MatchUpdate:
    """
    Partial write against one match.

    `fields` maps BracketMatch attribute names to new values.
    `expected` maps attribute names to the value the stored record must still
    hold for the write to land; team slots compare by occupant id (None = empty).
    """

    match_id: str
    fields: Dict[str, Any]
    expected: Dict[str, Any] = field(default_factory=dict)
