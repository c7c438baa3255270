from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from app.utils.clock import utcnow

if TYPE_CHECKING:
    from app.models.tournament import Tournament


class Match(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "match_code", name="uq_tournament_match_code"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    match_code: str  # "match-1".. in generation order; the engine's match id
    stage: str  # "group" | "playoff"
    round_number: int  # 0 for group matches
    format: str  # "Bo1" | "Bo2" | "Bo3" | "Bo5" | "Bo7"
    name: str
    group_label: Optional[str] = Field(default=None)  # "A".."H" for group matches
    bracket_side: Optional[str] = Field(default=None)  # "upper" | "lower" | "grand_final"

    # Team slots: a Team.team_code, a seed placeholder id ("seed-0"), or null
    team1_code: Optional[str] = Field(default=None)
    team2_code: Optional[str] = Field(default=None)

    # Placeholder text, set only while the slot holds a seed placeholder ("1st Group A")
    placeholder_side_1: Optional[str] = Field(default=None)
    placeholder_side_2: Optional[str] = Field(default=None)

    # Advancement edges (match codes within the same tournament)
    next_match_code: Optional[str] = Field(default=None)
    loser_match_code: Optional[str] = Field(default=None)

    # Runtime
    score1: Optional[int] = Field(default=None)
    score2: Optional[int] = Field(default=None)
    winner_code: Optional[str] = Field(default=None)
    start_time: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")
