from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from app.utils.clock import utcnow

if TYPE_CHECKING:
    from app.models.tournament import Tournament


class Team(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "team_code", name="uq_tournament_team_code"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    team_code: str  # "team-1".. assigned after shuffling; referenced by Match slots
    name: str
    logo_url: Optional[str] = Field(default=None)
    position: int  # Order after shuffling (0-based)
    created_at: datetime = Field(default_factory=utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="teams")
