from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlmodel import Session, select

from app.database import get_session
from app.models.team import Team as TeamRow
from app.models.tournament import Tournament
from app.services.bracket_errors import BracketEngineError
from app.services.bracket_generator import generate, shuffle_teams, teams_in_order
from app.services.bracket_types import BracketConfig, BracketFormat, MatchFormat
from app.services.sql_match_store import SqlMatchStore
from app.services.tournament_lifecycle import TournamentStatus, transition
from app.utils.clock import utcnow
from app.utils.engine_guards import http_error, require_tournament

router = APIRouter()


class TeamEntry(BaseModel):
    name: str
    logo_url: Optional[str] = None


class BracketConfigIn(BaseModel):
    format: BracketFormat = BracketFormat.single_elimination
    has_group_stage: bool = False
    group_stage_format: MatchFormat = MatchFormat.bo1
    upper_bracket_format: MatchFormat = MatchFormat.bo3
    lower_bracket_format: MatchFormat = MatchFormat.bo1
    grand_final_format: MatchFormat = MatchFormat.bo5

    def to_config(self) -> BracketConfig:
        return BracketConfig(
            format=self.format,
            has_group_stage=self.has_group_stage,
            group_stage_format=self.group_stage_format,
            upper_bracket_format=self.upper_bracket_format,
            lower_bracket_format=self.lower_bracket_format,
            grand_final_format=self.grand_final_format,
        )


class TournamentCreate(BaseModel):
    name: str
    description: Optional[str] = None
    teams: List[TeamEntry] = Field(min_length=2)
    bracket_config: BracketConfigIn = Field(default_factory=BracketConfigIn)
    shuffle: bool = True
    submit_for_approval: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class TournamentStatusUpdate(BaseModel):
    status: TournamentStatus


class TournamentResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    status: str
    bracket_config: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(tournament_data: TournamentCreate, session: Session = Depends(get_session)):
    """Create a tournament, order its teams and generate every match"""
    config = tournament_data.bracket_config.to_config()
    entries = [t.model_dump() for t in tournament_data.teams]
    try:
        teams = shuffle_teams(entries) if tournament_data.shuffle else teams_in_order(entries)
        matches = generate(teams, config)
    except BracketEngineError as e:
        raise http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    status = TournamentStatus.pending_approval if tournament_data.submit_for_approval else TournamentStatus.draft
    tournament = Tournament(
        name=tournament_data.name,
        description=tournament_data.description,
        status=status.value,
        bracket_config=config.to_dict(),
    )
    session.add(tournament)
    session.flush()  # Get the ID

    for position, team in enumerate(teams):
        session.add(
            TeamRow(
                tournament_id=tournament.id,
                team_code=team.id,
                name=team.name,
                logo_url=team.logo_url,
                position=position,
            )
        )
    SqlMatchStore(session).add_matches(tournament.id, matches)

    session.refresh(tournament)
    return tournament


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament by ID"""
    return require_tournament(session, tournament_id)


@router.post("/tournaments/{tournament_id}/status", response_model=TournamentResponse)
def update_tournament_status(
    tournament_id: int, payload: TournamentStatusUpdate, session: Session = Depends(get_session)
):
    """Move a tournament through draft / approval / play"""
    tournament = require_tournament(session, tournament_id)
    try:
        new_status = transition(TournamentStatus(tournament.status), payload.status)
    except BracketEngineError as e:
        raise http_error(e)

    tournament.status = new_status.value
    tournament.updated_at = utcnow()
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament
