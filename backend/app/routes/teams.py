"""
Team Management API Routes
Teams are created with their tournament; afterwards only the name and logo
can change. Matches reference teams by code, so edits show on every match.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from app.database import get_session
from app.models.team import Team
from app.utils.engine_guards import require_tournament

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class TeamUpdateRequest(BaseModel):
    name: Optional[str] = None
    logo_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("name must not be empty")
        return v.strip() if v is not None else v


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    team_code: str
    tournament_id: int
    name: str
    logo_url: Optional[str] = None
    position: int
    created_at: datetime


# ============================================================================
# Team Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/teams", response_model=List[TeamResponse])
def get_teams(tournament_id: int, session: Session = Depends(get_session)):
    """Get all teams for a tournament in bracket order"""
    require_tournament(session, tournament_id)
    return session.exec(select(Team).where(Team.tournament_id == tournament_id).order_by(Team.position)).all()


@router.patch("/tournaments/{tournament_id}/teams/{team_code}", response_model=TeamResponse)
def update_team(
    tournament_id: int,
    team_code: str,
    request: TeamUpdateRequest,
    session: Session = Depends(get_session),
):
    """Rename a team or change its logo. Match structure is never touched."""
    require_tournament(session, tournament_id)
    team = session.exec(
        select(Team).where(Team.tournament_id == tournament_id, Team.team_code == team_code)
    ).first()
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")

    update_data = request.model_dump(exclude_unset=True)
    if "name" in update_data and update_data["name"] is not None:
        team.name = update_data["name"]
    if "logo_url" in update_data:
        team.logo_url = (update_data["logo_url"] or "").strip() or None

    session.add(team)
    session.commit()
    session.refresh(team)
    return team
