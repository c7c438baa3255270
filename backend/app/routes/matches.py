"""
Match runtime: result entry, scheduling and group standings.

Submitting a result completes the match and advancement fills downstream
team slots (winner, loser in double elimination, playoff seeding once the
group stage is complete) in a single conditional write.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, field_validator
from sqlmodel import Session

from app.database import get_session
from app.services.advancement_service import record_match_result
from app.services.bracket_errors import BracketEngineError
from app.services.bracket_types import BracketMatch, MatchStage
from app.services.group_standings import standings
from app.services.match_graph import MatchGraph
from app.services.score_parser import require_score
from app.services.sql_match_store import SqlMatchStore
from app.services.tournament_lifecycle import TournamentStatus, ensure_accepting_results, status_after_result
from app.utils.clock import as_utc, utcnow
from app.utils.engine_guards import http_error, require_tournament

router = APIRouter()


class SlotResponse(BaseModel):
    id: str
    name: str
    logo_url: Optional[str] = None
    placeholder: bool = False


class MatchResponse(BaseModel):
    id: str
    round: int
    stage: str
    format: str
    name: str
    team1: Optional[SlotResponse] = None
    team2: Optional[SlotResponse] = None
    score1: Optional[int] = None
    score2: Optional[int] = None
    winner_id: Optional[str] = None
    start_time: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    next_match_id: Optional[str] = None
    loser_match_id: Optional[str] = None
    group: Optional[str] = None
    bracket: Optional[str] = None
    state: str


class MatchResultUpdate(BaseModel):
    score1: Optional[int] = None
    score2: Optional[int] = None
    # Alternative to score1/score2: "2-1" or {"display": "2-1"}
    score: Optional[Union[str, Dict[str, Any]]] = None
    start_time: Optional[datetime] = None

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v):
        # Times without an offset are UTC
        return as_utc(v)


class MatchResultResponse(BaseModel):
    match: MatchResponse
    advanced: List[MatchResponse] = []
    warnings: List[str] = []
    tournament_status: str


class StandingTeam(BaseModel):
    id: str
    name: str
    logo_url: Optional[str] = None


class StandingRowResponse(BaseModel):
    team: StandingTeam
    wins: int
    losses: int
    played: int
    point_differential: int


class GroupStandingsResponse(BaseModel):
    group: str
    rows: List[StandingRowResponse]


def _match_response(match: BracketMatch) -> MatchResponse:
    return MatchResponse(**match.to_dict())


@router.get("/tournaments/{tournament_id}/matches", response_model=List[MatchResponse])
def list_matches(
    tournament_id: int,
    stage: Optional[MatchStage] = Query(None),
    session: Session = Depends(get_session),
):
    """All matches, group stage first, then by round and generation order"""
    require_tournament(session, tournament_id)
    graph = MatchGraph(SqlMatchStore(session).get_matches(tournament_id))
    return [_match_response(m) for m in graph.ordered() if stage is None or m.stage is stage]


@router.get("/tournaments/{tournament_id}/matches/{match_id}", response_model=MatchResponse)
def get_match(tournament_id: int, match_id: str, session: Session = Depends(get_session)):
    require_tournament(session, tournament_id)
    try:
        return _match_response(SqlMatchStore(session).get_match(tournament_id, match_id))
    except BracketEngineError as e:
        raise http_error(e)


@router.patch("/tournaments/{tournament_id}/matches/{match_id}", response_model=MatchResultResponse)
def update_match_result(
    tournament_id: int,
    match_id: str,
    payload: MatchResultUpdate,
    session: Session = Depends(get_session),
) -> MatchResultResponse:
    """Record a result (or just a start time) for a match.

    Both scores 0 or omitted with a start_time only schedules the match.
    """
    tournament = require_tournament(session, tournament_id)
    status = TournamentStatus(tournament.status)

    def stage_status(result):
        # Committed by the store together with the result batch
        if not result.updated_match.is_completed:
            return
        new_status = status_after_result(status, result.completes_tournament)
        if new_status is not status:
            tournament.status = new_status.value
            tournament.updated_at = utcnow()
            session.add(tournament)

    score1, score2 = payload.score1, payload.score2
    try:
        if payload.score is not None:
            parsed = require_score(payload.score)
            score1, score2 = parsed.score1, parsed.score2
        if score1 or score2:
            ensure_accepting_results(status)
        result = record_match_result(
            SqlMatchStore(session),
            tournament_id,
            match_id,
            score1,
            score2,
            start_time=payload.start_time,
            before_commit=stage_status,
        )
    except BracketEngineError as e:
        raise http_error(e)

    store = SqlMatchStore(session)
    advanced_ids = []
    for update in result.downstream_updates:
        if update.match_id not in advanced_ids:
            advanced_ids.append(update.match_id)
    return MatchResultResponse(
        match=_match_response(store.get_match(tournament_id, match_id)),
        advanced=[_match_response(store.get_match(tournament_id, mid)) for mid in advanced_ids],
        warnings=result.warnings,
        tournament_status=tournament.status,
    )


@router.get("/tournaments/{tournament_id}/standings", response_model=List[GroupStandingsResponse])
def get_standings(tournament_id: int, session: Session = Depends(get_session)):
    """Group standings ranked by wins, point differential, head-to-head, team id"""
    require_tournament(session, tournament_id)
    matches = SqlMatchStore(session).get_matches(tournament_id)
    table = standings(m for m in matches if m.stage is MatchStage.group)
    if not table:
        raise HTTPException(status_code=404, detail="Tournament has no group stage")
    return [
        GroupStandingsResponse(group=letter, rows=[StandingRowResponse(**row.to_dict()) for row in rows])
        for letter, rows in table.items()
    ]
