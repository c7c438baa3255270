"""
Route guards for the bracket engine.

- Tournament existence (404)
- Engine error -> HTTPException translation, detail prefixed with the error code
"""

from fastapi import HTTPException
from sqlmodel import Session

from app.models.tournament import Tournament
from app.services.bracket_errors import (
    BracketEngineError,
    InvalidScore,
    MatchNotFound,
    MatchNotPlayable,
    NothingToUpdate,
    PersistenceConflict,
    TournamentNotAccepting,
    UnsupportedTeamCount,
)
from app.services.tournament_lifecycle import InvalidStatusTransition

STATUS_BY_ERROR = {
    MatchNotFound: 404,
    MatchNotPlayable: 409,
    PersistenceConflict: 409,
    TournamentNotAccepting: 409,
    InvalidStatusTransition: 409,
    InvalidScore: 422,
    NothingToUpdate: 422,
    UnsupportedTeamCount: 422,
}


def require_tournament(session: Session, tournament_id: int) -> Tournament:
    """
    Load a tournament or raise 404.

    Raises:
        HTTPException 404: Tournament not found
    """
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def http_error(error: BracketEngineError) -> HTTPException:
    status_code = 400
    for error_type, code in STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            status_code = code
            break
    return HTTPException(status_code=status_code, detail=f"{error.code}: {error.message}")
