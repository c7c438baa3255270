"""
Bracket engine errors.

Every failure the engine can report is recoverable by the caller: the match
state is left unchanged and the caller is expected to reload and retry.
Routes translate these into HTTP errors using the `code` attribute.
"""
from typing import Optional


class BracketEngineError(Exception):
    """Base class for all engine failures"""

    code = "BRACKET_ENGINE_ERROR"

    def __init__(self, message: str, match_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.match_id = match_id


class InvalidScore(BracketEngineError):
    """Tie, negative, or magnitude inconsistent with the best-of format"""

    code = "INVALID_SCORE"


class MatchNotPlayable(BracketEngineError):
    """Match is missing a team or already completed"""

    code = "MATCH_NOT_PLAYABLE"


class SlotOccupied(BracketEngineError):
    """Downstream match already has both slots filled. Logged, never raised to callers."""

    code = "SLOT_OCCUPIED"


class NothingToUpdate(BracketEngineError):
    """Neither a score nor a start time was supplied"""

    code = "NOTHING_TO_UPDATE"


class PersistenceConflict(BracketEngineError):
    """A conditional write lost a race with another writer"""

    code = "PERSISTENCE_CONFLICT"


class UnsupportedTeamCount(BracketEngineError):
    """Generation requested for a team count outside the supported table"""

    code = "UNSUPPORTED_TEAM_COUNT"


class MatchNotFound(BracketEngineError):
    code = "MATCH_NOT_FOUND"


class TournamentNotAccepting(BracketEngineError):
    """Results submitted to a tournament that is not approved or ongoing"""

    code = "TOURNAMENT_NOT_ACCEPTING_RESULTS"
