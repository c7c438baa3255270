from app.models.match import Match
from app.models.team import Team
from app.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Team",
    "Match",
]
