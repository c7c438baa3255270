"""
Tournament status transitions.

draft -> pending_approval -> approved -> ongoing -> completed
pending_approval -> rejected -> pending_approval

Results are accepted only while a tournament is approved or ongoing. The
first recorded result moves approved -> ongoing; completing the terminal
playoff match moves ongoing -> completed.
"""
from enum import Enum
from typing import Dict, FrozenSet

from app.services.bracket_errors import BracketEngineError, TournamentNotAccepting


class TournamentStatus(str, Enum):
    draft = "draft"
    pending_approval = "pending_approval"
    approved = "approved"
    rejected = "rejected"
    ongoing = "ongoing"
    completed = "completed"


ALLOWED_TRANSITIONS: Dict[TournamentStatus, FrozenSet[TournamentStatus]] = {
    TournamentStatus.draft: frozenset({TournamentStatus.pending_approval}),
    TournamentStatus.pending_approval: frozenset({TournamentStatus.approved, TournamentStatus.rejected}),
    TournamentStatus.rejected: frozenset({TournamentStatus.pending_approval}),
    TournamentStatus.approved: frozenset({TournamentStatus.ongoing}),
    TournamentStatus.ongoing: frozenset({TournamentStatus.completed}),
    TournamentStatus.completed: frozenset(),
}

ACCEPTING_RESULTS = frozenset({TournamentStatus.approved, TournamentStatus.ongoing})


class InvalidStatusTransition(BracketEngineError):
    code = "INVALID_STATUS_TRANSITION"


def transition(current: TournamentStatus, target: TournamentStatus) -> TournamentStatus:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(f"Cannot move a tournament from {current.value} to {target.value}")
    return target


def ensure_accepting_results(status: TournamentStatus) -> None:
    if status not in ACCEPTING_RESULTS:
        raise TournamentNotAccepting(
            f"Results can only be entered for approved or ongoing tournaments (status is {status.value})"
        )


def status_after_result(status: TournamentStatus, completes_tournament: bool) -> TournamentStatus:
    """Status once a result has been committed to a tournament in `status`."""
    if status is TournamentStatus.approved:
        status = TournamentStatus.ongoing
    if completes_tournament and status is TournamentStatus.ongoing:
        status = TournamentStatus.completed
    return status
