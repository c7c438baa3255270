"""
Match persistence adapter.

The advancement engine never talks to a database directly; it reads and
writes through a MatchStore. batch_update is all-or-nothing: every
MatchUpdate's `expected` values are checked against the stored record and a
single mismatch aborts the whole batch with PersistenceConflict.

InMemoryMatchStore backs the engine tests; SqlMatchStore (sql_match_store.py)
backs the API.
"""
from __future__ import annotations

import copy
import threading
from typing import Any, Dict, List, Optional, Protocol, Sequence

from app.services.bracket_errors import MatchNotFound, PersistenceConflict
from app.services.bracket_types import BracketMatch, MatchUpdate

TEAM_SLOTS = ("team1", "team2")


class MatchStore(Protocol):
    def get_matches(self, tournament_id: Any) -> List[BracketMatch]:
        ...

    def get_match(self, tournament_id: Any, match_id: str) -> BracketMatch:
        ...

    def update_match(self, tournament_id: Any, match_id: str, fields: Dict[str, Any]) -> BracketMatch:
        ...

    def batch_update(self, tournament_id: Any, updates: Sequence[MatchUpdate]) -> List[BracketMatch]:
        ...

    def add_matches(self, tournament_id: Any, matches: Sequence[BracketMatch]) -> None:
        ...


def current_value(match: BracketMatch, key: str) -> Any:
    """Stored value as compared by `expected`; team slots compare by occupant id."""
    if key in TEAM_SLOTS:
        return match.slot_id(key)
    return getattr(match, key)


def precondition_failures(match: BracketMatch, expected: Dict[str, Any]) -> List[str]:
    failures = []
    for key, want in expected.items():
        have = current_value(match, key)
        if have != want:
            failures.append(f"{key} is {have!r}, expected {want!r}")
    return failures


def conflict_for(match_id: str, failures: List[str]) -> PersistenceConflict:
    return PersistenceConflict(
        f"Match {match_id} was changed by another update ({'; '.join(failures)}). Reload and try again.",
        match_id=match_id,
    )


class InMemoryMatchStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._tournaments: Dict[Any, Dict[str, BracketMatch]] = {}

    def _matches(self, tournament_id: Any) -> Dict[str, BracketMatch]:
        return self._tournaments.setdefault(tournament_id, {})

    def add_matches(self, tournament_id: Any, matches: Sequence[BracketMatch]) -> None:
        with self._lock:
            stored = self._matches(tournament_id)
            for match in matches:
                if match.id in stored:
                    raise ValueError(f"Match {match.id} already exists")
                stored[match.id] = copy.deepcopy(match)

    def get_matches(self, tournament_id: Any) -> List[BracketMatch]:
        with self._lock:
            return [copy.deepcopy(m) for m in self._matches(tournament_id).values()]

    def get_match(self, tournament_id: Any, match_id: str) -> BracketMatch:
        with self._lock:
            match = self._matches(tournament_id).get(match_id)
            if match is None:
                raise MatchNotFound(f"Match {match_id} not found", match_id=match_id)
            return copy.deepcopy(match)

    def update_match(self, tournament_id: Any, match_id: str, fields: Dict[str, Any]) -> BracketMatch:
        return self.batch_update(tournament_id, [MatchUpdate(match_id=match_id, fields=fields)])[0]

    def batch_update(self, tournament_id: Any, updates: Sequence[MatchUpdate]) -> List[BracketMatch]:
        with self._lock:
            stored = self._matches(tournament_id)
            staged: Dict[str, BracketMatch] = {}
            for update in updates:
                match: Optional[BracketMatch] = staged.get(update.match_id) or stored.get(update.match_id)
                if match is None:
                    raise MatchNotFound(f"Match {update.match_id} not found", match_id=update.match_id)
                failures = precondition_failures(match, update.expected)
                if failures:
                    raise conflict_for(update.match_id, failures)
                staged[update.match_id] = match.with_fields(copy.deepcopy(update.fields))

            stored.update(staged)
            return [copy.deepcopy(staged[u.match_id]) for u in updates]
