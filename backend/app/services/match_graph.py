"""
Match Graph: the single authoritative, id-indexed view of a tournament's matches.

Edges are the next_match_id (winner) and loser_match_id (loser) pointers on
each match. Updates are applied incrementally: only the touched matches are
replaced, the rest of the graph is shared.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional

from app.services.bracket_types import BracketMatch, MatchStage, MatchUpdate, is_seed_placeholder


def _stage_order(match: BracketMatch):
    return (0 if match.stage is MatchStage.group else 1, match.round, _id_number(match.id), match.id)


def _id_number(match_id: str) -> int:
    tail = match_id.rsplit("-", 1)[-1]
    return int(tail) if tail.isdigit() else 0


class MatchGraph:
    def __init__(self, matches: Iterable[BracketMatch]):
        self._by_id: Dict[str, BracketMatch] = {}
        for match in matches:
            if match.id in self._by_id:
                raise ValueError(f"Duplicate match id {match.id}")
            self._by_id[match.id] = match

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[BracketMatch]:
        return iter(self.ordered())

    def __contains__(self, match_id: str) -> bool:
        return match_id in self._by_id

    def get(self, match_id: Optional[str]) -> Optional[BracketMatch]:
        if match_id is None:
            return None
        return self._by_id.get(match_id)

    def ordered(self) -> List[BracketMatch]:
        """Group stage first, then by round, then by creation order."""
        return sorted(self._by_id.values(), key=_stage_order)

    def group_matches(self) -> List[BracketMatch]:
        return [m for m in self.ordered() if m.stage is MatchStage.group]

    def playoff_matches(self) -> List[BracketMatch]:
        return [m for m in self.ordered() if m.stage is MatchStage.playoff]

    def groups(self) -> Dict[str, List[BracketMatch]]:
        by_group: Dict[str, List[BracketMatch]] = defaultdict(list)
        for match in self.group_matches():
            by_group[match.group or ""].append(match)
        return dict(sorted(by_group.items()))

    def group_stage_complete(self) -> bool:
        group = self.group_matches()
        return bool(group) and all(m.is_completed for m in group)

    def placeholder_slots(self) -> List[BracketMatch]:
        """Playoff matches that still hold at least one seed placeholder, in bracket order."""
        return [
            m
            for m in self.playoff_matches()
            if is_seed_placeholder(m.team1) or is_seed_placeholder(m.team2)
        ]

    def feeders(self, match_id: str) -> List[BracketMatch]:
        """Matches whose winner or loser is routed into match_id."""
        return [
            m for m in self.ordered() if m.next_match_id == match_id or m.loser_match_id == match_id
        ]

    def terminal_matches(self) -> List[BracketMatch]:
        return [m for m in self.playoff_matches() if m.next_match_id is None]

    def path_to_terminal(self, match_id: str) -> List[str]:
        """Follow winner edges from match_id until a match with no next_match_id."""
        path: List[str] = []
        current = self.get(match_id)
        while current is not None:
            if current.id in path:
                raise ValueError(f"Cycle detected at match {current.id}")
            path.append(current.id)
            current = self.get(current.next_match_id)
        return path

    def apply(self, updates: Iterable[MatchUpdate]) -> "MatchGraph":
        """Return a new graph with the updates' fields applied (preconditions are the store's job)."""
        by_id = dict(self._by_id)
        for update in updates:
            base = by_id.get(update.match_id)
            if base is None:
                raise KeyError(update.match_id)
            by_id[update.match_id] = base.with_fields(update.fields)
        graph = MatchGraph.__new__(MatchGraph)
        graph._by_id = by_id
        return graph
