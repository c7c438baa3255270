"""
Group Standings Calculator

Ranks each group from its completed round-robin matches.

Ordering (descending unless noted):
1. wins
2. point differential (own score - opponent score, summed over completed matches)
3. head-to-head result, only when exactly two teams are tied on 1 and 2
4. team id ascending (natural order, team-2 before team-10)

The top QUALIFIERS_PER_GROUP of every group advance to the playoffs.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.services.bracket_generator import QUALIFIERS_PER_GROUP, cross_seed_keys
from app.services.bracket_types import BracketMatch, MatchStage, Team


@dataclass
class StandingRow:
    team: Team
    wins: int = 0
    losses: int = 0
    played: int = 0
    point_differential: int = 0

    def to_dict(self) -> Dict:
        return {
            "team": self.team.to_dict(),
            "wins": self.wins,
            "losses": self.losses,
            "played": self.played,
            "point_differential": self.point_differential,
        }


def _natural_key(team_id: str) -> Tuple:
    return tuple(int(part) if part.isdigit() else part for part in re.split(r"(\d+)", team_id))


def _head_to_head_winner(a: str, b: str, matches: Sequence[BracketMatch]) -> Optional[str]:
    for match in matches:
        if not match.is_completed:
            continue
        ids = {match.slot_id("team1"), match.slot_id("team2")}
        if ids == {a, b}:
            return match.winner_id
    return None


def group_table(matches: Sequence[BracketMatch]) -> List[StandingRow]:
    """Ranked standings for the matches of a single group."""
    rows: Dict[str, StandingRow] = {}
    for match in matches:
        for occupant in (match.team1, match.team2):
            if isinstance(occupant, Team) and occupant.id not in rows:
                rows[occupant.id] = StandingRow(team=occupant)

    for match in matches:
        if not match.is_completed or match.team1 is None or match.team2 is None:
            continue
        s1 = match.score1 or 0
        s2 = match.score2 or 0
        for own, opp, own_score, opp_score in (
            (match.team1, match.team2, s1, s2),
            (match.team2, match.team1, s2, s1),
        ):
            row = rows.get(own.id)
            if row is None:
                continue
            row.played += 1
            row.point_differential += own_score - opp_score
            if match.winner_id == own.id:
                row.wins += 1
            else:
                row.losses += 1

    ranked = sorted(
        rows.values(),
        key=lambda r: (-r.wins, -r.point_differential, _natural_key(r.team.id)),
    )

    # Two-way ties on (wins, differential) fall back to the head-to-head result.
    i = 0
    while i < len(ranked):
        j = i
        while (
            j + 1 < len(ranked)
            and ranked[j + 1].wins == ranked[i].wins
            and ranked[j + 1].point_differential == ranked[i].point_differential
        ):
            j += 1
        if j - i == 1:
            winner = _head_to_head_winner(ranked[i].team.id, ranked[j].team.id, matches)
            if winner == ranked[j].team.id:
                ranked[i], ranked[j] = ranked[j], ranked[i]
        i = j + 1

    return ranked


def standings(group_matches: Iterable[BracketMatch]) -> Dict[str, List[StandingRow]]:
    """Ranked standings per group letter, groups in alphabetical order."""
    by_group: Dict[str, List[BracketMatch]] = defaultdict(list)
    for match in group_matches:
        if match.stage is MatchStage.group:
            by_group[match.group or ""].append(match)
    return {letter: group_table(by_group[letter]) for letter in sorted(by_group)}


def qualified(group_matches: Iterable[BracketMatch], per_group: int = QUALIFIERS_PER_GROUP) -> Dict[str, List[Team]]:
    """Top `per_group` teams of each group, best first."""
    return {letter: [row.team for row in rows[:per_group]] for letter, rows in standings(group_matches).items()}


def cross_seed_order(group_matches: Iterable[BracketMatch]) -> List[Team]:
    """
    Qualified teams in playoff round-1 slot order (1A, 2B, 1B, 2A, ...).

    Position i of the result replaces SeedPlaceholder seed-i.
    """
    by_group = qualified(group_matches)
    ordered: List[Team] = []
    for position, letter in cross_seed_keys(len(by_group)):
        teams = by_group.get(letter, [])
        if len(teams) < position:
            raise ValueError(f"Group {letter} has no team in position {position}")
        ordered.append(teams[position - 1])
    return ordered
