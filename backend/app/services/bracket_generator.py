"""
Bracket Generator: builds the full match graph for a tournament.

Pure and deterministic for a given team order; randomization happens
beforehand in shuffle_teams().

Layouts:
- Direct playoff: team count must be a power of two, round 1 pairs
  teams[0] v teams[1], teams[2] v teams[3], ...
- Group stage: fixed team-count table -> 1/2/4/8 groups, round robin per
  group, top 2 per group advance into a cross-seeded playoff whose round 1
  holds SeedPlaceholder teams until the group stage completes.
- Single elimination: round r match m feeds round r+1 match m // 2.
- Double elimination: upper bracket as single elimination, lower bracket
  alternates dropout rounds (upper losers enter) and consolidation rounds,
  upper final + lower final feed a terminal Grand Final.
"""

from __future__ import annotations

import itertools
import logging
import random
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from app.services.bracket_errors import UnsupportedTeamCount
from app.services.bracket_types import (
    SEED_PREFIX,
    BracketConfig,
    BracketMatch,
    BracketSide,
    MatchFormat,
    MatchStage,
    SeedPlaceholder,
    Team,
)

logger = logging.getLogger(__name__)

GROUP_LABELS = "ABCDEFGH"
GROUP_STAGE_TEAM_COUNTS = frozenset({4, 8, 12, 16, 24, 32})
QUALIFIERS_PER_GROUP = 2

ORDINALS = {1: "1st", 2: "2nd", 3: "3rd"}


class _MatchIds:
    """Sequential match ids in creation order: match-1, match-2, ..."""

    def __init__(self):
        self._counter = itertools.count(1)

    def next(self) -> str:
        return f"match-{next(self._counter)}"


# =============================================================================
# Sizing helpers
# =============================================================================


def is_power_of_two(n: int) -> bool:
    return n >= 1 and (n & (n - 1)) == 0


def next_power_of_two(n: int) -> int:
    size = 1
    while size < n:
        size *= 2
    return size


def group_count(team_count: int) -> int:
    """
    Number of groups for a group-stage tournament.

    4 -> 1 group of 4, 8 -> 2 of 4, 12 -> 4 of 3, 16 -> 4 of 4,
    24 -> 8 of 3, 32 -> 8 of 4.
    """
    if team_count not in GROUP_STAGE_TEAM_COUNTS:
        raise UnsupportedTeamCount(
            f"Group stage supports {sorted(GROUP_STAGE_TEAM_COUNTS)} teams, got {team_count}"
        )
    if team_count == 4:
        return 1
    if team_count == 8:
        return 2
    if team_count <= 16:
        return 4
    return 8


def round_robin_match_count(group_size: int) -> int:
    return group_size * (group_size - 1) // 2


def expected_playoff_match_count(slots: int, double_elimination: bool) -> int:
    if slots < 2:
        return 0
    if double_elimination and slots > 2:
        return 2 * slots - 2
    return slots - 1


def cross_seed_keys(num_groups: int) -> List[Tuple[int, str]]:
    """
    (finishing position, group label) for each playoff round-1 slot, in slot order.

    Group pairs (A,B), (C,D), ... interleave as 1A, 2B, 1B, 2A, 1C, 2D, 1D, 2C
    so a group winner never meets its own runner-up in round 1.
    One group: 1A v 2A.
    """
    labels = GROUP_LABELS[:num_groups]
    if num_groups == 1:
        return [(1, labels[0]), (2, labels[0])]

    keys: List[Tuple[int, str]] = []
    for g in range(0, num_groups, 2):
        first = labels[g]
        second = labels[min(g + 1, num_groups - 1)]
        keys.append((1, first))
        keys.append((2, second))
        if g + 1 < num_groups:
            keys.append((1, second))
            keys.append((2, first))
    return keys


def seed_label(position: int, group: str) -> str:
    return f"{ORDINALS.get(position, f'{position}th')} Group {group}"


def seed_index(placeholder: SeedPlaceholder) -> int:
    return int(placeholder.id[len(SEED_PREFIX):])


# =============================================================================
# Team preparation
# =============================================================================


def _clean_entries(entries: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    cleaned: List[Dict[str, Any]] = []
    for entry in entries:
        name = (entry.get("name") or "").strip()
        if not name:
            raise ValueError("Team names must not be empty")
        logo = (entry.get("logo_url") or "").strip() or None
        cleaned.append({"name": name, "logo_url": logo})
    return cleaned


def _assign_ids(cleaned: List[Dict[str, Any]]) -> List[Team]:
    return [Team(id=f"team-{i + 1}", name=e["name"], logo_url=e["logo_url"]) for i, e in enumerate(cleaned)]


def shuffle_teams(entries: Sequence[Mapping[str, Any]], rng: Optional[random.Random] = None) -> List[Team]:
    """
    Randomly order team entries and assign ids team-1..team-N in the new order.

    Entries are mappings with "name" and optional "logo_url".
    """
    cleaned = _clean_entries(entries)
    (rng or random.Random()).shuffle(cleaned)
    return _assign_ids(cleaned)


def teams_in_order(entries: Sequence[Mapping[str, Any]]) -> List[Team]:
    """Same as shuffle_teams but keeps the submitted order."""
    return _assign_ids(_clean_entries(entries))

# =============================================================================
# Entry point
# =============================================================================


def generate(teams: Sequence[Team], config: BracketConfig) -> List[BracketMatch]:
    """Build every match for the tournament. Returns matches in creation order."""
    ids = [t.id for t in teams]
    if len(set(ids)) != len(ids):
        raise ValueError("Team ids must be unique")

    ids_seq = _MatchIds()
    if config.has_group_stage:
        matches = _generate_with_group_stage(list(teams), config, ids_seq)
    else:
        matches = _generate_direct_playoff(list(teams), config, ids_seq)

    logger.info(
        "Generated %d matches for %d teams (%s, group stage=%s)",
        len(matches),
        len(teams),
        config.format.value,
        config.has_group_stage,
    )
    return matches


def _generate_direct_playoff(teams: List[Team], config: BracketConfig, ids: _MatchIds) -> List[BracketMatch]:
    if len(teams) < 2:
        return []
    if not is_power_of_two(len(teams)):
        raise UnsupportedTeamCount(
            f"Without a group stage the team count must be a power of two, got {len(teams)}"
        )

    playoff = build_playoff_bracket(len(teams), config, ids)
    for match, (t1, t2) in zip(round_one_matches(playoff), _pairs(teams)):
        match.team1 = t1
        match.team2 = t2
    return playoff


def _generate_with_group_stage(teams: List[Team], config: BracketConfig, ids: _MatchIds) -> List[BracketMatch]:
    num_groups = group_count(len(teams))
    group_size = len(teams) // num_groups

    matches: List[BracketMatch] = []
    for g in range(num_groups):
        letter = GROUP_LABELS[g]
        members = teams[g * group_size:(g + 1) * group_size]
        matches.extend(build_round_robin(members, letter, config.group_stage_format, ids))

    qualifiers = num_groups * QUALIFIERS_PER_GROUP
    slots = next_power_of_two(max(qualifiers, 2))
    playoff = build_playoff_bracket(slots, config, ids)

    placeholders = [
        SeedPlaceholder(id=f"{SEED_PREFIX}{i}", name=seed_label(position, group))
        for i, (position, group) in enumerate(cross_seed_keys(num_groups))
    ]
    for match, (p1, p2) in zip(round_one_matches(playoff), _pairs(placeholders)):
        match.team1 = p1
        match.team2 = p2

    matches.extend(playoff)
    return matches


def _pairs(items: Sequence[Any]) -> List[Tuple[Any, Any]]:
    return [(items[i], items[i + 1] if i + 1 < len(items) else None) for i in range(0, len(items), 2)]


def round_one_matches(playoff: Sequence[BracketMatch]) -> List[BracketMatch]:
    """Round-1 matches of the main (upper) bracket, in bracket order."""
    return [
        m
        for m in playoff
        if m.stage is MatchStage.playoff and m.round == 1 and m.bracket is not BracketSide.lower
    ]


# =============================================================================
# Group stage
# =============================================================================


def build_round_robin(members: Sequence[Team], letter: str, fmt: MatchFormat, ids: _MatchIds) -> List[BracketMatch]:
    """Every pair of group members plays once: (0,1), (0,2), ..., (n-2,n-1)."""
    matches: List[BracketMatch] = []
    for n, (t1, t2) in enumerate(itertools.combinations(members, 2), start=1):
        matches.append(
            BracketMatch(
                id=ids.next(),
                round=0,
                stage=MatchStage.group,
                format=fmt,
                name=f"Group {letter} Match {n}",
                team1=t1,
                team2=t2,
                group=letter,
            )
        )
    return matches


# =============================================================================
# Playoff trees
# =============================================================================


def build_playoff_bracket(slots: int, config: BracketConfig, ids: _MatchIds) -> List[BracketMatch]:
    if slots < 2:
        return []
    if config.is_double_elimination:
        return build_double_elimination(slots, config, ids)
    return build_single_elimination(slots, config, ids)


def _single_elimination_name(r: int, m: int, matches_in_round: int, total_rounds: int) -> str:
    if r == 0:
        if matches_in_round == 4:
            return f"Quarter-Final {m + 1}"
        if matches_in_round == 2:
            return f"Semi-Final {m + 1}"
        if matches_in_round == 1:
            return "Final"
        return f"Round 1 Match {m + 1}"
    if r == total_rounds - 1:
        return "Grand Final" if matches_in_round == 1 else f"Final {m + 1}"
    if matches_in_round == 2:
        return f"Semi-Final {m + 1}"
    if matches_in_round == 4:
        return f"Quarter-Final {m + 1}"
    return f"Round {r + 1} Match {m + 1}"


def build_single_elimination(slots: int, config: BracketConfig, ids: _MatchIds) -> List[BracketMatch]:
    total_rounds = slots.bit_length() - 1
    rounds: List[List[BracketMatch]] = []
    for r in range(total_rounds):
        matches_in_round = slots // 2 ** (r + 1)
        if r > 0 and r == total_rounds - 1:
            fmt = config.grand_final_format
        else:
            fmt = config.upper_bracket_format
        rounds.append(
            [
                BracketMatch(
                    id=ids.next(),
                    round=r + 1,
                    stage=MatchStage.playoff,
                    format=fmt,
                    name=_single_elimination_name(r, m, matches_in_round, total_rounds),
                    bracket=BracketSide.upper,
                )
                for m in range(matches_in_round)
            ]
        )

    _wire_winners(rounds)
    return [m for round_matches in rounds for m in round_matches]


def _wire_winners(rounds: List[List[BracketMatch]]) -> None:
    for r in range(len(rounds) - 1):
        for m, match in enumerate(rounds[r]):
            match.next_match_id = rounds[r + 1][m // 2].id


def _upper_name(r: int, m: int, matches_in_round: int, total_rounds: int) -> str:
    if r == total_rounds - 1:
        return "Upper Bracket Final"
    if matches_in_round == 2:
        return f"Upper Bracket Semi-Final {m + 1}"
    return f"Upper Bracket R{r + 1} Match {m + 1}"


def _lower_match(ids: _MatchIds, round_number: int, name: str, config: BracketConfig) -> BracketMatch:
    return BracketMatch(
        id=ids.next(),
        round=round_number,
        stage=MatchStage.playoff,
        format=config.lower_bracket_format,
        name=name,
        bracket=BracketSide.lower,
    )


def build_double_elimination(slots: int, config: BracketConfig, ids: _MatchIds) -> List[BracketMatch]:
    """
    Upper bracket + lower bracket + Grand Final; 2 * slots - 2 matches.

    8 slots:
      UB: R1 (4) -> SF (2) -> UB Final (1)
      LB: R1 (2, UB R1 losers 2:1) -> R2 dropout (2, UB SF losers)
          -> R3 consolidation (1) -> LB Final dropout (1, UB Final loser)
      Grand Final: UB Final winner v LB Final winner
    """
    total_rounds = slots.bit_length() - 1
    if total_rounds == 1:
        # No lower bracket exists for two slots; the only match is the final.
        return [
            BracketMatch(
                id=ids.next(),
                round=1,
                stage=MatchStage.playoff,
                format=config.grand_final_format,
                name="Grand Final",
                bracket=BracketSide.grand_final,
            )
        ]

    upper: List[List[BracketMatch]] = []
    for r in range(total_rounds):
        matches_in_round = slots // 2 ** (r + 1)
        upper.append(
            [
                BracketMatch(
                    id=ids.next(),
                    round=r + 1,
                    stage=MatchStage.playoff,
                    format=config.upper_bracket_format,
                    name=_upper_name(r, m, matches_in_round, total_rounds),
                    bracket=BracketSide.upper,
                )
                for m in range(matches_in_round)
            ]
        )
    _wire_winners(upper)

    lower: List[List[BracketMatch]] = []
    first_size = slots // 4
    lower.append(
        [
            _lower_match(ids, 1, "Elimination Match" if first_size == 1 else f"Elimination Match {m + 1}", config)
            for m in range(first_size)
        ]
    )
    for m, match in enumerate(upper[0]):
        match.loser_match_id = lower[0][m // 2].id

    for ur in range(1, total_rounds):
        dropped = len(upper[ur])
        previous = lower[-1]
        round_number = len(lower) + 1
        is_lower_final = dropped == 1 and ur == total_rounds - 1

        dropout = [
            _lower_match(
                ids,
                round_number,
                "Lower Bracket Final" if is_lower_final else f"Lower Bracket R{round_number} Match {m + 1}",
                config,
            )
            for m in range(dropped)
        ]
        for m, match in enumerate(upper[ur]):
            match.loser_match_id = dropout[m].id
        for m, match in enumerate(previous):
            match.next_match_id = dropout[m].id
        lower.append(dropout)

        if dropped >= 2:
            size = dropped // 2
            round_number = len(lower) + 1
            consolidation = [
                _lower_match(
                    ids,
                    round_number,
                    f"Lower Bracket R{round_number}" if size == 1 else f"Lower Bracket R{round_number} Match {m + 1}",
                    config,
                )
                for m in range(size)
            ]
            for m, match in enumerate(dropout):
                match.next_match_id = consolidation[m // 2].id
            lower.append(consolidation)

    grand_final = BracketMatch(
        id=ids.next(),
        round=total_rounds + 1,
        stage=MatchStage.playoff,
        format=config.grand_final_format,
        name="Grand Final",
        bracket=BracketSide.grand_final,
    )
    upper[-1][0].next_match_id = grand_final.id
    lower[-1][0].next_match_id = grand_final.id

    matches = [m for round_matches in upper for m in round_matches]
    matches.extend(m for round_matches in lower for m in round_matches)
    matches.append(grand_final)
    return matches
