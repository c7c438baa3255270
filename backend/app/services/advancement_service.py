"""
Advancement: when a match result is submitted, complete the match and
auto-populate downstream team slots.

- winner -> first empty slot of next_match_id
- loser  -> first empty slot of loser_match_id (double elimination)
- last group match completed -> qualifiers replace the seed placeholders in
  playoff round 1, cross-seeded (1A v 2B, 1B v 2A, ...)

submit_result() is pure: it validates and returns the MatchUpdates to apply.
record_match_result() runs it against a MatchStore and commits the updates
as one conditional batch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List, Optional

from app.services.bracket_errors import (
    MatchNotFound,
    MatchNotPlayable,
    NothingToUpdate,
    PersistenceConflict,
    SlotOccupied,
)
from app.services.bracket_generator import seed_index
from app.services.bracket_types import (
    BracketMatch,
    MatchStage,
    MatchUpdate,
    SeedPlaceholder,
    Team,
    is_seed_placeholder,
)
from app.services.group_standings import cross_seed_order
from app.services.match_graph import MatchGraph
from app.services.match_store import TEAM_SLOTS, MatchStore
from app.services.score_parser import validate_score
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass
class AdvancementResult:
    updated_match: BracketMatch
    primary_update: MatchUpdate
    downstream_updates: List[MatchUpdate] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    # Subset of downstream_updates that resolves seed placeholders
    seeding_updates: List[MatchUpdate] = field(default_factory=list)

    @property
    def updates(self) -> List[MatchUpdate]:
        return [self.primary_update] + self.downstream_updates

    @property
    def completes_tournament(self) -> bool:
        match = self.updated_match
        return match.is_completed and match.stage is MatchStage.playoff and match.next_match_id is None


def submit_result(
    graph: MatchGraph,
    match_id: str,
    score1: Optional[int],
    score2: Optional[int],
    start_time: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> AdvancementResult:
    """
    Validate a result for match_id and compute every write it causes.

    Both scores 0 (or missing) is a schedule-only update of start_time.
    Raises MatchNotFound, MatchNotPlayable, InvalidScore or NothingToUpdate;
    the graph is never modified.
    """
    match = graph.get(match_id)
    if match is None:
        raise MatchNotFound(f"Match {match_id} not found", match_id=match_id)

    score1 = score1 or 0
    score2 = score2 or 0
    if score1 == 0 and score2 == 0:
        return _schedule_only(match, start_time)

    if match.is_completed:
        raise MatchNotPlayable(
            f"{match.name} is already completed; results cannot be changed.", match_id=match_id
        )
    if not match.is_playable:
        raise MatchNotPlayable(f"{match.name} is still waiting for both teams.", match_id=match_id)

    validate_score(match.format, score1, score2, match_id=match_id)

    winner, loser = (match.team1, match.team2) if score1 > score2 else (match.team2, match.team1)
    fields = {
        "score1": score1,
        "score2": score2,
        "winner_id": winner.id,
        "completed_at": now or utcnow(),
    }
    if start_time is not None:
        fields["start_time"] = start_time
    primary = MatchUpdate(
        match_id=match.id,
        fields=fields,
        expected={"winner_id": None, "team1": match.team1.id, "team2": match.team2.id},
    )

    working = graph.apply([primary])
    result = AdvancementResult(updated_match=working.get(match.id), primary_update=primary)

    for target_id, team, role in ((match.next_match_id, winner, "winner"), (match.loser_match_id, loser, "loser")):
        if target_id is None:
            continue
        update = _place_team(working, target_id, team, role, result.warnings)
        if update is not None:
            working = working.apply([update])
            result.downstream_updates.append(update)

    if match.stage is MatchStage.group and working.group_stage_complete():
        result.seeding_updates = build_playoff_seeding(working)
        result.downstream_updates.extend(result.seeding_updates)

    return result


def _schedule_only(match: BracketMatch, start_time: Optional[datetime]) -> AdvancementResult:
    if start_time is None:
        raise NothingToUpdate("Enter a score or a start time.", match_id=match.id)
    if match.is_completed:
        raise MatchNotPlayable(
            f"{match.name} is already completed; its start time cannot be changed.", match_id=match.id
        )
    update = MatchUpdate(match_id=match.id, fields={"start_time": start_time}, expected={"winner_id": None})
    return AdvancementResult(updated_match=match.with_fields(update.fields), primary_update=update)


def _place_team(graph: MatchGraph, target_id: str, team: Team, role: str, warnings: List[str]) -> Optional[MatchUpdate]:
    target = graph.get(target_id)
    if target is None:
        message = f"Match {target_id} referenced as {role} destination does not exist"
        logger.warning(message)
        warnings.append(message)
        return None

    slot = target.first_empty_slot()
    if slot is None:
        error = SlotOccupied(
            f"{target.name} already has both teams; {team.name} was not advanced as {role}.",
            match_id=target.id,
        )
        logger.warning("%s (%s)", error.message, error.code)
        warnings.append(error.message)
        return None

    return MatchUpdate(match_id=target.id, fields={slot: team}, expected={slot: None})


def build_playoff_seeding(graph: MatchGraph) -> List[MatchUpdate]:
    """
    Updates replacing every seed placeholder with its qualified team.

    Empty unless the group stage is complete. Each update is conditional on
    the slot still holding the placeholder, so seeding lands at most once.
    """
    if not graph.group_stage_complete():
        return []
    placeholder_matches = graph.placeholder_slots()
    if not placeholder_matches:
        return []

    order = cross_seed_order(graph.group_matches())
    updates: List[MatchUpdate] = []
    for match in placeholder_matches:
        fields = {}
        expected = {}
        for slot in TEAM_SLOTS:
            occupant = getattr(match, slot)
            if not is_seed_placeholder(occupant):
                continue
            fields[slot] = _qualifier_for(occupant, order)
            expected[slot] = occupant.id
        updates.append(MatchUpdate(match_id=match.id, fields=fields, expected=expected))
    return updates


def _qualifier_for(placeholder: SeedPlaceholder, order: List[Team]) -> Team:
    index = seed_index(placeholder)
    if index >= len(order):
        raise ValueError(f"No qualified team for {placeholder.name}")
    return order[index]


def record_match_result(
    store: MatchStore,
    tournament_id: Any,
    match_id: str,
    score1: Optional[int],
    score2: Optional[int],
    start_time: Optional[datetime] = None,
    now: Optional[datetime] = None,
    before_commit: Optional[Callable[[AdvancementResult], None]] = None,
) -> AdvancementResult:
    """
    Load the tournament's graph, submit the result and commit it atomically.

    before_commit runs with the computed result just ahead of the batch; the
    SQL store commits whatever it stages on the session in the same
    transaction, and a conflict discards it along with the batch.

    Raises PersistenceConflict (nothing written) when another writer changed
    any involved match since the read.
    """
    graph = MatchGraph(store.get_matches(tournament_id))
    result = submit_result(graph, match_id, score1, score2, start_time=start_time, now=now)
    if before_commit is not None:
        before_commit(result)

    try:
        store.batch_update(tournament_id, result.updates)
    except PersistenceConflict as e:
        logger.warning("Result for match %s in tournament %s rejected: %s", match_id, tournament_id, e.message)
        raise

    if result.seeding_updates:
        logger.info("Group stage complete for tournament %s; playoffs seeded", tournament_id)
    elif result.updated_match.stage is MatchStage.group and result.updated_match.is_completed:
        # Two final group results can commit concurrently, each seeing the
        # other as pending; re-check against committed state.
        result.seeding_updates = seed_playoffs_if_ready(store, tournament_id)
        result.downstream_updates.extend(result.seeding_updates)

    logger.info(
        "Recorded %s for match %s (tournament %s), %d downstream update(s)",
        "result" if result.updated_match.is_completed else "schedule",
        match_id,
        tournament_id,
        len(result.downstream_updates),
    )
    return result


def seed_playoffs_if_ready(store: MatchStore, tournament_id: Any) -> List[MatchUpdate]:
    """
    Seed the playoffs from committed group results, at most once.

    Returns the applied updates, or [] when the group stage is incomplete or
    the placeholders were already resolved (possibly by a concurrent writer).
    """
    graph = MatchGraph(store.get_matches(tournament_id))
    updates = build_playoff_seeding(graph)
    if not updates:
        return []

    try:
        store.batch_update(tournament_id, updates)
    except PersistenceConflict:
        if MatchGraph(store.get_matches(tournament_id)).placeholder_slots():
            raise
        logger.info("Playoffs for tournament %s were already seeded by another update", tournament_id)
        return []

    logger.info("Group stage complete for tournament %s; playoffs seeded", tournament_id)
    return updates
