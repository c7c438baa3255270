"""
SQL-backed MatchStore.

Each MatchUpdate becomes one `UPDATE match SET ... WHERE <expected>`
statement; a statement that matches no row means the record changed since
it was read, so the transaction is rolled back and PersistenceConflict is
raised. Team slots are stored as team codes and resolved against the Team
table on read, so renames and logo changes show up on every match.
Timestamps are written and read back as UTC-aware datetimes.
"""
import logging
from typing import Any, Dict, List, Sequence

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.match import Match
from app.models.team import Team as TeamRow
from app.services.bracket_errors import MatchNotFound
from app.services.bracket_types import (
    SEED_PREFIX,
    BracketMatch,
    BracketSide,
    MatchFormat,
    MatchStage,
    MatchUpdate,
    SeedPlaceholder,
    Slot,
    Team,
)
from app.services.match_store import conflict_for, precondition_failures
from app.utils.clock import as_utc

logger = logging.getLogger(__name__)

# BracketMatch attribute -> Match column for plain (non-slot) fields
_SCALAR_COLUMNS = {
    "score1": "score1",
    "score2": "score2",
    "winner_id": "winner_code",
    "start_time": "start_time",
    "completed_at": "completed_at",
}
_TIMESTAMPS = {"start_time", "completed_at"}
_SLOT_COLUMNS = {
    "team1": ("team1_code", "placeholder_side_1"),
    "team2": ("team2_code", "placeholder_side_2"),
}


def _slot_values(slot: str, occupant: Slot) -> Dict[str, Any]:
    code_col, label_col = _SLOT_COLUMNS[slot]
    return {
        code_col: occupant.id if occupant is not None else None,
        label_col: occupant.name if isinstance(occupant, SeedPlaceholder) else None,
    }


def column_values(fields: Dict[str, Any]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, value in fields.items():
        if key in _SLOT_COLUMNS:
            values.update(_slot_values(key, value))
        elif key in _TIMESTAMPS:
            values[_SCALAR_COLUMNS[key]] = as_utc(value)
        elif key in _SCALAR_COLUMNS:
            values[_SCALAR_COLUMNS[key]] = value
        else:
            raise ValueError(f"Match field {key!r} cannot be updated")
    return values


def to_row(tournament_id: int, match: BracketMatch) -> Match:
    row = Match(
        tournament_id=tournament_id,
        match_code=match.id,
        stage=match.stage.value,
        round_number=match.round,
        format=match.format.value,
        name=match.name,
        group_label=match.group,
        bracket_side=match.bracket.value if match.bracket else None,
        next_match_code=match.next_match_id,
        loser_match_code=match.loser_match_id,
    )
    for key, value in column_values(
        {
            "team1": match.team1,
            "team2": match.team2,
            "score1": match.score1,
            "score2": match.score2,
            "winner_id": match.winner_id,
            "start_time": match.start_time,
            "completed_at": match.completed_at,
        }
    ).items():
        setattr(row, key, value)
    return row


def _slot_from_row(code: Any, label: Any, teams: Dict[str, Team]) -> Slot:
    if code is None:
        return None
    if code.startswith(SEED_PREFIX):
        return SeedPlaceholder(id=code, name=label or code)
    return teams.get(code) or Team(id=code, name=code)


def to_domain(row: Match, teams: Dict[str, Team]) -> BracketMatch:
    return BracketMatch(
        id=row.match_code,
        round=row.round_number,
        stage=MatchStage(row.stage),
        format=MatchFormat(row.format),
        name=row.name,
        team1=_slot_from_row(row.team1_code, row.placeholder_side_1, teams),
        team2=_slot_from_row(row.team2_code, row.placeholder_side_2, teams),
        score1=row.score1,
        score2=row.score2,
        winner_id=row.winner_code,
        start_time=as_utc(row.start_time),
        completed_at=as_utc(row.completed_at),
        next_match_id=row.next_match_code,
        loser_match_id=row.loser_match_code,
        group=row.group_label,
        bracket=BracketSide(row.bracket_side) if row.bracket_side else None,
    )


class SqlMatchStore:
    def __init__(self, session: Session):
        self.session = session

    def _teams(self, tournament_id: int) -> Dict[str, Team]:
        rows = self.session.exec(select(TeamRow).where(TeamRow.tournament_id == tournament_id)).all()
        return {r.team_code: Team(id=r.team_code, name=r.name, logo_url=r.logo_url) for r in rows}

    def _row(self, tournament_id: int, match_id: str) -> Match:
        row = self.session.exec(
            select(Match).where(Match.tournament_id == tournament_id, Match.match_code == match_id)
        ).first()
        if row is None:
            raise MatchNotFound(f"Match {match_id} not found", match_id=match_id)
        return row

    def get_matches(self, tournament_id: int) -> List[BracketMatch]:
        teams = self._teams(tournament_id)
        rows = self.session.exec(
            select(Match).where(Match.tournament_id == tournament_id).order_by(Match.id)
        ).all()
        return [to_domain(r, teams) for r in rows]

    def get_match(self, tournament_id: int, match_id: str) -> BracketMatch:
        return to_domain(self._row(tournament_id, match_id), self._teams(tournament_id))

    def add_matches(self, tournament_id: int, matches: Sequence[BracketMatch]) -> None:
        """Insert generated matches; commits together with any pending tournament/team rows."""
        self.session.add_all([to_row(tournament_id, m) for m in matches])
        self.session.commit()

    def update_match(self, tournament_id: int, match_id: str, fields: Dict[str, Any]) -> BracketMatch:
        return self.batch_update(tournament_id, [MatchUpdate(match_id=match_id, fields=fields)])[0]

    def batch_update(self, tournament_id: int, updates: Sequence[MatchUpdate]) -> List[BracketMatch]:
        conn = self.session.connection()
        try:
            for upd in updates:
                stmt = (
                    update(Match)
                    .where(Match.tournament_id == tournament_id, Match.match_code == upd.match_id)
                    .where(*self._expected_clauses(upd.expected))
                    .values(**column_values(upd.fields))
                )
                result = conn.execute(stmt)
                if result.rowcount != 1:
                    raise self._conflict(tournament_id, upd)
        except Exception:
            self.session.rollback()
            raise
        self.session.commit()
        self.session.expire_all()

        return [self.get_match(tournament_id, upd.match_id) for upd in updates]

    def _expected_clauses(self, expected: Dict[str, Any]) -> list:
        clauses = []
        for key, want in expected.items():
            if key in _SLOT_COLUMNS:
                column = getattr(Match, _SLOT_COLUMNS[key][0])
            elif key in _SCALAR_COLUMNS:
                column = getattr(Match, _SCALAR_COLUMNS[key])
                if key in _TIMESTAMPS:
                    want = as_utc(want)
            else:
                raise ValueError(f"Match field {key!r} cannot be a precondition")
            clauses.append(column.is_(None) if want is None else column == want)
        return clauses

    def _conflict(self, tournament_id: int, upd: MatchUpdate) -> Exception:
        # Runs inside the failed transaction, so it sees the earlier writes of this batch
        row = self.session.exec(
            select(Match).where(Match.tournament_id == tournament_id, Match.match_code == upd.match_id)
        ).first()
        if row is None:
            return MatchNotFound(f"Match {upd.match_id} not found", match_id=upd.match_id)
        self.session.refresh(row)
        failures = precondition_failures(to_domain(row, self._teams(tournament_id)), upd.expected)
        logger.warning("Conditional update of match %s failed: %s", upd.match_id, failures)
        return conflict_for(upd.match_id, failures or ["record changed"])
