"""
Score parsing and best-of validation for series results.

Supports formats like:
  "2-1"               → team1 won two games, team2 one
  "2 - 1" / "2:1"     → whitespace and colon variants
  {"display": "2-1"}  → extracts display string first
  {"score1": 2, "score2": 1} → structured variant

parse_score returns None on parse failure (non-fatal); validate_score raises
InvalidScore with a message the admin can act on.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, List, Optional

from app.services.bracket_errors import InvalidScore
from app.services.bracket_types import MatchFormat

_SCORE_RE = re.compile(r"^\s*(\d+)\s*[-:]\s*(\d+)\s*$")


@dataclass
class ParsedScore:
    score1: int
    score2: int

    @property
    def is_schedule_only(self) -> bool:
        return self.score1 == 0 and self.score2 == 0


def parse_score(score_json: Any) -> Optional[ParsedScore]:
    """Parse a score blob into a (score1, score2) pair.

    Returns None if the score cannot be parsed.
    """
    if score_json is None:
        return None

    raw: Optional[str] = None
    if isinstance(score_json, str):
        raw = score_json
    elif isinstance(score_json, dict):
        if "score1" in score_json and "score2" in score_json:
            return _parse_structured(score_json["score1"], score_json["score2"])
        raw = str(score_json.get("display") or score_json.get("score") or "")
    if not raw or not raw.strip():
        return None

    match = _SCORE_RE.match(raw)
    if not match:
        return None
    return ParsedScore(score1=int(match.group(1)), score2=int(match.group(2)))


def _parse_structured(a: Any, b: Any) -> Optional[ParsedScore]:
    try:
        return ParsedScore(score1=int(a), score2=int(b))
    except (TypeError, ValueError):
        return None


def require_score(score_json: Any) -> ParsedScore:
    parsed = parse_score(score_json)
    if parsed is None:
        raise InvalidScore(f"Could not read score {score_json!r}. Use the form \"2-1\".")
    return parsed


def valid_results(fmt: MatchFormat) -> List[str]:
    """Every legal final score for a best-of format, winner first."""
    wins = fmt.wins_required
    return [f"{wins}-{loser}" for loser in range(0, fmt.games - wins + 1)]


def _describe(options: List[str]) -> str:
    if len(options) == 1:
        return options[0]
    return ", ".join(options[:-1]) + " or " + options[-1]


def validate_score(fmt: MatchFormat, score1: int, score2: int, match_id: Optional[str] = None) -> None:
    """Raise InvalidScore unless (score1, score2) is a finished series for fmt."""
    if score1 < 0 or score2 < 0:
        raise InvalidScore("Scores cannot be negative.", match_id=match_id)
    if score1 == score2:
        raise InvalidScore("Scores cannot be tied; one team must win.", match_id=match_id)

    winner = max(score1, score2)
    loser = min(score1, score2)
    if winner != fmt.wins_required or loser > fmt.games - fmt.wins_required:
        raise InvalidScore(
            f"A {fmt.value} must end in {_describe(valid_results(fmt))}.",
            match_id=match_id,
        )
