"""Data models for the tournament blueprint."""

from __future__ import annotations

from arenasync.core.constants import BRACKET_TREE, MATCH_IDS, TBD
from arenasync.core.types import BracketMatch, LeaderboardEntry, TournamentData

EDITABLE_MATCH_FIELDS = frozenset({"player1", "player2", "score1", "score2", "winner"})
EDITABLE_ENTRY_FIELDS = frozenset({"rank", "username", "avatar", "score", "coins"})


def empty_match(match_id: str) -> BracketMatch:
    """Create an undecided match with both slots open."""
    return {
        "id": match_id,
        "nextMatchId": BRACKET_TREE[match_id],
        "player1": TBD,
        "player2": TBD,
        "score1": 0,
        "score2": 0,
    }


def empty_tournament_data() -> TournamentData:
    """Create the seven-match single-elimination bracket and an empty leaderboard."""
    return {
        "matches": {match_id: empty_match(match_id) for match_id in MATCH_IDS},
        "leaderboard": [],
    }


__all__ = [
    "EDITABLE_ENTRY_FIELDS",
    "EDITABLE_MATCH_FIELDS",
    "BracketMatch",
    "LeaderboardEntry",
    "TournamentData",
    "empty_match",
    "empty_tournament_data",
]
