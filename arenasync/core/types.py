"""Core data types for the arenasync application."""

from typing import Dict, List, Literal, Optional, TypedDict  # noqa: UP035

WinnerSlot = Literal["player1", "player2"]


class _BracketMatchBase(TypedDict):
    id: str
    player1: str
    player2: str
    score1: int
    score2: int
    nextMatchId: Optional[str]  # noqa: UP007


class BracketMatch(_BracketMatchBase, total=False):
    """A single match in the elimination bracket."""

    winner: Optional[WinnerSlot]  # noqa: UP007


class LeaderboardEntry(TypedDict):
    """A row of the tournament leaderboard."""

    id: str
    rank: int
    username: str
    avatar: str
    score: int
    coins: int


class TournamentData(TypedDict):
    """Everything stored at ``tournaments/{id}``."""

    matches: Dict[str, BracketMatch]  # noqa: UP006
    leaderboard: List[LeaderboardEntry]  # noqa: UP006


class ChatMessage(TypedDict):
    """A message stored in a chat list."""

    id: str
    senderId: str
    text: str
    timestamp: int
