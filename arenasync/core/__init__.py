"""Core module for the arenasync application."""

from .types import BracketMatch, ChatMessage, LeaderboardEntry, TournamentData

__all__ = ["BracketMatch", "ChatMessage", "LeaderboardEntry", "TournamentData"]
