"""Winner propagation and seeding for the elimination bracket."""

from __future__ import annotations

import copy
from typing import Any

from arenasync.core.constants import (
    AVATAR_URL_TEMPLATE,
    LEADERBOARD_ENTRY_ID_TEMPLATE,
    PLAYER2_FEEDERS,
    QUARTERFINAL_IDS,
    TBD,
    WINNER_SLOTS,
)
from arenasync.errors import NotFoundError, ValidationError

from .models import (
    EDITABLE_MATCH_FIELDS,
    BracketMatch,
    LeaderboardEntry,
    TournamentData,
)


class BracketEngine:
    """Pure functions over the ``matches`` mapping of a tournament.

    Nothing here touches storage; callers persist the returned mapping as
    a single write.
    """

    @staticmethod
    def successor_slot(match_id: str) -> str:
        """Return the slot of the next match that ``match_id``'s winner fills."""
        return "player2" if match_id in PLAYER2_FEEDERS else "player1"

    @staticmethod
    def winner_name(match: BracketMatch) -> str | None:
        winner = match.get("winner")
        if not winner:
            return None
        return match["player1"] if winner == "player1" else match["player2"]

    @staticmethod
    def _merge(match: BracketMatch, changes: dict[str, Any]) -> BracketMatch:
        unknown = set(changes) - EDITABLE_MATCH_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot edit match field(s): {', '.join(sorted(unknown))}."
            )
        merged = dict(match, **changes)
        for slot in WINNER_SLOTS:
            if slot in changes:
                # An emptied slot is open again.
                merged[slot] = str(changes[slot] or "").strip() or TBD
        winner = merged.get("winner")
        if not winner:
            merged.pop("winner", None)
        elif winner not in WINNER_SLOTS:
            raise ValidationError(f"Winner must be one of {', '.join(WINNER_SLOTS)}.")
        return merged  # type: ignore[return-value]

    @classmethod
    def propagate(cls, matches: dict[str, BracketMatch], match_id: str) -> None:
        """Carry the winner of ``match_id`` forward, in place.

        When the successor is itself decided and its advancing name changed,
        the walk continues so that the final always shows current names.
        """
        current = match_id
        while True:
            match = matches[current]
            next_id = match.get("nextMatchId")
            name = cls.winner_name(match)
            if name is None or not next_id or next_id not in matches:
                return
            slot = cls.successor_slot(current)
            successor = matches[next_id]
            if successor.get(slot) == name:
                return
            matches[next_id] = dict(successor, **{slot: name})  # type: ignore[assignment]
            current = next_id

    @classmethod
    def apply_match_update(
        cls,
        matches: dict[str, BracketMatch],
        match_id: str,
        changes: dict[str, Any],
    ) -> dict[str, BracketMatch]:
        """Return a new mapping with ``changes`` merged and the winner advanced.

        Raises:
            NotFoundError: If ``match_id`` is not part of the bracket.
            ValidationError: If a field is not editable or the winner is
                not a slot name.
        """
        if match_id not in matches:
            raise NotFoundError(f"Match '{match_id}' not found.")
        updated = copy.deepcopy(matches)
        updated[match_id] = cls._merge(updated[match_id], changes)
        cls.propagate(updated, match_id)
        return updated

    @staticmethod
    def normalize_participants(participants: list[str]) -> list[str]:
        """Strip names, drop blanks and repeats, keep first-seen order."""
        seen: set[str] = set()
        names = []
        for raw in participants:
            name = str(raw).strip()
            if name and name not in seen:
                seen.add(name)
                names.append(name)
        return names

    @classmethod
    def auto_fill(cls, data: TournamentData, participants: list[str]) -> TournamentData:
        """Seat participants in the quarterfinals and rebuild the leaderboard.

        Existing names and leaderboard rows are overwritten; scores and
        results already recorded on the matches are left alone, and a
        decided quarterfinal carries its newly seated winner forward.

        Raises:
            ValidationError: If no usable participant names are given.
        """
        names = cls.normalize_participants(participants)
        if not names:
            raise ValidationError("No participants to fill the bracket with.")

        matches = copy.deepcopy(data["matches"])
        for index, match_id in enumerate(QUARTERFINAL_IDS):
            if match_id not in matches:
                continue
            slots = names[index * 2 : index * 2 + 2]
            matches[match_id]["player1"] = slots[0] if len(slots) > 0 else TBD
            matches[match_id]["player2"] = slots[1] if len(slots) > 1 else TBD
            cls.propagate(matches, match_id)

        leaderboard: list[LeaderboardEntry] = [
            {
                "id": LEADERBOARD_ENTRY_ID_TEMPLATE.format(index=index),
                "rank": index + 1,
                "username": name,
                "avatar": AVATAR_URL_TEMPLATE.format(name=name),
                "score": 0,
                "coins": 0,
            }
            for index, name in enumerate(names)
        ]
        return {"matches": matches, "leaderboard": leaderboard}
