"""Service layer for tournament bracket and leaderboard data."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from arenasync.core.constants import TOURNAMENTS_ROOT
from arenasync.errors import NotFoundError, StaleWriteError, ValidationError

from .bracket import BracketEngine
from .models import (
    EDITABLE_ENTRY_FIELDS,
    LeaderboardEntry,
    TournamentData,
    empty_tournament_data,
)

if TYPE_CHECKING:
    from arenasync.realtime import Store, SyncedReference, WriteResult

logger = logging.getLogger(__name__)


class TournamentDataStore:
    """Reads and writes the bracket and leaderboard at ``tournaments/{id}``.

    Every update is a read-modify-write of the whole tournament value, so
    the edited match and any match its winner advances into are stored in
    one write.
    """

    def __init__(self, store: Store) -> None:
        self.store = store

    @staticmethod
    def path_for(tournament_id: str) -> str:
        if not tournament_id or "/" in tournament_id:
            raise ValidationError(f"Invalid tournament id '{tournament_id}'.")
        return f"{TOURNAMENTS_ROOT}/{tournament_id}"

    def ref(self, tournament_id: str) -> SyncedReference:
        return self.store.ref(self.path_for(tournament_id))

    def ensure_seeded(self, tournament_id: str) -> bool:
        """Write an empty bracket if the tournament has no data yet.

        Returns True when this call seeded the data, False when data was
        already there.
        """
        ref = self.ref(tournament_id)
        current, revision = ref.read_with_revision()
        if current is not None:
            return False
        try:
            ref.write(empty_tournament_data(), expected_revision=revision)
        except StaleWriteError:
            # Someone else seeded it first.
            return False
        logger.info("Seeded bracket for tournament %s", tournament_id)
        return True

    def get(self, tournament_id: str) -> Optional[TournamentData]:
        return self.ref(tournament_id).read()

    def get_with_revision(
        self, tournament_id: str
    ) -> tuple[Optional[TournamentData], int]:
        """Return the data together with the revision it was read at."""
        return self.ref(tournament_id).read_with_revision()

    def subscribe(
        self, tournament_id: str, handler: Callable[[Optional[TournamentData]], None]
    ) -> Callable[[], None]:
        """Deliver the current data now and every later change to ``handler``."""
        return self.ref(tournament_id).on_change(handler)

    def _update(
        self,
        tournament_id: str,
        mutate: Callable[[TournamentData], TournamentData],
        revision: Optional[int],
    ) -> WriteResult:
        def apply(current: Any) -> TournamentData:
            if current is None:
                raise NotFoundError(f"Tournament '{tournament_id}' has no bracket data.")
            return mutate(current)

        return self.ref(tournament_id).transaction(apply, expected_revision=revision)

    def apply_match_update(
        self,
        tournament_id: str,
        match_id: str,
        fields: dict[str, Any],
        revision: Optional[int] = None,
    ) -> WriteResult:
        """Merge ``fields`` into a match and advance its winner."""

        def mutate(data: TournamentData) -> TournamentData:
            matches = BracketEngine.apply_match_update(
                data.get("matches", {}), match_id, fields
            )
            return {**data, "matches": matches}

        return self._update(tournament_id, mutate, revision)

    def apply_leaderboard_update(
        self,
        tournament_id: str,
        entry_id: str,
        fields: dict[str, Any],
        revision: Optional[int] = None,
    ) -> WriteResult:
        """Merge ``fields`` into one leaderboard entry."""
        unknown = set(fields) - EDITABLE_ENTRY_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot edit leaderboard field(s): {', '.join(sorted(unknown))}."
            )

        def mutate(data: TournamentData) -> TournamentData:
            leaderboard = data.get("leaderboard", [])
            if not any(entry.get("id") == entry_id for entry in leaderboard):
                raise NotFoundError(f"Leaderboard entry '{entry_id}' not found.")
            updated = [
                {**entry, **fields} if entry.get("id") == entry_id else entry
                for entry in leaderboard
            ]
            return {**data, "leaderboard": updated}

        return self._update(tournament_id, mutate, revision)

    def auto_fill(
        self,
        tournament_id: str,
        participants: list[str],
        revision: Optional[int] = None,
    ) -> WriteResult:
        """Overwrite quarterfinal slots and the leaderboard with ``participants``."""
        result = self._update(
            tournament_id,
            lambda current: BracketEngine.auto_fill(current, participants),
            revision,
        )
        logger.info(
            "Auto-filled tournament %s with %d participant(s)",
            tournament_id,
            len(result.value["leaderboard"]),
        )
        return result

    def sorted_leaderboard(self, tournament_id: str) -> list[LeaderboardEntry]:
        """Return leaderboard entries by score, highest first."""
        data = self.get(tournament_id)
        if data is None:
            return []
        return sort_leaderboard(data.get("leaderboard", []))


def sort_leaderboard(entries: list[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Order entries by score descending; ties keep their stored order."""
    return sorted(entries, key=lambda entry: entry.get("score", 0), reverse=True)
