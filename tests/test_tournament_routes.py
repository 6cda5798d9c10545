"""Tests for the tournament blueprint."""

from __future__ import annotations

import unittest
from unittest.mock import patch

from arenasync.tournament import TournamentDataStore
from tests.helpers import make_app, make_store


class TournamentRoutesTestCase(unittest.TestCase):
    """Test case for the tournament HTTP API."""

    def setUp(self) -> None:
        """Set up a test app and client."""
        self.store = make_store()
        self.app = make_app(self.store)
        self.client = self.app.test_client()

    def auto_fill(self, participants: list[str]) -> None:
        response = self.client.post(
            "/tournaments/t1/auto-fill",
            json={"participants": participants, "confirm": True},
        )
        self.assertEqual(response.status_code, 200)

    def test_get_data_seeds_bracket(self) -> None:
        """The first view creates the empty bracket."""
        response = self.client.get("/tournaments/t1/data")

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body["tournamentId"], "t1")
        self.assertEqual(body["revision"], 1)
        self.assertEqual(len(body["data"]["matches"]), 7)
        self.assertEqual(body["data"]["leaderboard"], [])

        again = self.client.get("/tournaments/t1/data").get_json()
        self.assertEqual(again["revision"], 1)

    def test_update_match_advances_winner(self) -> None:
        """Recording a winner fills the next match in the response and store."""
        self.auto_fill(["Alice", "Bob"])

        response = self.client.patch(
            "/tournaments/t1/matches/qf1",
            json={"score1": 2, "score2": 0, "winner": "player1"},
        )

        self.assertEqual(response.status_code, 200)
        matches = response.get_json()["data"]["matches"]
        self.assertEqual(matches["qf1"]["score1"], 2)
        self.assertEqual(matches["semi1"]["player1"], "Alice")
        stored = self.store.ref("tournaments/t1").read()
        self.assertEqual(stored["matches"]["semi1"]["player1"], "Alice")

    def test_null_winner_clears_result(self) -> None:
        """Sending winner null removes the result."""
        self.auto_fill(["Alice", "Bob"])
        self.client.patch("/tournaments/t1/matches/qf1", json={"winner": "player2"})

        response = self.client.patch("/tournaments/t1/matches/qf1", json={"winner": None})

        self.assertEqual(response.status_code, 200)
        self.assertNotIn("winner", response.get_json()["data"]["matches"]["qf1"])

    def test_invalid_match_updates(self) -> None:
        """Bad payloads are rejected with a JSON error."""
        cases = [
            ({"winner": "player3"}, 400),
            ({"score1": "many"}, 400),
            ({"score1": -1}, 400),
            ({"score1": None}, 400),
            ({"nextMatchId": "final"}, 400),
            ({"revision": "one"}, 400),
        ]
        for payload, status in cases:
            with self.subTest(payload=payload):
                response = self.client.patch("/tournaments/t1/matches/qf1", json=payload)
                self.assertEqual(response.status_code, status)
                self.assertIn("error", response.get_json())

    def test_body_must_be_json_object(self) -> None:
        """A list body is not an update."""
        response = self.client.patch("/tournaments/t1/matches/qf1", json=[1, 2])
        self.assertEqual(response.status_code, 400)

    def test_unknown_match_is_404(self) -> None:
        """Updating a match that does not exist is reported as not found."""
        response = self.client.patch("/tournaments/t1/matches/qf9", json={"score1": 1})
        self.assertEqual(response.status_code, 404)
        self.assertIn("qf9", response.get_json()["error"])

    def test_stale_revision_is_409(self) -> None:
        """A client editing an outdated view gets a conflict and the current revision."""
        self.client.get("/tournaments/t1/data")
        first = self.client.patch(
            "/tournaments/t1/matches/qf1", json={"score1": 1, "revision": 1}
        )
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.get_json()["revision"], 2)

        second = self.client.patch(
            "/tournaments/t1/matches/qf1", json={"score1": 4, "revision": 1}
        )

        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.get_json()["revision"], 2)

    def test_read_revision_matches_returned_data(self) -> None:
        """A write right after the read cannot be hidden behind a newer revision."""
        self.client.get("/tournaments/t1/data")
        original = TournamentDataStore.get_with_revision

        def read_then_concurrent_write(data_store, tournament_id):
            snapshot = original(data_store, tournament_id)
            data_store.apply_match_update(tournament_id, "qf1", {"score1": 7})
            return snapshot

        with patch.object(
            TournamentDataStore, "get_with_revision", read_then_concurrent_write
        ):
            body = self.client.get("/tournaments/t1/data").get_json()

        self.assertEqual(body["revision"], 1)
        self.assertEqual(body["data"]["matches"]["qf1"]["score1"], 0)

        response = self.client.patch(
            "/tournaments/t1/matches/qf1",
            json={"score1": 1, "revision": body["revision"]},
        )
        self.assertEqual(response.status_code, 409)

    def test_blank_player_name_reopens_slot(self) -> None:
        """Clearing a name shows TBD again."""
        self.auto_fill(["Alice", "Bob"])

        for name in (None, ""):
            with self.subTest(name=name):
                response = self.client.patch(
                    "/tournaments/t1/matches/qf1", json={"player1": name}
                )
                self.assertEqual(response.status_code, 200)
                qf1 = response.get_json()["data"]["matches"]["qf1"]
                self.assertEqual(qf1["player1"], "TBD")

    def test_leaderboard_update_and_order(self) -> None:
        """Entries can be edited and are listed by score."""
        self.auto_fill(["Alice", "Bob", "Carol"])

        response = self.client.patch(
            "/tournaments/t1/leaderboard/p_2", json={"score": 50, "coins": 2}
        )
        self.assertEqual(response.status_code, 200)

        leaderboard = self.client.get("/tournaments/t1/leaderboard").get_json()
        self.assertEqual([e["username"] for e in leaderboard], ["Carol", "Alice", "Bob"])
        self.assertEqual(leaderboard[0]["coins"], 2)

    def test_leaderboard_errors(self) -> None:
        """Unknown entries are 404 and read-only fields are 400."""
        self.auto_fill(["Alice"])
        missing = self.client.patch("/tournaments/t1/leaderboard/p_9", json={"score": 1})
        readonly = self.client.patch("/tournaments/t1/leaderboard/p_0", json={"id": "x"})
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(readonly.status_code, 400)

    def test_auto_fill_requires_confirmation(self) -> None:
        """Without confirm the bracket is left alone."""
        self.client.get("/tournaments/t1/data")

        for payload in ({"participants": ["A"]}, {"participants": ["A"], "confirm": False}):
            with self.subTest(payload=payload):
                response = self.client.post("/tournaments/t1/auto-fill", json=payload)
                self.assertEqual(response.status_code, 400)

        self.assertEqual(self.store.ref("tournaments/t1").read()["leaderboard"], [])

    def test_auto_fill_seats_participants(self) -> None:
        """Confirmed auto-fill fills the quarterfinals in order."""
        response = self.client.post(
            "/tournaments/t1/auto-fill",
            json={"participants": ["A", "B", "C"], "confirm": True},
        )

        self.assertEqual(response.status_code, 200)
        matches = response.get_json()["data"]["matches"]
        self.assertEqual(matches["qf2"]["player1"], "C")
        self.assertEqual(matches["qf2"]["player2"], "TBD")

    def test_auto_fill_without_names_is_400(self) -> None:
        """There must be someone to seat."""
        response = self.client.post(
            "/tournaments/t1/auto-fill", json={"participants": [], "confirm": True}
        )
        self.assertEqual(response.status_code, 400)

    def test_stream_sends_current_data(self) -> None:
        """The event stream opens with the seeded bracket."""
        response = self.client.get("/tournaments/t1/stream")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, "text/event-stream")
        first = next(iter(response.response))
        if isinstance(first, bytes):
            first = first.decode()
        self.assertTrue(first.startswith('data: {"matches":{"qf1":'))
        response.close()


if __name__ == "__main__":
    unittest.main()
