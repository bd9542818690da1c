"""Tests for TeamService."""

from __future__ import annotations

import random
import unittest
from unittest.mock import patch

from brackethub.core.constants import STATUS_COMPLETED, TEAM_COLORS, TYPE_TEAMS
from brackethub.errors import (
    AlreadyMemberError,
    AlreadyRegisteredError,
    InvalidStateError,
    NotFoundError,
    TeamFullError,
    UnauthorizedError,
    ValidationError,
)
from brackethub.teams.models import Team
from brackethub.teams.services import TeamService
from brackethub.tournament.services import TournamentService
from tests.conftest import FirestoreTestCase


class TestTeamService(FirestoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.add_user("org", "organizer")
        for name in ("alice", "bob", "carol", "dave", "erin", "frank"):
            self.add_user(name)
        self.tid = TournamentService.create_tournament(
            self.store, "org", "Team Night", TYPE_TEAMS, participate=False
        )
        TournamentService.join_tournament(self.store, self.tid, "alice")

    def assert_team_invariants(self, team_id: str) -> None:
        team = self.team(self.tid, team_id)
        self.assertTrue(1 <= len(team["members"]) <= 4)
        self.assertIn(team["captainId"], [m["uid"] for m in team["members"]])
        self.assertEqual(team["memberIds"], [m["uid"] for m in team["members"]])

    def test_join_creates_team(self) -> None:
        team = self.team(self.tid, "alice")
        self.assertEqual(team["name"], "alice's Team")
        self.assertEqual(team["captainId"], "alice")
        self.assertEqual(team["memberIds"], ["alice"])
        self.assertEqual(team["color"], TEAM_COLORS[0])

        data = self.tournament(self.tid)
        self.assertEqual(data["playerIds"], ["alice"])
        self.assertEqual(data["players"][0]["kind"], "team")

    def test_team_colours_follow_join_order(self) -> None:
        TournamentService.join_tournament(self.store, self.tid, "bob")
        self.assertEqual(self.team(self.tid, "bob")["color"], TEAM_COLORS[1])

    def test_invite_until_full(self) -> None:
        for uid in ("bob", "carol", "dave"):
            team = TeamService.invite_member(self.store, self.tid, "alice", "alice", uid)
            self.assertIsInstance(team, Team)
            self.assert_team_invariants("alice")
            self.assertEqual(self.profile(uid)["activeTournamentId"], self.tid)

        self.assertEqual(len(self.team(self.tid, "alice")["members"]), 4)
        with self.assertRaises(TeamFullError):
            TeamService.invite_member(self.store, self.tid, "alice", "alice", "erin")

        self.assertEqual(len(self.team(self.tid, "alice")["members"]), 4)
        self.assertNotIn("erin", self.tournament(self.tid)["memberIds"])
        self.assertIsNone(self.profile("erin")["activeTournamentId"])

    def test_invite_existing_member(self) -> None:
        TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")
        with self.assertRaises(AlreadyMemberError):
            TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")

    def test_invite_player_on_another_team(self) -> None:
        TournamentService.join_tournament(self.store, self.tid, "bob")
        with self.assertRaises(AlreadyRegisteredError):
            TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")

    def test_only_captain_invites(self) -> None:
        TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")
        with self.assertRaises(UnauthorizedError):
            TeamService.invite_member(self.store, self.tid, "alice", "bob", "carol")

    def test_invite_unknown_team(self) -> None:
        with self.assertRaises(NotFoundError):
            TeamService.invite_member(self.store, self.tid, "nobody", "alice", "bob")

    def test_remove_member(self) -> None:
        TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")
        TeamService.remove_member(self.store, self.tid, "alice", "alice", "bob")

        self.assertEqual(self.team(self.tid, "alice")["memberIds"], ["alice"])
        self.assertNotIn("bob", self.tournament(self.tid)["memberIds"])
        self.assertIsNone(self.profile("bob")["activeTournamentId"])
        self.assert_team_invariants("alice")

    def test_captain_cannot_be_removed(self) -> None:
        with self.assertRaises(ValidationError):
            TeamService.remove_member(self.store, self.tid, "alice", "alice", "alice")
        self.assert_team_invariants("alice")

    def test_only_captain_removes(self) -> None:
        TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")
        TeamService.invite_member(self.store, self.tid, "alice", "alice", "carol")
        with self.assertRaises(UnauthorizedError):
            TeamService.remove_member(self.store, self.tid, "alice", "bob", "carol")

    def test_member_leaves(self) -> None:
        TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")
        outcome = TeamService.leave_or_disband(self.store, self.tid, "alice", "bob")

        self.assertEqual(outcome, "left")
        self.assertEqual(self.team(self.tid, "alice")["memberIds"], ["alice"])
        self.assertIsNone(self.profile("bob")["activeTournamentId"])
        self.assertEqual(self.tournament(self.tid)["playerIds"], ["alice"])

    def test_captain_leaving_disbands_team(self) -> None:
        TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")
        outcome = TeamService.leave_or_disband(self.store, self.tid, "alice", "alice")

        self.assertEqual(outcome, "disbanded")
        self.assertIsNone(self.team(self.tid, "alice"))
        data = self.tournament(self.tid)
        self.assertEqual(data["players"], [])
        self.assertEqual(data["playerIds"], [])
        self.assertEqual(data["memberIds"], [])
        self.assertIsNone(self.profile("alice")["activeTournamentId"])
        self.assertIsNone(self.profile("bob")["activeTournamentId"])

    def test_leave_tournament_delegates_to_team(self) -> None:
        TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")
        TournamentService.leave_tournament(self.store, self.tid, "bob")
        self.assertEqual(self.team(self.tid, "alice")["memberIds"], ["alice"])

        with self.assertRaises(NotFoundError):
            TournamentService.leave_tournament(self.store, self.tid, "bob")

    def test_kick_team_in_setup(self) -> None:
        TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")
        TournamentService.kick_participant(self.store, self.tid, "org", "alice")

        self.assertIsNone(self.team(self.tid, "alice"))
        data = self.tournament(self.tid)
        self.assertEqual(data["playerIds"], [])
        self.assertEqual(data["memberIds"], [])
        self.assertIsNone(self.profile("bob")["activeTournamentId"])

    def test_rosters_frozen_after_start(self) -> None:
        TournamentService.join_tournament(self.store, self.tid, "carol")
        TournamentService.start_tournament(self.store, self.tid, "org", random.Random(1))
        with self.assertRaises(InvalidStateError):
            TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")

    def test_start_materialises_teams_and_credits_members(self) -> None:
        TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")
        TournamentService.join_tournament(self.store, self.tid, "carol")
        TeamService.invite_member(self.store, self.tid, "carol", "carol", "dave")

        TournamentService.start_tournament(self.store, self.tid, "org", random.Random(1))
        data = self.tournament(self.tid)
        rosters = {p["id"]: [m["uid"] for m in p["members"]] for p in data["players"]}
        self.assertEqual(rosters, {"alice": ["alice", "bob"], "carol": ["carol", "dave"]})
        self.assertEqual(sorted(data["memberIds"]), ["alice", "bob", "carol", "dave"])

        result = TournamentService.declare_winner(self.store, self.tid, "org", 0, "carol")
        self.assertEqual(result["status"], STATUS_COMPLETED)
        self.assertEqual(result["tournamentWinner"]["kind"], "team")
        for uid in ("alice", "bob", "carol", "dave"):
            stats = self.profile(uid)["stats"]
            self.assertEqual(stats["tournamentsPlayed"], 1)
            self.assertEqual(stats["tournamentsWon"], 1 if uid in ("carol", "dave") else 0)

    def test_delete_removes_every_team_document(self) -> None:
        TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")
        TournamentService.join_tournament(self.store, self.tid, "carol")
        TournamentService.join_tournament(self.store, self.tid, "dave")
        TournamentService.start_tournament(self.store, self.tid, "org", random.Random(1))
        TournamentService.kick_participant(self.store, self.tid, "org", "dave")
        self.assertNotIn("dave", self.tournament(self.tid)["playerIds"])

        # Team ids come from the tournament read inside the transaction.
        with patch.object(self.store, "stream", side_effect=AssertionError("query")):
            TournamentService.delete_tournament(self.store, self.tid, "org")

        for team_id in ("alice", "carol", "dave"):
            self.assertIsNone(self.team(self.tid, team_id))
        for uid in ("alice", "bob", "carol"):
            self.assertIsNone(self.profile(uid)["activeTournamentId"])

    def test_search_candidates_excludes_members(self) -> None:
        TeamService.invite_member(self.store, self.tid, "alice", "alice", "bob")
        names = [
            p["username"]
            for p in TeamService.search_candidates(self.store, self.tid, "alice", "")
        ]
        self.assertEqual(names, [])

        names = [
            p["username"]
            for p in TeamService.search_candidates(self.store, self.tid, "alice", "B")
        ]
        self.assertEqual(names, [])

        self.add_user("bella")
        names = [
            p["username"]
            for p in TeamService.search_candidates(self.store, self.tid, "alice", "b")
        ]
        self.assertEqual(names, ["bella"])

    def test_rename_team(self) -> None:
        TeamService.rename_team(self.store, self.tid, "alice", "alice", "  Red Shells ")
        self.assertEqual(self.team(self.tid, "alice")["name"], "Red Shells")
        self.assertEqual(self.tournament(self.tid)["players"][0]["name"], "Red Shells")

        with self.assertRaises(UnauthorizedError):
            TeamService.rename_team(self.store, self.tid, "alice", "bob", "Mine")

    def test_rename_only_touches_the_renamed_entry(self) -> None:
        TournamentService.join_tournament(self.store, self.tid, "bob")
        bob_entry = self.tournament(self.tid)["players"][1]

        TeamService.rename_team(self.store, self.tid, "alice", "alice", "Green Shells")

        players = self.tournament(self.tid)["players"]
        self.assertEqual([p["id"] for p in players], ["alice", "bob"])
        self.assertEqual(players[0]["name"], "Green Shells")
        self.assertEqual(players[1], bob_entry)
        self.assertEqual(self.tournament(self.tid)["playerIds"], ["alice", "bob"])

    def test_rename_rejected_after_start(self) -> None:
        TournamentService.join_tournament(self.store, self.tid, "bob")
        TournamentService.start_tournament(self.store, self.tid, "org", random.Random(1))
        with self.assertRaises(InvalidStateError):
            TeamService.rename_team(self.store, self.tid, "alice", "alice", "Late")

    def test_list_teams(self) -> None:
        TournamentService.join_tournament(self.store, self.tid, "bob")
        TeamService.invite_member(self.store, self.tid, "bob", "bob", "carol")
        teams = TeamService.list_teams(self.store, self.tid)
        self.assertEqual([t["id"] for t in teams], ["bob", "alice"])


if __name__ == "__main__":
    unittest.main()
