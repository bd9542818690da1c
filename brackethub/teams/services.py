"""Service layer for team roster operations.

Teams live in ``tournaments/{id}/teams`` while the tournament is in setup.
Every roster change also touches the tournament's ``memberIds`` and the
affected profiles' ``activeTournamentId`` in the same transaction.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from brackethub.core.constants import (
    STATUS_SETUP,
    TEAMS_COLLECTION,
    TOURNAMENTS_COLLECTION,
)
from brackethub.errors import (
    AlreadyMemberError,
    AlreadyRegisteredError,
    NotFoundError,
    TeamFullError,
    UnauthorizedError,
    ValidationError,
)
from brackethub.tournament.access import require_status
from brackethub.tournament.models import find_participant_entry
from brackethub.user.services import UserService

from .models import Team, TeamMember

if TYPE_CHECKING:
    from google.cloud.firestore_v1.document import DocumentReference

    from brackethub.store import StoreClient
    from brackethub.user.models import UserProfile

    from .models import TeamDocument

logger = logging.getLogger(__name__)


def _tournament_ref(store: StoreClient, tournament_id: str) -> DocumentReference:
    return store.document(TOURNAMENTS_COLLECTION, tournament_id)


def _read_roster_change(
    store: StoreClient, tournament_id: str, team_id: str, transaction: Any
) -> tuple[dict[str, Any], TeamDocument]:
    """Read the tournament and team inside a transaction; setup only."""
    tournament = store.get(_tournament_ref(store, tournament_id), transaction=transaction)
    if tournament is None:
        raise NotFoundError("Tournament not found.")
    team_doc = store.get(
        TeamService.team_ref(store, tournament_id, team_id), transaction=transaction
    )
    if team_doc is None:
        raise NotFoundError("Team not found.")
    require_status(tournament, STATUS_SETUP, "change team rosters")
    return tournament, team_doc  # type: ignore[return-value]


def _member_entry(team_doc: TeamDocument, user_id: str) -> dict[str, Any] | None:
    """The exact stored roster element for ``user_id``, as ArrayRemove needs."""
    for member in team_doc.get("members", []):
        if member.get("uid") == user_id:
            return member
    return None


class TeamService:
    """Service class for team-related operations."""

    @staticmethod
    def team_ref(store: StoreClient, tournament_id: str, team_id: str) -> DocumentReference:
        return store.document(TOURNAMENTS_COLLECTION, tournament_id, TEAMS_COLLECTION, team_id)

    @staticmethod
    def get_team(store: StoreClient, tournament_id: str, team_id: str) -> TeamDocument:
        team = store.get(TeamService.team_ref(store, tournament_id, team_id))
        if team is None:
            raise NotFoundError("Team not found.")
        return team  # type: ignore[return-value]

    @staticmethod
    def list_teams(store: StoreClient, tournament_id: str) -> list[TeamDocument]:
        """All teams of a tournament, largest roster first."""
        collection = _tournament_ref(store, tournament_id).collection(TEAMS_COLLECTION)
        teams = store.stream(collection)
        teams.sort(key=lambda t: (-len(t.get("memberIds", [])), t.get("name", "")))
        return teams  # type: ignore[return-value]

    @staticmethod
    def find_member_team(
        store: StoreClient, tournament_id: str, user_id: str
    ) -> TeamDocument | None:
        """The team in a tournament whose roster includes ``user_id``."""
        collection = _tournament_ref(store, tournament_id).collection(TEAMS_COLLECTION)
        query = store.where(collection, "memberIds", "array_contains", user_id)
        results = store.stream(query.limit(1))
        return results[0] if results else None  # type: ignore[return-value]

    @staticmethod
    def search_candidates(
        store: StoreClient, tournament_id: str, team_id: str, query: str
    ) -> list[UserProfile]:
        """Users matching a username prefix who are not already on the team."""
        team = TeamService.get_team(store, tournament_id, team_id)
        return UserService.search_users(
            store, query, exclude_ids=team.get("memberIds", [])
        )

    @staticmethod
    def invite_member(
        store: StoreClient,
        tournament_id: str,
        team_id: str,
        user_id: str,
        invitee_id: str,
    ) -> Team:
        """Add ``invitee_id`` to a team. Only the captain may invite."""
        team_ref = TeamService.team_ref(store, tournament_id, team_id)

        def _invite(transaction: Any) -> Team:
            tournament, team_doc = _read_roster_change(
                store, tournament_id, team_id, transaction
            )
            invitee = UserService.require_profile(store, invitee_id, transaction)
            team = Team.from_dict(team_doc)

            if user_id != team.captainId:
                raise UnauthorizedError("Only the team captain can invite players.")
            if invitee_id in team.member_ids:
                raise AlreadyMemberError()
            if team.is_full:
                raise TeamFullError()
            if invitee_id in tournament.get("memberIds", []):
                raise AlreadyRegisteredError(
                    "That player is already taking part in this tournament."
                )

            member = TeamMember.from_profile(invitee)
            transaction.update(
                team_ref,
                {
                    "members": store.array_union([member.to_dict()]),
                    "memberIds": store.array_union([invitee_id]),
                },
            )
            transaction.update(
                _tournament_ref(store, tournament_id),
                {"memberIds": store.array_union([invitee_id])},
            )
            transaction.update(
                UserService.profile_ref(store, invitee_id),
                UserService.active_tournament_update(tournament_id),
            )
            return Team(
                id=team.id,
                name=team.name,
                captainId=team.captainId,
                members=team.members + (member,),
                color=team.color,
                tournamentId=team.tournamentId,
            )

        team = store.run_transaction(_invite)
        logger.info(f"{invitee_id} added to team {team_id} in tournament {tournament_id}")
        return team

    @staticmethod
    def remove_member(
        store: StoreClient,
        tournament_id: str,
        team_id: str,
        user_id: str,
        member_id: str,
    ) -> None:
        """Captain removes a member from the roster."""
        team_ref = TeamService.team_ref(store, tournament_id, team_id)

        def _remove(transaction: Any) -> None:
            _, team_doc = _read_roster_change(store, tournament_id, team_id, transaction)
            if user_id != team_doc.get("captainId"):
                raise UnauthorizedError("Only the team captain can remove players.")
            if member_id == team_doc.get("captainId"):
                raise ValidationError("The captain cannot be removed; leave to disband the team.")
            entry = _member_entry(team_doc, member_id)
            if entry is None:
                raise NotFoundError("That player is not on this team.")
            profile = store.get(
                UserService.profile_ref(store, member_id), transaction=transaction
            )

            transaction.update(
                team_ref,
                {
                    "members": store.array_remove([entry]),
                    "memberIds": store.array_remove([member_id]),
                },
            )
            transaction.update(
                _tournament_ref(store, tournament_id),
                {"memberIds": store.array_remove([member_id])},
            )
            if profile and profile.get("activeTournamentId") == tournament_id:
                transaction.update(
                    UserService.profile_ref(store, member_id),
                    UserService.active_tournament_update(None),
                )

        store.run_transaction(_remove)
        logger.info(f"{member_id} removed from team {team_id} by {user_id}")

    @staticmethod
    def leave_or_disband(
        store: StoreClient, tournament_id: str, team_id: str, user_id: str
    ) -> str:
        """Leave a team. When the captain leaves, the whole team is disbanded.

        Returns ``"disbanded"`` or ``"left"``.
        """
        team_ref = TeamService.team_ref(store, tournament_id, team_id)
        tournament_ref = _tournament_ref(store, tournament_id)

        def _leave(transaction: Any) -> str:
            tournament, team_doc = _read_roster_change(
                store, tournament_id, team_id, transaction
            )
            entry = _member_entry(team_doc, user_id)
            if entry is None:
                raise NotFoundError("You are not on this team.")

            is_captain = user_id == team_doc.get("captainId")
            affected = list(team_doc.get("memberIds", [])) if is_captain else [user_id]
            profiles = {}
            for uid in affected:
                profile = store.get(
                    UserService.profile_ref(store, uid), transaction=transaction
                )
                if profile is not None:
                    profiles[uid] = profile

            if is_captain:
                tournament_updates: dict[str, Any] = {
                    "playerIds": store.array_remove([team_id]),
                    "memberIds": store.array_remove(affected),
                }
                player_entry = find_participant_entry(tournament, team_id)  # type: ignore[arg-type]
                if player_entry is not None:
                    tournament_updates["players"] = store.array_remove([player_entry])
                transaction.delete(team_ref)
                transaction.update(tournament_ref, tournament_updates)
            else:
                transaction.update(
                    team_ref,
                    {
                        "members": store.array_remove([entry]),
                        "memberIds": store.array_remove([user_id]),
                    },
                )
                transaction.update(
                    tournament_ref, {"memberIds": store.array_remove([user_id])}
                )

            for uid, profile in profiles.items():
                if profile.get("activeTournamentId") == tournament_id:
                    transaction.update(
                        UserService.profile_ref(store, uid),
                        UserService.active_tournament_update(None),
                    )
            return "disbanded" if is_captain else "left"

        outcome = store.run_transaction(_leave)
        logger.info(f"{user_id} {outcome} team {team_id} in tournament {tournament_id}")
        return outcome

    @staticmethod
    def rename_team(
        store: StoreClient,
        tournament_id: str,
        team_id: str,
        user_id: str,
        name: str,
    ) -> None:
        """Captain renames the team while the tournament is in setup."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Team name cannot be empty.")
        team_ref = TeamService.team_ref(store, tournament_id, team_id)
        tournament_ref = _tournament_ref(store, tournament_id)

        def _rename(transaction: Any) -> None:
            tournament, team_doc = _read_roster_change(
                store, tournament_id, team_id, transaction
            )
            if user_id != team_doc.get("captainId"):
                raise UnauthorizedError("Only the team captain can rename the team.")
            transaction.update(team_ref, {"name": name})

            # Keep the roster entry's display name in step with the team. No
            # array delta renames an element, so the list read through this
            # transaction is written back whole.
            if find_participant_entry(tournament, team_id) is not None:  # type: ignore[arg-type]
                players = [
                    dict(p, name=name) if p.get("id") == team_id else p
                    for p in tournament.get("players", [])
                ]
                transaction.update(tournament_ref, {"players": players})

        store.run_transaction(_rename)
