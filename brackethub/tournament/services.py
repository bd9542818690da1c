"""Service layer for tournament business logic.

Each public mutation is one named Firestore transaction with a fixed set of
document writes, so the tournament roster and every profile's
``activeTournamentId`` pointer change together or not at all. Roster
changes while in setup are expressed as ArrayUnion/ArrayRemove deltas so
that concurrent joins and leaves commute.
"""

from __future__ import annotations

import logging
import random
import secrets
from typing import TYPE_CHECKING, Any, Callable

from brackethub.core.constants import (
    INVITE_TOKEN_BYTES,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_SETUP,
    TEAMS_COLLECTION,
    TOURNAMENT_TYPES,
    TOURNAMENTS_COLLECTION,
)
from brackethub.errors import (
    AlreadyRegisteredError,
    InsufficientParticipantsError,
    InvalidWinnerDeclarationError,
    NotFoundError,
    StaleWriteError,
    ValidationError,
)
from brackethub.teams.models import Team, TeamMember, pick_team_color
from brackethub.user.services import UserService

from .access import is_team_mode, require_organizer, require_status
from .bracket import (
    bracket_size,
    find_match,
    generate_bracket,
    matches_from_dicts,
    matches_to_dicts,
    set_winner,
    total_rounds_for,
)
from .models import (
    Individual,
    Participant,
    find_participant_entry,
    participant_member_ids,
    tournament_participants,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.document import DocumentReference

    from brackethub.store import StoreClient, Subscription
    from brackethub.user.models import UserProfile

    from .models import Tournament

logger = logging.getLogger(__name__)


def tournament_ref(store: StoreClient, tournament_id: str) -> DocumentReference:
    return store.document(TOURNAMENTS_COLLECTION, tournament_id)


def team_ref(store: StoreClient, tournament_id: str, team_id: str) -> DocumentReference:
    return store.document(TOURNAMENTS_COLLECTION, tournament_id, TEAMS_COLLECTION, team_id)


def require_tournament(
    store: StoreClient, tournament_id: str, transaction: Any = None
) -> Tournament:
    data = store.get(tournament_ref(store, tournament_id), transaction=transaction)
    if data is None:
        raise NotFoundError("Tournament not found.")
    return data  # type: ignore[return-value]


def _new_entry(
    profile: UserProfile, tournament_id: str, join_order: int, team_mode: bool
) -> tuple[dict[str, Any], Team | None]:
    """Participant entry for a joining user; team mode founds a new team."""
    if team_mode:
        captain = TeamMember.from_profile(profile)
        team = Team.for_captain(captain, tournament_id, pick_team_color(join_order))
        return team.to_dict(), team
    return Individual.from_profile(profile).to_dict(), None


def _read_profiles(
    store: StoreClient, user_ids: list[str], transaction: Any
) -> dict[str, UserProfile]:
    profiles = {}
    for uid in user_ids:
        profile = store.get(UserService.profile_ref(store, uid), transaction=transaction)
        if profile is not None:
            profiles[uid] = profile
    return profiles  # type: ignore[return-value]


def _clear_pointers(
    store: StoreClient,
    transaction: Any,
    profiles: dict[str, UserProfile],
    tournament_id: str,
) -> None:
    for uid, profile in profiles.items():
        if profile.get("activeTournamentId") == tournament_id:
            transaction.update(
                UserService.profile_ref(store, uid),
                UserService.active_tournament_update(None),
            )


def _flatten_member_ids(participants: list[Participant]) -> list[str]:
    member_ids: list[str] = []
    for participant in participants:
        for uid in participant_member_ids(participant):
            if uid not in member_ids:
                member_ids.append(uid)
    return member_ids


def _team_ids(data: Tournament) -> list[str]:
    """Ids of every team document a team-mode tournament may own.

    Teams still registered are in ``playerIds``; teams kicked during play
    only survive in the bracket.
    """
    team_ids = list(data.get("playerIds", []))
    for match in matches_from_dicts(data.get("matches", [])):
        for player in match.players:
            if isinstance(player, Team) and player.id not in team_ids:
                team_ids.append(player.id)
    return team_ids


class TournamentService:
    """Handles business logic and data access for tournaments."""

    # Reads -------------------------------------------------------------

    @staticmethod
    def get_tournament(store: StoreClient, tournament_id: str) -> Tournament:
        return require_tournament(store, tournament_id)

    @staticmethod
    def list_open_tournaments(store: StoreClient, limit: int = 50) -> list[Tournament]:
        """Tournaments still accepting players."""
        collection = store.db.collection(TOURNAMENTS_COLLECTION)
        query = store.where(collection, "status", "==", STATUS_SETUP).limit(limit)
        return store.stream(query)  # type: ignore[return-value]

    @staticmethod
    def get_active_tournament(store: StoreClient, user_id: str) -> Tournament | None:
        """The tournament the user's profile currently points at, if any."""
        profile = UserService.get_profile(store, user_id)
        if not profile or not profile.get("activeTournamentId"):
            return None
        return store.get(tournament_ref(store, profile["activeTournamentId"]))  # type: ignore[return-value]

    @staticmethod
    def subscribe(
        store: StoreClient,
        tournament_id: str,
        callback: Callable[[Tournament | None], None],
    ) -> Subscription:
        """Push every new snapshot of the tournament to ``callback``."""
        return store.subscribe(tournament_ref(store, tournament_id), callback)  # type: ignore[arg-type]

    # Lifecycle ---------------------------------------------------------

    @staticmethod
    def create_tournament(
        store: StoreClient,
        organizer_id: str,
        name: str,
        tournament_type: str,
        participate: bool = True,
    ) -> str:
        """Create a tournament in setup and return its ID."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Please enter a name for your tournament.")
        if tournament_type not in TOURNAMENT_TYPES:
            raise ValidationError(f"Unknown tournament type: {tournament_type}.")

        ref = store.new_document(TOURNAMENTS_COLLECTION)
        tournament_id = ref.id
        organizer_ref = UserService.profile_ref(store, organizer_id)

        def _create(transaction: Any) -> None:
            organizer = UserService.require_profile(store, organizer_id, transaction)
            payload: dict[str, Any] = {
                "name": name,
                "type": tournament_type,
                "organizerId": organizer_id,
                "organizerUsername": organizer.get("username"),
                "organizerPhotoURL": organizer.get("photoURL"),
                "status": STATUS_SETUP,
                "players": [],
                "playerIds": [],
                "memberIds": [],
                "matches": [],
                "isBracketGenerated": False,
                "bracketSize": 0,
                "totalRounds": 0,
                "tournamentWinner": None,
                "inviteToken": None,
                "rules": {"description": "", "schedule": "", "bannedItems": []},
                "version": 0,
                "createdAt": store.server_timestamp(),
            }
            profile_updates = UserService.stats_increments(store, hosted=1)
            team = None

            if participate:
                entry, team = _new_entry(
                    organizer, tournament_id, 0, is_team_mode({"type": tournament_type})
                )
                payload["players"] = [entry]
                payload["playerIds"] = [entry["id"]]
                payload["memberIds"] = [organizer_id]
                profile_updates.update(UserService.active_tournament_update(tournament_id))

            transaction.set(ref, payload)
            if team is not None:
                transaction.set(team_ref(store, tournament_id, team.id), team.to_document())
            transaction.update(organizer_ref, profile_updates)

        store.run_transaction(_create)
        logger.info(f"Tournament {tournament_id} created by {organizer_id}")
        return tournament_id

    @staticmethod
    def start_tournament(
        store: StoreClient,
        tournament_id: str,
        user_id: str,
        rng: random.Random | None = None,
    ) -> list[dict[str, Any]]:
        """Generate the bracket and move the tournament to in_progress."""
        ref = tournament_ref(store, tournament_id)

        def _start(transaction: Any) -> list[dict[str, Any]]:
            data = require_tournament(store, tournament_id, transaction)
            require_organizer(data, user_id, "start the tournament")
            require_status(data, STATUS_SETUP, "start the tournament")

            participants = tournament_participants(data)
            if is_team_mode(data):
                # Team documents hold the live rosters until the bracket freezes them.
                teams: list[Participant] = []
                for participant in participants:
                    team_doc = store.get(
                        team_ref(store, tournament_id, participant.id), transaction=transaction
                    )
                    teams.append(Team.from_dict(team_doc) if team_doc else participant)
                participants = teams

            if len(participants) < 2:
                raise InsufficientParticipantsError(
                    "You need at least 2 players to start the tournament."
                )

            matches = matches_to_dicts(generate_bracket(participants, rng))
            member_ids = _flatten_member_ids(participants)
            profiles = _read_profiles(store, member_ids, transaction)

            transaction.update(
                ref,
                {
                    "status": STATUS_IN_PROGRESS,
                    "players": [p.to_dict() for p in participants],
                    "memberIds": member_ids,
                    "matches": matches,
                    "isBracketGenerated": True,
                    "bracketSize": bracket_size(len(participants)),
                    "totalRounds": total_rounds_for(len(participants)),
                    "version": data.get("version", 0) + 1,
                    "startedAt": store.server_timestamp(),
                },
            )
            for uid in profiles:
                transaction.update(
                    UserService.profile_ref(store, uid),
                    UserService.active_tournament_update(tournament_id),
                )
            return matches

        matches = store.run_transaction(_start)
        logger.info(f"Tournament {tournament_id} started with {len(matches)} matches")
        return matches

    @staticmethod
    def declare_winner(
        store: StoreClient,
        tournament_id: str,
        user_id: str,
        match_id: int,
        winner_id: str,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        """Record a match result and advance the bracket.

        Runs as one transaction, so racing organizer sessions are serialised:
        the second writer re-reads the match, and either finds the same winner
        (a no-op) or is rejected. Deciding the final completes the tournament
        and updates every participant's stats in the same commit.
        """
        ref = tournament_ref(store, tournament_id)

        def _declare(transaction: Any) -> dict[str, Any]:
            data = require_tournament(store, tournament_id, transaction)
            require_organizer(data, user_id, "declare match winners")

            version = data.get("version", 0)
            matches = matches_from_dicts(data.get("matches", []))
            match = find_match(matches, match_id)

            if match.winner is not None and match.winner.id == winner_id:
                return {
                    "matches": data.get("matches", []),
                    "status": data.get("status"),
                    "tournamentWinner": data.get("tournamentWinner"),
                    "version": version,
                    "changed": False,
                }
            if expected_version is not None and expected_version != version:
                raise StaleWriteError()
            if match.winner is not None:
                raise InvalidWinnerDeclarationError(
                    f"Match {match_id} was already won by {match.winner.name}."
                )
            require_status(data, STATUS_IN_PROGRESS, "declare match winners")

            winner = next(
                (p for p in match.players if p is not None and p.id == winner_id), None
            )
            if winner is None:
                raise InvalidWinnerDeclarationError(
                    f"{winner_id} is not playing in match {match_id}."
                )

            advancement = set_winner(
                matches, match_id, winner, data.get("totalRounds") or None
            )
            updates: dict[str, Any] = {
                "matches": matches_to_dicts(advancement.matches),
                "version": version + 1,
            }
            result = {
                "matches": updates["matches"],
                "status": data.get("status"),
                "tournamentWinner": None,
                "version": version + 1,
                "changed": True,
            }

            if not advancement.is_complete:
                transaction.update(ref, updates)
                return result

            champion = advancement.tournament_winner
            played_ids = _flatten_member_ids(tournament_participants(data))
            won_ids = participant_member_ids(champion)
            profiles = _read_profiles(
                store, played_ids + [u for u in won_ids if u not in played_ids], transaction
            )

            updates.update(
                {
                    "status": STATUS_COMPLETED,
                    "tournamentWinner": champion.to_dict(),
                    "completedAt": store.server_timestamp(),
                }
            )
            transaction.update(ref, updates)
            for uid in profiles:
                transaction.update(
                    UserService.profile_ref(store, uid),
                    UserService.stats_increments(
                        store,
                        played=1 if uid in played_ids else 0,
                        won=1 if uid in won_ids else 0,
                    ),
                )
            result.update(
                {"status": STATUS_COMPLETED, "tournamentWinner": champion.to_dict()}
            )
            return result

        result = store.run_transaction(_declare)
        if result["changed"]:
            logger.info(
                f"Tournament {tournament_id}: {winner_id} won match {match_id}"
            )
            if result["status"] == STATUS_COMPLETED:
                logger.info(f"Tournament {tournament_id} completed, winner {winner_id}")
        return result

    @staticmethod
    def delete_tournament(store: StoreClient, tournament_id: str, user_id: str) -> None:
        """Delete a tournament, its teams, and any profile pointers to it."""
        ref = tournament_ref(store, tournament_id)

        def _delete(transaction: Any) -> None:
            data = require_tournament(store, tournament_id, transaction)
            require_organizer(data, user_id, "delete the tournament")
            team_ids = _team_ids(data) if is_team_mode(data) else []
            member_ids = list(data.get("memberIds", []))
            if data.get("organizerId") not in member_ids:
                member_ids.append(data["organizerId"])
            profiles = _read_profiles(store, member_ids, transaction)

            for team_id in team_ids:
                transaction.delete(team_ref(store, tournament_id, team_id))
            transaction.delete(ref)
            _clear_pointers(store, transaction, profiles, tournament_id)

        store.run_transaction(_delete)
        logger.info(f"Tournament {tournament_id} deleted by {user_id}")

    # Roster ------------------------------------------------------------

    @staticmethod
    def join_tournament(
        store: StoreClient, tournament_id: str, user_id: str
    ) -> dict[str, Any]:
        """Add the user to a tournament in setup; returns their bracket entry."""
        ref = tournament_ref(store, tournament_id)

        def _join(transaction: Any) -> dict[str, Any]:
            data = require_tournament(store, tournament_id, transaction)
            profile = UserService.require_profile(store, user_id, transaction)
            require_status(data, STATUS_SETUP, "join the tournament")
            if user_id in data.get("memberIds", []) or user_id in data.get("playerIds", []):
                raise AlreadyRegisteredError()

            entry, team = _new_entry(
                profile, tournament_id, len(data.get("players", [])), is_team_mode(data)
            )
            if team is not None:
                transaction.set(team_ref(store, tournament_id, team.id), team.to_document())
            transaction.update(
                ref,
                {
                    "players": store.array_union([entry]),
                    "playerIds": store.array_union([entry["id"]]),
                    "memberIds": store.array_union([user_id]),
                },
            )
            transaction.update(
                UserService.profile_ref(store, user_id),
                UserService.active_tournament_update(tournament_id),
            )
            return entry

        entry = store.run_transaction(_join)
        logger.info(f"{user_id} joined tournament {tournament_id}")
        return entry

    @staticmethod
    def leave_tournament(store: StoreClient, tournament_id: str, user_id: str) -> None:
        """Withdraw from a tournament in setup."""
        data = require_tournament(store, tournament_id)
        if is_team_mode(data):
            from brackethub.teams.services import TeamService

            team = TeamService.find_member_team(store, tournament_id, user_id)
            if team is None:
                raise NotFoundError("You are not registered in this tournament.")
            TeamService.leave_or_disband(store, tournament_id, team["id"], user_id)
            return

        ref = tournament_ref(store, tournament_id)

        def _leave(transaction: Any) -> None:
            data = require_tournament(store, tournament_id, transaction)
            require_status(data, STATUS_SETUP, "leave the tournament")
            entry = find_participant_entry(data, user_id)
            if entry is None:
                raise NotFoundError("You are not registered in this tournament.")
            profiles = _read_profiles(store, [user_id], transaction)

            transaction.update(
                ref,
                {
                    "players": store.array_remove([entry]),
                    "playerIds": store.array_remove([user_id]),
                    "memberIds": store.array_remove([user_id]),
                },
            )
            _clear_pointers(store, transaction, profiles, tournament_id)

        store.run_transaction(_leave)
        logger.info(f"{user_id} left tournament {tournament_id}")

    @staticmethod
    def kick_participant(
        store: StoreClient, tournament_id: str, user_id: str, participant_id: str
    ) -> None:
        """Remove a participant (a player or a whole team) from the roster.

        Allowed in setup and in progress. The bracket is never rewritten: a
        kicked participant's scheduled matches keep their slots.
        """
        ref = tournament_ref(store, tournament_id)

        def _kick(transaction: Any) -> None:
            data = require_tournament(store, tournament_id, transaction)
            require_organizer(data, user_id, "kick participants")
            require_status(data, (STATUS_SETUP, STATUS_IN_PROGRESS), "kick participants")
            if participant_id == user_id:
                raise ValidationError("Use leave to withdraw from your own tournament.")

            entry = find_participant_entry(data, participant_id)
            if entry is None:
                raise NotFoundError("That participant is not in this tournament.")

            in_setup = data.get("status") == STATUS_SETUP
            team_doc = None
            if is_team_mode(data) and in_setup:
                team_doc = store.get(
                    team_ref(store, tournament_id, participant_id), transaction=transaction
                )
            if team_doc is not None:
                member_ids = list(team_doc.get("memberIds", [participant_id]))
            else:
                member_ids = _flatten_member_ids(tournament_participants({"players": [entry]}))
            profiles = _read_profiles(store, member_ids, transaction)

            transaction.update(
                ref,
                {
                    "players": store.array_remove([entry]),
                    "playerIds": store.array_remove([participant_id]),
                    "memberIds": store.array_remove(member_ids),
                },
            )
            if team_doc is not None:
                transaction.delete(team_ref(store, tournament_id, participant_id))
            _clear_pointers(store, transaction, profiles, tournament_id)

        store.run_transaction(_kick)
        logger.info(f"{participant_id} kicked from tournament {tournament_id} by {user_id}")

    # Invites and settings ----------------------------------------------

    @staticmethod
    def generate_invite_token(store: StoreClient, tournament_id: str, user_id: str) -> str:
        """Store a fresh invite token on the tournament and return it."""
        data = require_tournament(store, tournament_id)
        require_organizer(data, user_id, "create invite links")
        require_status(data, STATUS_SETUP, "create invite links")
        token = secrets.token_urlsafe(INVITE_TOKEN_BYTES)
        store.update(tournament_ref(store, tournament_id), {"inviteToken": token})
        return token

    @staticmethod
    def resolve_invite_token(store: StoreClient, token: str) -> Tournament:
        """Find the open tournament an invite token belongs to."""
        if not token:
            raise NotFoundError("This invite link is invalid or has expired.")
        collection = store.db.collection(TOURNAMENTS_COLLECTION)
        query = store.where(collection, "inviteToken", "==", token)
        query = store.where(query, "status", "==", STATUS_SETUP)
        results = store.stream(query.limit(1))
        if not results:
            raise NotFoundError("This invite link is invalid or has expired.")
        return results[0]  # type: ignore[return-value]

    @staticmethod
    def join_by_invite(store: StoreClient, token: str, user_id: str) -> tuple[str, dict[str, Any]]:
        """Consume an invite token through the regular join path."""
        tournament = TournamentService.resolve_invite_token(store, token)
        entry = TournamentService.join_tournament(store, tournament["id"], user_id)
        return tournament["id"], entry

    @staticmethod
    def update_rules(
        store: StoreClient,
        tournament_id: str,
        user_id: str,
        description: str = "",
        schedule: str = "",
        banned_items: list[str] | None = None,
    ) -> dict[str, Any]:
        """Replace the tournament's published rules."""
        data = require_tournament(store, tournament_id)
        require_organizer(data, user_id, "edit tournament settings")

        cleaned: list[str] = []
        for item in banned_items or []:
            item = (item or "").strip()
            if item and item not in cleaned:
                cleaned.append(item)

        rules = {
            "description": (description or "").strip(),
            "schedule": (schedule or "").strip(),
            "bannedItems": cleaned,
        }
        store.update(tournament_ref(store, tournament_id), {"rules": rules})
        return rules
