"""Data models for the tournament blueprint."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, TypedDict, Union

from brackethub.core.constants import BYE_ID
from brackethub.core.types import FirestoreDocument
from brackethub.teams.models import Team


@dataclass(frozen=True)
class Individual:
    """A single account competing on its own."""

    kind: ClassVar[str] = "individual"

    id: str
    name: str
    photoURL: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.id,
            "name": self.name,
            "photoURL": self.photoURL,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Individual:
        return cls(id=data["id"], name=data.get("name", ""), photoURL=data.get("photoURL"))

    @classmethod
    def from_profile(cls, profile: dict[str, Any]) -> Individual:
        return cls(
            id=profile.get("uid") or profile["id"],
            name=profile.get("username") or profile.get("displayName") or "",
            photoURL=profile.get("photoURL"),
        )


Participant = Union[Individual, Team]

BYE = Individual(id=BYE_ID, name="BYE")

PARTICIPANT_KINDS: dict[str, Any] = {
    Individual.kind: Individual,
    Team.kind: Team,
}


def is_bye(participant: Optional[Participant]) -> bool:
    return participant is not None and participant.id == BYE_ID


def participant_from_dict(data: Optional[dict[str, Any]]) -> Optional[Participant]:
    """Decode a stored participant, dispatching on its ``kind`` tag."""
    if data is None:
        return None
    kind = data.get("kind")
    if kind is None:
        # Entries written before participants were tagged.
        kind = Team.kind if "captainId" in data else Individual.kind
    participant_cls = PARTICIPANT_KINDS.get(kind)
    if participant_cls is None:
        raise ValueError(f"Unknown participant kind: {kind!r}")
    return participant_cls.from_dict(data)


def participant_to_dict(participant: Optional[Participant]) -> Optional[dict[str, Any]]:
    return participant.to_dict() if participant is not None else None


def participant_member_ids(participant: Participant) -> list[str]:
    """Every account id behind a participant, flattening team rosters."""
    if isinstance(participant, Team):
        return participant.member_ids
    if isinstance(participant, Individual):
        return [] if is_bye(participant) else [participant.id]
    raise TypeError(f"Unsupported participant type: {type(participant).__name__}")


@dataclass
class Match:
    """One node of a single-elimination bracket."""

    id: int
    round: int
    matchInRound: int
    players: list[Optional[Participant]] = field(default_factory=lambda: [None, None])
    winner: Optional[Participant] = None

    @property
    def is_decided(self) -> bool:
        return self.winner is not None

    @property
    def is_ready(self) -> bool:
        """Both slots hold real participants and no winner has been recorded."""
        return (
            self.winner is None
            and all(p is not None and not is_bye(p) for p in self.players)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "round": self.round,
            "matchInRound": self.matchInRound,
            "players": [participant_to_dict(p) for p in self.players],
            "winner": participant_to_dict(self.winner),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Match:
        players = [participant_from_dict(p) for p in data.get("players", [None, None])]
        return cls(
            id=int(data["id"]),
            round=int(data["round"]),
            matchInRound=int(data["matchInRound"]),
            players=(players + [None, None])[:2],
            winner=participant_from_dict(data.get("winner")),
        )


class TournamentRules(TypedDict, total=False):
    """Free-form settings an organizer can publish."""

    description: str
    schedule: str
    bannedItems: list[str]


class Tournament(FirestoreDocument, total=False):
    """A tournament document in Firestore."""

    name: str
    type: str
    organizerId: str
    organizerUsername: str
    organizerPhotoURL: Optional[str]
    status: str
    players: list[dict[str, Any]]
    playerIds: list[str]
    memberIds: list[str]
    matches: list[dict[str, Any]]
    isBracketGenerated: bool
    bracketSize: int
    totalRounds: int
    tournamentWinner: Optional[dict[str, Any]]
    inviteToken: Optional[str]
    rules: TournamentRules
    version: int


def tournament_participants(data: Tournament) -> list[Participant]:
    return [p for p in (participant_from_dict(d) for d in data.get("players", [])) if p]


def find_participant_entry(data: Tournament, participant_id: str) -> dict[str, Any] | None:
    """The raw ``players`` element for an id, as needed by ArrayRemove."""
    for entry in data.get("players", []):
        if entry and entry.get("id") == participant_id:
            return entry
    return None
