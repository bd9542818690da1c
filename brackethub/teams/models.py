"""Data models for the teams feature."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, TypedDict

from brackethub.core.constants import MAX_TEAM_SIZE, TEAM_COLORS


class TeamDocument(TypedDict, total=False):
    """A team document in ``tournaments/{id}/teams``."""

    id: str
    name: str
    captainId: str
    members: list[dict[str, Any]]
    memberIds: list[str]
    tournamentId: str
    color: str


@dataclass(frozen=True)
class TeamMember:
    """One account on a team roster."""

    uid: str
    username: str
    photoURL: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"uid": self.uid, "username": self.username, "photoURL": self.photoURL}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TeamMember:
        return cls(
            uid=data["uid"],
            username=data.get("username", ""),
            photoURL=data.get("photoURL"),
        )

    @classmethod
    def from_profile(cls, profile: dict[str, Any]) -> TeamMember:
        return cls(
            uid=profile.get("uid") or profile["id"],
            username=profile.get("username", ""),
            photoURL=profile.get("photoURL"),
        )


@dataclass(frozen=True)
class Team:
    """A team competing as a single bracket participant.

    The team id is the captain's account id, and the captain is always one of
    the members.
    """

    kind: ClassVar[str] = "team"

    id: str
    name: str
    captainId: str
    members: tuple[TeamMember, ...] = field(default_factory=tuple)
    color: str = TEAM_COLORS[0]
    tournamentId: str | None = None

    def __post_init__(self) -> None:
        if not 1 <= len(self.members) <= MAX_TEAM_SIZE:
            raise ValueError(
                f"Team {self.id} must have between 1 and {MAX_TEAM_SIZE} members."
            )
        if self.captainId not in self.member_ids:
            raise ValueError(f"Captain {self.captainId} is not a member of team {self.id}.")

    @property
    def member_ids(self) -> list[str]:
        return [m.uid for m in self.members]

    @property
    def is_full(self) -> bool:
        return len(self.members) >= MAX_TEAM_SIZE

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.id,
            "name": self.name,
            "captainId": self.captainId,
            "members": [m.to_dict() for m in self.members],
            "color": self.color,
            "tournamentId": self.tournamentId,
        }

    def to_document(self) -> TeamDocument:
        """Shape stored in the team sub-collection."""
        doc = self.to_dict()
        doc.pop("kind")
        doc["memberIds"] = self.member_ids
        return doc  # type: ignore[return-value]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Team:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            captainId=data.get("captainId") or data["id"],
            members=tuple(TeamMember.from_dict(m) for m in data.get("members", [])),
            color=data.get("color") or TEAM_COLORS[0],
            tournamentId=data.get("tournamentId"),
        )

    @classmethod
    def for_captain(
        cls, captain: TeamMember, tournament_id: str, color: str
    ) -> Team:
        """A brand new single-member team led by ``captain``."""
        return cls(
            id=captain.uid,
            name=f"{captain.username}'s Team",
            captainId=captain.uid,
            members=(captain,),
            color=color,
            tournamentId=tournament_id,
        )


def pick_team_color(existing_count: int) -> str:
    """Colour for the next team, cycling through the palette by join order."""
    return TEAM_COLORS[existing_count % len(TEAM_COLORS)]
