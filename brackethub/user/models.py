"""Data models for the user blueprint."""

from __future__ import annotations

from typing import Any, Optional, TypedDict

from brackethub.core.types import FirestoreDocument


class UserStats(TypedDict, total=False):
    """Lifetime tournament counters kept on the profile."""

    tournamentsHosted: int
    tournamentsPlayed: int
    tournamentsWon: int


class UserProfile(FirestoreDocument, total=False):
    """A user document in Firestore, keyed by the auth uid."""

    uid: str
    username: str
    displayName: Optional[str]
    email: Optional[str]
    photoURL: Optional[str]
    activeTournamentId: Optional[str]
    stats: UserStats


class UsernameReservation(TypedDict):
    """A ``usernames/{username}`` document reserving a name for one account."""

    uid: str


def empty_stats() -> UserStats:
    return {"tournamentsHosted": 0, "tournamentsPlayed": 0, "tournamentsWon": 0}


def win_rate(profile: UserProfile | dict[str, Any]) -> float:
    """Share of played tournaments won, as a percentage."""
    stats = profile.get("stats") or {}
    played = stats.get("tournamentsPlayed", 0)
    if not played:
        return 0.0
    return round(stats.get("tournamentsWon", 0) / played * 100, 1)
