"""Authorization and precondition checks for tournament actions.

Every check raises before anything is written, so a rejected action never
leaves partial state behind.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from brackethub.core.constants import TEAM_TOURNAMENT_TYPES
from brackethub.errors import (
    InvalidStateError,
    InvalidWinnerDeclarationError,
    UnauthorizedError,
)

from .models import is_bye

if TYPE_CHECKING:
    from .models import Match, Participant, Tournament


def is_organizer(tournament: Tournament | dict[str, Any], user_id: str | None) -> bool:
    return bool(user_id) and tournament.get("organizerId") == user_id


def require_organizer(
    tournament: Tournament | dict[str, Any], user_id: str | None, action: str
) -> None:
    if not is_organizer(tournament, user_id):
        raise UnauthorizedError(f"Only the organizer can {action}.")


def require_status(
    tournament: Tournament | dict[str, Any], allowed: str | Iterable[str], action: str
) -> None:
    allowed_statuses = {allowed} if isinstance(allowed, str) else set(allowed)
    status = tournament.get("status")
    if status not in allowed_statuses:
        raise InvalidStateError(f"Cannot {action} while the tournament is {status}.")


def is_team_mode(tournament: Tournament | dict[str, Any]) -> bool:
    return tournament.get("type") in TEAM_TOURNAMENT_TYPES


def require_declarable(match: Match, winner: Participant | None) -> Participant:
    """Check that ``winner`` can be recorded for ``match``.

    Returns the participant instance held in the match slot, so callers
    propagate the bracket's own copy rather than whatever they were handed.
    """
    if match.winner is not None:
        raise InvalidWinnerDeclarationError(
            f"Match {match.id} already has a winner."
        )
    if any(p is None or is_bye(p) for p in match.players):
        raise InvalidWinnerDeclarationError(
            f"Match {match.id} is waiting for its players."
        )
    if winner is None:
        raise InvalidWinnerDeclarationError("A winner must be chosen.")
    for player in match.players:
        if player is not None and player.id == winner.id:
            return player
    raise InvalidWinnerDeclarationError(
        f"{winner.id} is not playing in match {match.id}."
    )
