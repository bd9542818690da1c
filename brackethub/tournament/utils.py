"""Utility functions for presenting tournaments."""

from __future__ import annotations

from typing import Any

from brackethub.core.constants import STATUS_SETUP

from .access import is_organizer
from .bracket import bracket_rounds, matches_from_dicts, ready_matches

TIMESTAMP_FIELDS = ("createdAt", "startedAt", "completedAt")


def _timestamp(value: Any) -> str | None:
    return value.isoformat() if hasattr(value, "isoformat") else None


def serialize_tournament(data: dict[str, Any], user_id: str | None = None) -> dict[str, Any]:
    """JSON view of a tournament document as seen by ``user_id``.

    The invite token is only shown to the organizer.
    """
    result = {k: v for k, v in data.items() if k not in TIMESTAMP_FIELDS}
    for field in TIMESTAMP_FIELDS:
        if field in data:
            result[field] = _timestamp(data[field])
    if not is_organizer(data, user_id):
        result.pop("inviteToken", None)
    return result


def tournament_summary(data: dict[str, Any]) -> dict[str, Any]:
    """Short listing entry."""
    return {
        "id": data.get("id"),
        "name": data.get("name"),
        "type": data.get("type"),
        "status": data.get("status"),
        "organizerUsername": data.get("organizerUsername"),
        "playerCount": len(data.get("playerIds", [])),
    }


def bracket_view(data: dict[str, Any]) -> dict[str, Any]:
    """Matches grouped by round, plus the ids of matches awaiting a result."""
    matches = matches_from_dicts(data.get("matches", []))
    rounds: dict[int, list[dict[str, Any]]] = {}
    for match in matches:
        rounds.setdefault(match.round, []).append(match.to_dict())
    return {
        "totalRounds": data.get("totalRounds") or bracket_rounds(matches),
        "rounds": [rounds[r] for r in sorted(rounds)],
        "readyMatchIds": [m.id for m in ready_matches(matches)],
    }


def invite_link(base_url: str, token: str) -> str:
    """Shareable link carrying an invite token."""
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}invite={token}"


def can_join(data: dict[str, Any], user_id: str | None) -> bool:
    return (
        bool(user_id)
        and data.get("status") == STATUS_SETUP
        and user_id not in data.get("memberIds", [])
    )
