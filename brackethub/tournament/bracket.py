"""Single-elimination bracket generation and result propagation.

Everything here is a pure function of its arguments: inputs are never
mutated, so a retried call with the same arguments always yields the same
bracket.
"""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Any, Iterable, NamedTuple, Optional, Sequence

from brackethub.core.constants import MIN_PARTICIPANTS
from brackethub.errors import (
    InsufficientParticipantsError,
    NotFoundError,
    ValidationError,
)

from .access import require_declarable
from .models import BYE, Match, Participant, is_bye


class Advancement(NamedTuple):
    """Result of recording a match winner."""

    matches: list[Match]
    tournament_winner: Optional[Participant]

    @property
    def is_complete(self) -> bool:
        return self.tournament_winner is not None


def bracket_size(participant_count: int) -> int:
    """Smallest power of two that fits ``participant_count`` entries."""
    if participant_count < 1:
        return 0
    return 1 << (participant_count - 1).bit_length()


def total_rounds_for(participant_count: int) -> int:
    """Number of rounds for a field, fixed when the bracket is generated."""
    size = bracket_size(participant_count)
    return size.bit_length() - 1 if size else 0


def bracket_rounds(matches: Iterable[Match]) -> int:
    """Round count baked into an existing bracket's topology."""
    return max((m.round for m in matches), default=0)


def find_match(matches: Iterable[Match], match_id: int) -> Match:
    for match in matches:
        if match.id == match_id:
            return match
    raise NotFoundError(f"Match {match_id} not found.")


def _find_slot_match(matches: Iterable[Match], round_number: int, match_in_round: int) -> Match:
    for match in matches:
        if match.round == round_number and match.matchInRound == match_in_round:
            return match
    raise ValueError(
        f"Bracket has no match at round {round_number}, position {match_in_round}."
    )


def _advance(matches: list[Match], match: Match) -> None:
    """Seat ``match.winner`` in its slot of the following round."""
    next_match = _find_slot_match(matches, match.round + 1, match.matchInRound // 2)
    next_match.players[match.matchInRound % 2] = match.winner


def _validate_field(participants: Sequence[Participant]) -> None:
    if len(participants) < MIN_PARTICIPANTS:
        raise InsufficientParticipantsError(
            f"At least {MIN_PARTICIPANTS} participants are required, got {len(participants)}."
        )
    ids = [p.id for p in participants]
    if len(set(ids)) != len(ids):
        raise ValidationError("Participant ids must be unique.")
    if any(is_bye(p) for p in participants):
        raise ValidationError("BYE is reserved and cannot be entered as a participant.")


def _spread_order(match_count: int) -> list[int]:
    """First-round positions in the order their second slot is filled.

    Even positions come first, then odd ones, so that as long as byes are at
    most half of the first round, each round-2 pairing gets at most one bye
    winner.
    """
    return list(range(0, match_count, 2)) + list(range(1, match_count, 2))


def generate_bracket(
    participants: Iterable[Participant], rng: random.Random | None = None
) -> list[Match]:
    """Build the full match tree for a field of two or more participants.

    The field is shuffled, then the first half of the shuffled order takes
    slot 0 of each first-round match. The remainder takes slot 1, filling
    even positions before odd ones so byes are spread across the draw. Open
    slot-1 positions become byes, which are decided and advanced into round 2
    immediately. Placeholder matches are created for every later
    round, so the returned list always holds ``bracket_size(n) - 1`` matches.
    """
    entrants = list(participants)
    _validate_field(entrants)

    shuffled = list(entrants)
    (rng or random.Random()).shuffle(shuffled)

    size = bracket_size(len(shuffled))
    half = size // 2

    slots: list[Optional[Participant]] = []
    for i in range(half):
        slots.extend([shuffled[i] if i < len(shuffled) else None, None])
    for position, participant in zip(_spread_order(half), shuffled[half:]):
        slots[position * 2 + 1] = participant

    matches: list[Match] = []
    match_id = 0
    for i in range(0, len(slots), 2):
        first, second = slots[i], slots[i + 1]
        if second is None:
            second = BYE
        matches.append(
            Match(
                id=match_id,
                round=1,
                matchInRound=i // 2,
                players=[first, second],
                winner=first if is_bye(second) else None,
            )
        )
        match_id += 1

    round_number = 1
    matches_in_round = len(matches)
    while matches_in_round > 1:
        matches_in_round //= 2
        round_number += 1
        for position in range(matches_in_round):
            matches.append(Match(id=match_id, round=round_number, matchInRound=position))
            match_id += 1

    if round_number > 1:
        for match in matches:
            if match.round == 1 and match.winner is not None:
                _advance(matches, match)

    return matches


def set_winner(
    matches: Sequence[Match],
    match_id: int,
    winner: Participant,
    total_rounds: int | None = None,
) -> Advancement:
    """Record ``winner`` for a match and propagate it one round forward.

    ``total_rounds`` should come from the bracket itself (stored when it was
    generated). It defaults to the highest round present, never to the size
    of the current roster, which may have shrunk since.
    """
    updated = [replace(m, players=list(m.players)) for m in matches]
    match = find_match(updated, match_id)
    match.winner = require_declarable(match, winner)

    final_round = total_rounds or bracket_rounds(updated)
    if match.round >= final_round:
        return Advancement(updated, match.winner)

    _advance(updated, match)
    return Advancement(updated, None)


def ready_matches(matches: Iterable[Match]) -> list[Match]:
    """Matches whose result can be declared right now."""
    return [m for m in matches if m.is_ready]


def matches_to_dicts(matches: Iterable[Match]) -> list[dict[str, Any]]:
    return [m.to_dict() for m in matches]


def matches_from_dicts(data: Iterable[dict[str, Any]]) -> list[Match]:
    return sorted((Match.from_dict(d) for d in data), key=lambda m: m.id)
