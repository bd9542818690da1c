"""Client-side mirror of a tournament document.

Local edits are applied optimistically to a copy of the last confirmed
state. Every snapshot pushed by the store replaces the whole state, so the
store's commit order always wins over local guesses.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Optional

from brackethub.core.constants import STATUS_COMPLETED

from .bracket import matches_from_dicts, matches_to_dicts, set_winner
from .services import tournament_ref

if TYPE_CHECKING:
    from brackethub.store import StoreClient, Subscription

logger = logging.getLogger(__name__)


class TournamentMirror:
    """Holds the latest known state of one tournament.

    Snapshot callbacks arrive on the listener's background thread, so all
    state changes go through a lock.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._lock = threading.Lock()
        self._confirmed = copy.deepcopy(initial)
        self._current = copy.deepcopy(initial)
        self._pending = 0
        self._deleted = False

    @property
    def state(self) -> Optional[dict[str, Any]]:
        """A copy of the state to render, local edits included."""
        with self._lock:
            return copy.deepcopy(self._current)

    @property
    def confirmed(self) -> Optional[dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._confirmed)

    @property
    def has_pending(self) -> bool:
        return self._pending > 0

    @property
    def deleted(self) -> bool:
        return self._deleted

    def apply(self, mutation: Callable[[dict[str, Any]], Optional[dict[str, Any]]]) -> dict[str, Any]:
        """Apply a local edit to a copy of the current state.

        ``mutation`` may edit the copy in place or return a replacement. The
        confirmed state is never touched.
        """
        with self._lock:
            if self._current is None:
                raise ValueError("Cannot apply a local edit before the first snapshot.")
            working = copy.deepcopy(self._current)
            result = mutation(working)
            self._current = result if result is not None else working
            self._pending += 1
            return copy.deepcopy(self._current)

    def apply_winner(self, match_id: int, winner_id: str) -> dict[str, Any]:
        """Optimistically record a match result in the local view."""

        def _set_winner(state: dict[str, Any]) -> dict[str, Any]:
            matches = matches_from_dicts(state.get("matches", []))
            match = next((m for m in matches if m.id == match_id), None)
            winner = None
            if match is not None:
                winner = next(
                    (p for p in match.players if p is not None and p.id == winner_id), None
                )
            advancement = set_winner(
                matches, match_id, winner, state.get("totalRounds") or None  # type: ignore[arg-type]
            )
            state["matches"] = matches_to_dicts(advancement.matches)
            if advancement.is_complete:
                state["tournamentWinner"] = advancement.tournament_winner.to_dict()  # type: ignore[union-attr]
                state["status"] = STATUS_COMPLETED
            return state

        return self.apply(_set_winner)

    def on_snapshot(self, data: Optional[dict[str, Any]]) -> None:
        """Replace local state with an authoritative snapshot.

        Intermediate snapshots may be skipped; only a snapshot older than the
        confirmed ``version`` is ignored.
        """
        with self._lock:
            if data is None:
                self._confirmed = None
                self._current = None
                self._pending = 0
                self._deleted = True
                return

            if self._confirmed is not None:
                seen = self._confirmed.get("version", 0)
                incoming = data.get("version", 0)
                if incoming < seen:
                    logger.debug(
                        f"Ignoring stale snapshot of {data.get('id')}: version {incoming} < {seen}"
                    )
                    return

            self._confirmed = copy.deepcopy(data)
            self._current = copy.deepcopy(data)
            self._pending = 0
            self._deleted = False


def watch_tournament(
    store: StoreClient, tournament_id: str, mirror: TournamentMirror
) -> Subscription:
    """Keep ``mirror`` in step with the stored tournament until closed."""
    return store.subscribe(tournament_ref(store, tournament_id), mirror.on_snapshot)
