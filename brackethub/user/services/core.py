"""Profile lookups and the profile-side halves of tournament transactions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from brackethub.core.constants import USER_SEARCH_LIMIT, USERS_COLLECTION
from brackethub.errors import NotFoundError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.document import DocumentReference

    from brackethub.store import StoreClient
    from brackethub.user.models import UserProfile


def profile_ref(store: StoreClient, user_id: str) -> DocumentReference:
    return store.document(USERS_COLLECTION, user_id)


def get_profile(store: StoreClient, user_id: str) -> UserProfile | None:
    """Fetch a user profile by uid."""
    return store.get(profile_ref(store, user_id))  # type: ignore[return-value]


def require_profile(
    store: StoreClient, user_id: str, transaction: Any = None
) -> UserProfile:
    """Fetch a profile or fail; taking part in tournaments requires one."""
    profile = store.get(profile_ref(store, user_id), transaction=transaction)
    if profile is None:
        raise NotFoundError("Create a profile before joining tournaments.")
    profile.setdefault("uid", user_id)
    return profile  # type: ignore[return-value]


def search_users(
    store: StoreClient,
    username_query: str,
    exclude_ids: Iterable[str] = (),
    limit: int = USER_SEARCH_LIMIT,
) -> list[UserProfile]:
    """Case-insensitive username prefix search."""
    prefix = (username_query or "").strip().lower()
    if not prefix:
        return []

    users = store.db.collection(USERS_COLLECTION)
    query = store.where(users, "username", ">=", prefix)
    query = store.where(query, "username", "<=", prefix + "\uf8ff")
    excluded = set(exclude_ids)

    results = []
    for profile in store.stream(query.limit(limit + len(excluded))):
        uid = profile.get("uid") or profile["id"]
        if uid in excluded:
            continue
        results.append(profile)
        if len(results) >= limit:
            break
    results.sort(key=lambda p: p.get("username", ""))
    return results  # type: ignore[return-value]


def stats_increments(
    store: StoreClient, hosted: int = 0, played: int = 0, won: int = 0
) -> dict[str, Any]:
    """Field updates bumping the profile counters atomically."""
    updates = {}
    if hosted:
        updates["stats.tournamentsHosted"] = store.increment(hosted)
    if played:
        updates["stats.tournamentsPlayed"] = store.increment(played)
    if won:
        updates["stats.tournamentsWon"] = store.increment(won)
    return updates


def active_tournament_update(tournament_id: str | None) -> dict[str, Any]:
    """Field update for the 'currently in this tournament' pointer."""
    return {"activeTournamentId": tournament_id}
