from .core import (
    active_tournament_update as _active_tournament_update,
    get_profile as _get_profile,
    profile_ref as _profile_ref,
    require_profile as _require_profile,
    search_users as _search_users,
    stats_increments as _stats_increments,
)
from .profile import (
    create_profile as _create_profile,
    sanitize_username as _sanitize_username,
    upload_profile_picture as _upload_profile_picture,
)


class UserService:
    """Service class for user profiles and their Firestore documents."""

    profile_ref = staticmethod(_profile_ref)
    get_profile = staticmethod(_get_profile)
    require_profile = staticmethod(_require_profile)
    search_users = staticmethod(_search_users)
    stats_increments = staticmethod(_stats_increments)
    active_tournament_update = staticmethod(_active_tournament_update)
    sanitize_username = staticmethod(_sanitize_username)
    create_profile = staticmethod(_create_profile)
    upload_profile_picture = staticmethod(_upload_profile_picture)


__all__ = ["UserService"]
