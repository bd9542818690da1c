"""Service for user profile management."""

from __future__ import annotations

import logging
import os
import re
import tempfile
from typing import TYPE_CHECKING, Any

from firebase_admin import storage
from werkzeug.utils import secure_filename

from brackethub.core.constants import (
    MIN_USERNAME_LENGTH,
    USERNAMES_COLLECTION,
)
from brackethub.errors import DuplicateResourceError, ValidationError
from brackethub.store import store_errors
from brackethub.user.models import empty_stats

from .core import profile_ref

if TYPE_CHECKING:
    from werkzeug.datastructures import FileStorage

    from brackethub.store import StoreClient
    from brackethub.user.models import UsernameReservation, UserProfile

logger = logging.getLogger(__name__)

_INVALID_USERNAME_CHARS = re.compile(r"[^a-z0-9_]")


def sanitize_username(username: str) -> str:
    """Lower-case a username and strip everything but letters, digits and _."""
    return _INVALID_USERNAME_CHARS.sub("", (username or "").lower())


def create_profile(
    store: StoreClient,
    user_id: str,
    username: str,
    display_name: str | None = None,
    email: str | None = None,
) -> UserProfile:
    """Create a profile and reserve its username in one transaction."""
    clean_username = sanitize_username(username)
    if len(clean_username) < MIN_USERNAME_LENGTH:
        raise ValidationError(
            f"Username must be at least {MIN_USERNAME_LENGTH} valid characters."
        )

    user_ref = profile_ref(store, user_id)
    username_ref = store.document(USERNAMES_COLLECTION, clean_username)

    def _create(transaction: Any) -> UserProfile:
        if store.get(username_ref, transaction=transaction) is not None:
            raise DuplicateResourceError("Username is already taken.")
        if store.get(user_ref, transaction=transaction) is not None:
            raise DuplicateResourceError("This account already has a profile.")

        profile: UserProfile = {
            "uid": user_id,
            "username": clean_username,
            "displayName": display_name,
            "email": email,
            "photoURL": None,
            "activeTournamentId": None,
            "stats": empty_stats(),
            "createdAt": store.server_timestamp(),
        }
        transaction.set(user_ref, profile)
        reservation: UsernameReservation = {"uid": user_id}
        transaction.set(username_ref, reservation)
        return profile

    profile = store.run_transaction(_create)
    logger.info(f"Created profile {clean_username} for {user_id}")
    return profile


def upload_profile_picture(
    store: StoreClient, user_id: str, file_storage: FileStorage
) -> str:
    """Upload a profile picture to Firebase Storage and store its public URL."""
    filename = secure_filename(file_storage.filename or "profile.jpg")
    if not filename:
        raise ValidationError("Invalid file name.")

    with store_errors("upload a profile picture"):
        bucket = storage.bucket()
        blob = bucket.blob(f"profile_pictures/{user_id}/{filename}")

        with tempfile.NamedTemporaryFile(
            suffix=os.path.splitext(filename)[1]
        ) as temp_file:
            file_storage.save(temp_file.name)
            blob.upload_from_filename(temp_file.name)

        blob.make_public()
    photo_url = str(blob.public_url)
    store.update(profile_ref(store, user_id), {"photoURL": photo_url})
    return photo_url
