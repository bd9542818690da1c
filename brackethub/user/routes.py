"""Routes for the user blueprint."""

from flask import current_app, g, jsonify, request

from brackethub.auth.decorators import login_required
from brackethub.errors import NotFoundError, ValidationError
from brackethub.store import get_store

from . import bp
from .forms import CreateProfileForm, ProfilePictureForm
from .models import win_rate
from .services import UserService

PUBLIC_FIELDS = ("uid", "username", "displayName", "photoURL", "stats")


def public_profile(profile, include_private=False):
    """The JSON-safe view of a profile; private fields only for its owner."""
    data = {field: profile.get(field) for field in PUBLIC_FIELDS}
    data["uid"] = data["uid"] or profile.get("id")
    data["winRate"] = win_rate(profile)
    if include_private:
        data["email"] = profile.get("email")
        data["activeTournamentId"] = profile.get("activeTournamentId")
    return data


def _form_errors(form):
    return "; ".join(
        f"{name}: {', '.join(errors)}" for name, errors in form.errors.items()
    )


@bp.route("/profile", methods=["POST"])
@login_required
def create_profile():
    """Create the current account's profile and reserve its username."""
    form = CreateProfileForm()
    if not form.validate_on_submit():
        raise ValidationError(_form_errors(form))

    store = get_store()
    UserService.create_profile(
        store,
        g.user_id,
        form.username.data,
        display_name=form.display_name.data or None,
        email=form.email.data or None,
    )
    profile = UserService.get_profile(store, g.user_id)
    current_app.logger.info(f"Profile created for {g.user_id}")
    return jsonify({"status": "success", "profile": public_profile(profile, True)}), 201


@bp.route("/profile", methods=["GET"])
@login_required(profile_required=True)
def get_own_profile():
    """The logged-in user's own profile."""
    return jsonify(public_profile(g.user, include_private=True))


@bp.route("/profile/picture", methods=["POST"])
@login_required(profile_required=True)
def upload_picture():
    """Upload a new profile picture."""
    form = ProfilePictureForm()
    if not form.validate_on_submit():
        raise ValidationError(_form_errors(form))

    photo_url = UserService.upload_profile_picture(
        get_store(), g.user_id, form.profile_picture.data
    )
    return jsonify({"status": "success", "photoURL": photo_url})


@bp.route("/search", methods=["GET"])
@login_required
def search():
    """Username prefix search."""
    results = UserService.search_users(
        get_store(), request.args.get("q", ""), exclude_ids=[g.user_id]
    )
    return jsonify([public_profile(p) for p in results])


@bp.route("/<string:user_id>", methods=["GET"])
@login_required
def view_user(user_id):
    """Public profile of any user."""
    profile = UserService.get_profile(get_store(), user_id)
    if profile is None:
        raise NotFoundError("User not found.")
    return jsonify(public_profile(profile, include_private=user_id == g.user_id))
