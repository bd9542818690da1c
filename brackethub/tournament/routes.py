"""Routes for the tournament blueprint."""

from __future__ import annotations

from typing import Any

from flask import current_app, g, jsonify, request

from brackethub.auth.decorators import login_required
from brackethub.errors import ValidationError
from brackethub.store import get_store

from . import bp
from .forms import DeclareWinnerForm, RulesForm, TournamentForm
from .services import TournamentService
from .utils import (
    bracket_view,
    can_join,
    invite_link,
    serialize_tournament,
    tournament_summary,
)


def _form_errors(form: Any) -> str:
    return "; ".join(
        f"{name}: {', '.join(errors)}" for name, errors in form.errors.items()
    )


def _submitted(field: str) -> bool:
    payload = request.get_json(silent=True) if request.is_json else request.form
    return bool(payload) and field in payload


@bp.route("/", methods=["GET"])
@login_required
def list_tournaments() -> Any:
    """Tournaments that are still accepting players."""
    tournaments = TournamentService.list_open_tournaments(get_store())
    return jsonify([tournament_summary(t) for t in tournaments])


@bp.route("/active", methods=["GET"])
@login_required
def active_tournament() -> Any:
    """The tournament the current user is taking part in, if any."""
    tournament = TournamentService.get_active_tournament(get_store(), g.user_id)
    if tournament is None:
        return jsonify({"tournament": None})
    return jsonify({"tournament": serialize_tournament(tournament, g.user_id)})


@bp.route("/create", methods=["POST"])
@login_required(profile_required=True)
def create_tournament() -> Any:
    """Create a new tournament hosted by the current user."""
    form = TournamentForm()
    if not form.validate_on_submit():
        raise ValidationError(_form_errors(form))

    participate = form.participate.data if _submitted("participate") else True
    tournament_id = TournamentService.create_tournament(
        get_store(), g.user_id, form.name.data, form.type.data, participate=participate
    )
    current_app.logger.info(f"User {g.user_id} created tournament {tournament_id}")
    return jsonify({"status": "success", "id": tournament_id}), 201


@bp.route("/<string:tournament_id>", methods=["GET"])
@login_required
def view_tournament(tournament_id: str) -> Any:
    """Full tournament state, with the bracket grouped by round."""
    tournament = TournamentService.get_tournament(get_store(), tournament_id)
    data = serialize_tournament(tournament, g.user_id)
    data["bracket"] = bracket_view(tournament)
    data["canJoin"] = can_join(tournament, g.user_id)
    return jsonify(data)


@bp.route("/<string:tournament_id>/join", methods=["POST"])
@login_required(profile_required=True)
def join_tournament(tournament_id: str) -> Any:
    entry = TournamentService.join_tournament(get_store(), tournament_id, g.user_id)
    return jsonify({"status": "success", "participant": entry})


@bp.route("/<string:tournament_id>/leave", methods=["POST"])
@login_required
def leave_tournament(tournament_id: str) -> Any:
    TournamentService.leave_tournament(get_store(), tournament_id, g.user_id)
    return jsonify({"status": "success"})


@bp.route("/<string:tournament_id>/kick/<string:participant_id>", methods=["POST"])
@login_required
def kick_participant(tournament_id: str, participant_id: str) -> Any:
    """Organizer removes a player or a whole team."""
    TournamentService.kick_participant(
        get_store(), tournament_id, g.user_id, participant_id
    )
    return jsonify({"status": "success"})


@bp.route("/<string:tournament_id>/start", methods=["POST"])
@login_required
def start_tournament(tournament_id: str) -> Any:
    """Generate the bracket and start play."""
    store = get_store()
    TournamentService.start_tournament(store, tournament_id, g.user_id)
    tournament = TournamentService.get_tournament(store, tournament_id)
    return jsonify({"status": "success", "bracket": bracket_view(tournament)})


@bp.route("/<string:tournament_id>/delete", methods=["POST"])
@login_required
def delete_tournament(tournament_id: str) -> Any:
    TournamentService.delete_tournament(get_store(), tournament_id, g.user_id)
    return jsonify({"status": "success"})


@bp.route(
    "/<string:tournament_id>/matches/<int:match_id>/winner", methods=["POST"]
)
@login_required
def declare_winner(tournament_id: str, match_id: int) -> Any:
    """Record the winner of a match."""
    form = DeclareWinnerForm()
    if not form.validate_on_submit():
        raise ValidationError(_form_errors(form))

    result = TournamentService.declare_winner(
        get_store(),
        tournament_id,
        g.user_id,
        match_id,
        form.winner_id.data,
        expected_version=form.expected_version.data,
    )
    return jsonify({"status": "success", **result})


@bp.route("/<string:tournament_id>/invite", methods=["POST"])
@login_required
def create_invite(tournament_id: str) -> Any:
    """Create a shareable invite link."""
    token = TournamentService.generate_invite_token(
        get_store(), tournament_id, g.user_id
    )
    link = invite_link(current_app.config["INVITE_BASE_URL"], token)
    return jsonify({"status": "success", "token": token, "link": link})


@bp.route("/invite/<string:token>", methods=["GET"])
@login_required
def view_invite(token: str) -> Any:
    """Preview the tournament an invite link points to."""
    tournament = TournamentService.resolve_invite_token(get_store(), token)
    return jsonify(tournament_summary(tournament))


@bp.route("/invite/<string:token>/join", methods=["POST"])
@login_required(profile_required=True)
def join_by_invite(token: str) -> Any:
    tournament_id, entry = TournamentService.join_by_invite(
        get_store(), token, g.user_id
    )
    return jsonify({"status": "success", "id": tournament_id, "participant": entry})


@bp.route("/<string:tournament_id>/rules", methods=["POST"])
@login_required
def update_rules(tournament_id: str) -> Any:
    """Organizer publishes the description, schedule and banned items."""
    form = RulesForm()
    if not form.validate_on_submit():
        raise ValidationError(_form_errors(form))

    banned = (form.banned_items.data or "").splitlines()
    payload = request.get_json(silent=True) or {}
    if isinstance(payload.get("banned_items"), list):
        banned = payload["banned_items"]

    rules = TournamentService.update_rules(
        get_store(),
        tournament_id,
        g.user_id,
        description=form.description.data,
        schedule=form.schedule.data,
        banned_items=banned,
    )
    return jsonify({"status": "success", "rules": rules})
