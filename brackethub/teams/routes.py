"""Routes for the teams blueprint."""

from flask import g, jsonify, request

from brackethub.auth.decorators import login_required
from brackethub.errors import ValidationError
from brackethub.store import get_store
from brackethub.user.routes import public_profile

from . import bp
from .forms import EditTeamNameForm, InviteMemberForm
from .services import TeamService


def _form_errors(form):
    return "; ".join(
        f"{name}: {', '.join(errors)}" for name, errors in form.errors.items()
    )


@bp.route("/<string:tournament_id>")
@login_required
def list_teams(tournament_id):
    """All teams signed up for a tournament."""
    return jsonify(TeamService.list_teams(get_store(), tournament_id))


@bp.route("/<string:tournament_id>/<string:team_id>")
@login_required
def view_team(tournament_id, team_id):
    """Display a single team's roster."""
    team = TeamService.get_team(get_store(), tournament_id, team_id)
    team["isCaptain"] = team.get("captainId") == g.user_id
    return jsonify(team)


@bp.route("/<string:tournament_id>/<string:team_id>/candidates")
@login_required
def candidates(tournament_id, team_id):
    """Players the captain could invite, matched by username prefix."""
    results = TeamService.search_candidates(
        get_store(), tournament_id, team_id, request.args.get("q", "")
    )
    return jsonify([public_profile(p) for p in results])


@bp.route("/<string:tournament_id>/<string:team_id>/invite", methods=["POST"])
@login_required
def invite_member(tournament_id, team_id):
    """Captain adds a player to the team."""
    form = InviteMemberForm()
    if not form.validate_on_submit():
        raise ValidationError(_form_errors(form))

    team = TeamService.invite_member(
        get_store(), tournament_id, team_id, g.user_id, form.user_id.data
    )
    return jsonify({"status": "success", "team": team.to_dict()})


@bp.route(
    "/<string:tournament_id>/<string:team_id>/remove/<string:member_id>",
    methods=["POST"],
)
@login_required
def remove_member(tournament_id, team_id, member_id):
    TeamService.remove_member(get_store(), tournament_id, team_id, g.user_id, member_id)
    return jsonify({"status": "success"})


@bp.route("/<string:tournament_id>/<string:team_id>/leave", methods=["POST"])
@login_required
def leave_team(tournament_id, team_id):
    """Leave the team; a leaving captain disbands it."""
    outcome = TeamService.leave_or_disband(get_store(), tournament_id, team_id, g.user_id)
    return jsonify({"status": "success", "outcome": outcome})


@bp.route("/<string:tournament_id>/<string:team_id>/rename", methods=["POST"])
@login_required
def rename_team(tournament_id, team_id):
    """Captain renames the team."""
    form = EditTeamNameForm()
    if not form.validate_on_submit():
        raise ValidationError(_form_errors(form))

    TeamService.rename_team(get_store(), tournament_id, team_id, g.user_id, form.name.data)
    return jsonify({"status": "success"})
