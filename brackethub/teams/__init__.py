"""Team rosters for team-mode tournaments."""

from flask import Blueprint

bp = Blueprint("teams", __name__, url_prefix="/team")

from . import routes  # noqa: E402, F401
from .models import Team, TeamMember  # noqa: E402
from .services import TeamService  # noqa: E402

__all__ = ["Team", "TeamMember", "TeamService", "routes"]
