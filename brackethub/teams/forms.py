"""Forms for the teams blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired, Length


class InviteMemberForm(FlaskForm):
    """Form for a captain adding a player to their team."""

    user_id = StringField("Player", validators=[DataRequired()])


class EditTeamNameForm(FlaskForm):
    """Form to edit a team's name."""

    name = StringField("Team Name", validators=[DataRequired(), Length(max=40)])
