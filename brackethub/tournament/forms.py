"""Forms for the tournament blueprint."""

from flask_wtf import FlaskForm
from wtforms import BooleanField, IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from brackethub.core.constants import TOURNAMENT_TYPES, TYPE_DUEL


class TournamentForm(FlaskForm):
    """Form for creating a tournament."""

    name = StringField("Tournament Name", validators=[DataRequired(), Length(max=80)])

    type = SelectField(
        "Tournament Type",
        choices=[(t, t) for t in TOURNAMENT_TYPES],
        validators=[DataRequired()],
        default=TYPE_DUEL,
    )

    participate = BooleanField("I will play in this tournament", default=True)


class RulesForm(FlaskForm):
    """Form for the organizer's published rules."""

    description = TextAreaField("Description", validators=[Optional(), Length(max=2000)])
    schedule = TextAreaField("Schedule", validators=[Optional(), Length(max=500)])
    banned_items = TextAreaField(
        "Banned Items",
        validators=[Optional()],
        description="One item per line.",
    )


class DeclareWinnerForm(FlaskForm):
    """Form for reporting a match result."""

    winner_id = StringField("Winner", validators=[DataRequired()])
    expected_version = IntegerField(
        "Expected Version", validators=[Optional(), NumberRange(min=0)]
    )
