"""Forms for the game blueprint."""

from flask_wtf import FlaskForm
from wtforms import (
    DateTimeField,
    FieldList,
    Form,
    FormField,
    IntegerField,
    SelectField,
    StringField,
    ValidationError,
)
from wtforms.validators import DataRequired, NumberRange, Optional

from kickabout.core.constants import GAME_EVENT_TYPES, GAME_FORMATS
from kickabout.core.forms import ISO_DATETIME_FORMATS, as_utc


class TeamsForm(Form):
    team1 = StringField("Team 1", validators=[DataRequired()])
    team2 = StringField("Team 2", validators=[DataRequired()])

    def validate_team2(self, field):
        """A team cannot play itself."""
        if field.data and field.data == self.team1.data:
            raise ValidationError("A game needs two different teams.")


class ScoreForm(Form):
    team1 = IntegerField(
        "Team 1 Score",
        default=0,
        validators=[Optional(), NumberRange(min=0, message="Score cannot be negative")],
    )
    team2 = IntegerField(
        "Team 2 Score",
        default=0,
        validators=[Optional(), NumberRange(min=0, message="Score cannot be negative")],
    )


class GameEventForm(Form):
    """A single goal, assist, card or substitution."""

    type = SelectField(
        "Type", choices=[(t, t.replace("_", " ").title()) for t in GAME_EVENT_TYPES]
    )
    player = StringField("Player", validators=[DataRequired()])
    team = StringField("Team", validators=[DataRequired()])
    timestamp = DateTimeField(
        "Timestamp", format=ISO_DATETIME_FORMATS, validators=[DataRequired()]
    )
    assistedBy = StringField("Assisted By", validators=[Optional()])
    substitutedFor = StringField("Substituted For", validators=[Optional()])


class GameForm(FlaskForm):
    """Form for recording a game played at a meetup."""

    teams = FormField(TeamsForm)
    score = FormField(ScoreForm)
    startTime = DateTimeField(
        "Start Time",
        format=ISO_DATETIME_FORMATS,
        validators=[DataRequired(message="Start time is required")],
    )
    endTime = DateTimeField(
        "End Time", format=ISO_DATETIME_FORMATS, validators=[Optional()]
    )
    duration = IntegerField(
        "Duration (minutes)",
        validators=[
            Optional(),
            NumberRange(min=1, message="Duration must be at least 1 minute"),
        ],
    )
    format = SelectField(
        "Format",
        choices=[(f, f) for f in GAME_FORMATS],
        validators=[DataRequired(message="Game format is required")],
    )
    events = FieldList(FormField(GameEventForm))

    def validate_endTime(self, field):
        if not (field.data and self.startTime.data):
            return
        if as_utc(field.data) < as_utc(self.startTime.data):
            raise ValidationError("End time cannot be before the start time.")

    def validate_events(self, field):
        """Every event must belong to one of the two teams."""
        sides = {self.teams.team1.data, self.teams.team2.data}
        for entry in field.entries:
            team = entry.form.team.data
            if team and team not in sides:
                raise ValidationError(
                    f"Event team {team} is not playing in this game."
                )
